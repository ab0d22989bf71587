"""YAML suite file parser.

Parses suite files into RunSpec objects.
"""

from pathlib import Path
from typing import Optional, Union

import yaml

from .schema import RunSpec


def parse_run_spec(file_path: Union[str, Path]) -> RunSpec:
    """Parse a YAML suite file into a RunSpec.

    A relative ``base_dir`` is resolved against the suite file's directory.

    Args:
        file_path: Path to the YAML suite file.

    Returns:
        Parsed RunSpec.

    Raises:
        FileNotFoundError: If the suite file doesn't exist.
        ValueError: If the YAML is malformed or missing required fields.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Suite file not found: {file_path}")

    if file_path.suffix not in (".yaml", ".yml"):
        raise ValueError(f"Expected .yaml or .yml file, got: {file_path.suffix}")

    with open(file_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed YAML in {file_path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty suite file: {file_path}")

    return parse_run_spec_data(data, source=str(file_path), root=file_path.parent)


def parse_run_spec_data(
    data: dict,
    source: str = "<inline>",
    root: Optional[Path] = None,
) -> RunSpec:
    """Parse a run spec from a dictionary (already loaded YAML).

    Args:
        data: Dictionary with suite data.
        source: Source identifier for error messages.
        root: Directory that a relative base_dir is resolved against.

    Returns:
        Parsed RunSpec.

    Raises:
        ValueError: If required fields are missing or malformed.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Suite must be a YAML mapping, got {type(data).__name__}")

    if "suite" not in data:
        raise ValueError(f"Missing required field 'suite' in {source}")

    suite_data = data["suite"]
    if not isinstance(suite_data, dict):
        raise ValueError(f"'suite' must be a mapping in {source}")

    _require_fields(suite_data, ["endpoint"], "suite", source)

    units = data.get("units", [])
    if not isinstance(units, list):
        raise ValueError(f"'units' must be a list in {source}")

    for i, unit in enumerate(units):
        if not isinstance(unit, str):
            raise ValueError(f"Unit {i} must be a string in {source}")

    base_dir = Path(suite_data.get("base_dir", "."))
    if root is not None and not base_dir.is_absolute():
        base_dir = root / base_dir

    coverage = suite_data.get("coverage", False)
    if not isinstance(coverage, bool):
        raise ValueError(f"'suite.coverage' must be a boolean in {source}")

    return RunSpec(
        units=units,
        base_dir=base_dir,
        endpoint=str(suite_data["endpoint"]),
        coverage=coverage,
    )


def _require_fields(
    data: dict, fields: list[str], context: str, source: str
) -> None:
    """Check that required fields exist in a dictionary."""
    for field_name in fields:
        if field_name not in data:
            raise ValueError(
                f"Missing required field '{field_name}' in {context} ({source})"
            )
