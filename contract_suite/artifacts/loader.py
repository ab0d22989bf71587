"""File system artifact loader.

Each unit is compiled into files named after the unit inside a base
directory:

    <name>.binary  - hex-encoded code blob
    <name>.abi     - interface descriptor (JSON list)
    <name>.ast     - syntax tree of the test source (JSON), used for coverage
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, Union

from ..errors import ArtifactNotFoundError, ArtifactParseError
from ..suite.schema import TEST_SUFFIX

logger = logging.getLogger(__name__)

BINARY_SUFFIX = ".binary"
INTERFACE_SUFFIX = ".abi"
TRACE_SUFFIX = ".ast"


@dataclass
class UnitArtifact:
    """Loaded code and interface descriptor for one unit."""
    name: str
    code: str
    interface: list[dict[str, Any]] = field(default_factory=list)


class ArtifactLoader(Protocol):
    def load_code(self, base_dir: Path, unit_name: str) -> str:
        ...

    def load_interface(self, base_dir: Path, unit_name: str) -> list[dict[str, Any]]:
        ...

    def load_trace(self, base_dir: Path, unit_name: str) -> Any:
        ...

    def load(self, base_dir: Path, unit_name: str) -> UnitArtifact:
        ...


def tested_unit_name(unit_name: str) -> str:
    """Name of the unit under test, e.g. 'CoinTest' -> 'Coin'."""
    if unit_name.endswith(TEST_SUFFIX) and len(unit_name) > len(TEST_SUFFIX):
        return unit_name[: -len(TEST_SUFFIX)]
    return unit_name


class FileArtifactLoader:
    """Loads unit artifacts from a compiler output directory."""

    def load_code(self, base_dir: Union[str, Path], unit_name: str) -> str:
        """Load the hex-encoded code blob of a unit.

        Raises:
            ArtifactNotFoundError: If the binary file doesn't exist.
            ArtifactParseError: If the file can't be read or is empty.
        """
        path = self._path(base_dir, unit_name, BINARY_SUFFIX)
        code = self._read_text(path).strip()
        if not code:
            raise ArtifactParseError(f"Empty code file: {path}")
        return code

    def load_interface(
        self, base_dir: Union[str, Path], unit_name: str
    ) -> list[dict[str, Any]]:
        """Load the interface descriptor of a unit.

        Raises:
            ArtifactNotFoundError: If the interface file doesn't exist.
            ArtifactParseError: If the file isn't a JSON list of objects.
        """
        path = self._path(base_dir, unit_name, INTERFACE_SUFFIX)
        data = self._read_json(path)
        if not isinstance(data, list):
            raise ArtifactParseError(
                f"Interface descriptor must be a JSON list, got {type(data).__name__}: {path}"
            )
        if not all(isinstance(entry, dict) for entry in data):
            raise ArtifactParseError(f"Interface descriptor entries must be JSON objects: {path}")
        return data

    def load_trace(self, base_dir: Union[str, Path], unit_name: str) -> Any:
        """Load the syntax tree of a unit's test source."""
        return self._read_json(self._path(base_dir, unit_name, TRACE_SUFFIX))

    def load(self, base_dir: Union[str, Path], unit_name: str) -> UnitArtifact:
        """Load code and interface descriptor of a unit."""
        code = self.load_code(base_dir, unit_name)
        interface = self.load_interface(base_dir, unit_name)
        logger.debug("Loaded artifacts for %s from %s", unit_name, base_dir)
        return UnitArtifact(name=unit_name, code=code, interface=interface)

    def _path(self, base_dir: Union[str, Path], unit_name: str, suffix: str) -> Path:
        return Path(base_dir) / f"{unit_name}{suffix}"

    def _read_text(self, path: Path) -> str:
        if not path.is_file():
            raise ArtifactNotFoundError(f"Artifact not found: {path}")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ArtifactParseError(f"Failed to read {path}: {e}") from e

    def _read_json(self, path: Path) -> Any:
        text = self._read_text(path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ArtifactParseError(f"Malformed JSON in {path}: {e}") from e
