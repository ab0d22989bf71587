"""Run spec validator.

Validates parsed RunSpec objects before a run is started.
"""

from urllib.parse import urlparse

from .schema import (
    RunSpec,
    TEST_SUFFIX,
    VALID_ENDPOINT_SCHEMES,
    ValidationError,
    ValidationResult,
)


def validate_run_spec(spec: RunSpec) -> ValidationResult:
    """Validate a parsed RunSpec.

    Checks:
    - Endpoint scheme and host
    - Unit names
    - Base directory and coverage prerequisites

    Args:
        spec: Parsed RunSpec to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []

    _validate_suite(spec, errors, warnings)
    _validate_units(spec, errors, warnings)

    if not spec.units:
        warnings.append(ValidationError(
            path="units",
            message="No units defined. The run will finish immediately.",
            severity="warning",
        ))

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_suite(
    spec: RunSpec,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    """Validate suite-level settings."""
    parsed = urlparse(spec.endpoint)
    if parsed.scheme not in VALID_ENDPOINT_SCHEMES:
        errors.append(ValidationError(
            path="suite.endpoint",
            message=f"Invalid endpoint '{spec.endpoint}'. Scheme must be one of: {', '.join(sorted(VALID_ENDPOINT_SCHEMES))}",
        ))
    elif not parsed.netloc:
        errors.append(ValidationError(
            path="suite.endpoint",
            message=f"Invalid endpoint '{spec.endpoint}'. Missing host.",
        ))

    if not spec.base_dir.is_dir():
        warnings.append(ValidationError(
            path="suite.base_dir",
            message=f"Base directory '{spec.base_dir}' does not exist. Every unit will fail to load.",
            severity="warning",
        ))


def _validate_units(
    spec: RunSpec,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    """Validate unit names."""
    for i, name in enumerate(spec.units):
        path = f"units[{i}]"

        if not name or not name.strip():
            errors.append(ValidationError(
                path=path,
                message="Unit name must not be empty.",
            ))
            continue

        if spec.coverage and not name.endswith(TEST_SUFFIX):
            warnings.append(ValidationError(
                path=path,
                message=f"Unit '{name}' does not end in '{TEST_SUFFIX}'. Coverage cannot find the tested unit.",
                severity="warning",
            ))
