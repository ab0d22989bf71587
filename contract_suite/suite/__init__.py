"""Suite module - YAML suite file parsing."""

from .schema import RunSpec, ValidationError, ValidationResult
from .parser import parse_run_spec, parse_run_spec_data
from .validator import validate_run_spec

__all__ = [
    "RunSpec",
    "ValidationError",
    "ValidationResult",
    "parse_run_spec",
    "parse_run_spec_data",
    "validate_run_spec",
]
