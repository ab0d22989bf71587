"""Suite data models.

Defines the immutable run input and the validation result types.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


TEST_SUFFIX = "Test"
VALID_ENDPOINT_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class RunSpec:
    """Input to a single suite run.

    ``units`` is ordered; the order defines execution order.
    """
    units: tuple[str, ...]
    base_dir: Path
    endpoint: str
    coverage: bool = False

    def __post_init__(self):
        units = tuple(self.units)
        duplicates = sorted({u for u in units if units.count(u) > 1})
        if duplicates:
            raise ValueError(f"Duplicate unit names: {', '.join(duplicates)}")
        object.__setattr__(self, "units", units)
        object.__setattr__(self, "base_dir", Path(self.base_dir))
        object.__setattr__(self, "coverage", bool(self.coverage))

    @property
    def total_units(self) -> int:
        """Number of units in the run."""
        return len(self.units)

    def to_dict(self) -> dict[str, Any]:
        """Convert run spec to dictionary for serialization."""
        return {
            "suite": {
                "base_dir": str(self.base_dir),
                "endpoint": self.endpoint,
                "coverage": self.coverage,
            },
            "units": list(self.units),
        }


@dataclass
class ValidationError:
    """A single validation error."""
    path: str
    message: str
    severity: str = "error"  # "error" or "warning"


@dataclass
class ValidationResult:
    """Result of run spec validation."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __str__(self) -> str:
        if self.valid:
            msg = "Valid"
            if self.warnings:
                msg += f" ({self.warning_count} warnings)"
            return msg
        return f"Invalid: {self.error_count} errors, {self.warning_count} warnings"
