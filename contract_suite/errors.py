"""Error types for contract suite runs.

Fatal errors abort a run before any unit is attempted. Unit errors are
scoped to a single unit and are reported through notifications; the run
always moves on to the next unit.
"""

from typing import Optional


class SuiteError(Exception):
    """Base class for all contract suite errors."""


class FatalSetupError(SuiteError):
    """Connection or protocol version check failed. No unit is run."""


class UnitError(SuiteError):
    """A failure scoped to one unit of the suite."""

    stage = "unit"

    def __init__(
        self,
        unit_name: str,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(f"{unit_name}: {message}")
        self.unit_name = unit_name
        self.cause = cause


class UnitLoadError(UnitError):
    """The unit's artifacts could not be loaded."""

    stage = "load"


class UnitDeployError(UnitError):
    """The unit's code could not be deployed."""

    stage = "deploy"


class UnitMethodStartError(UnitError):
    """The unit's test methods could not be started."""

    stage = "methods-start"


class UnitMethodRunError(UnitError):
    """The unit's test methods could not be run to completion."""

    stage = "methods-run"


class CoverageAnalysisError(SuiteError):
    """Coverage analysis failed. Never fails the unit."""


class DeployError(SuiteError):
    """The execution environment rejected a deployment."""


class ArtifactError(SuiteError):
    """Base class for artifact loading errors."""


class ArtifactNotFoundError(ArtifactError):
    """An artifact file does not exist."""


class ArtifactParseError(ArtifactError):
    """An artifact file could not be read or parsed."""
