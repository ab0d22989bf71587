"""Contract suite runner.

Deploys test contracts to an execution environment one at a time, runs
their test methods and collects per-unit results and coverage.
"""

__version__ = "0.1.0"

from .runner import (
    NotificationKind,
    Orchestrator,
    OrchestratorConfig,
    ResultEntry,
    RunResults,
)
from .suite import RunSpec, parse_run_spec, validate_run_spec

__all__ = [
    "__version__",
    "NotificationKind",
    "Orchestrator",
    "OrchestratorConfig",
    "ResultEntry",
    "RunResults",
    "RunSpec",
    "parse_run_spec",
    "validate_run_spec",
]
