"""Runner module - Suite orchestration."""

from .events import (
    ContractDone,
    ContractStarted,
    MethodsDone,
    MethodsStarted,
    NotificationChannel,
    NotificationKind,
    RunDone,
    RunStarted,
)
from .method_runner import MethodResult, MethodRunner, MethodStats
from .orchestrator import Orchestrator, OrchestratorConfig, OrchestratorState
from .result_collector import ResultEntry, RunResults

__all__ = [
    "ContractDone",
    "ContractStarted",
    "MethodsDone",
    "MethodsStarted",
    "NotificationChannel",
    "NotificationKind",
    "RunDone",
    "RunStarted",
    "MethodResult",
    "MethodRunner",
    "MethodStats",
    "Orchestrator",
    "OrchestratorConfig",
    "OrchestratorState",
    "ResultEntry",
    "RunResults",
]
