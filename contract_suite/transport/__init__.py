"""Transport module - execution environment communication."""

from .http_client import (
    DeployedInstance,
    ExecutionClient,
    HttpExecutionClient,
    RpcError,
)
from .retry_policy import RetryPolicy

__all__ = [
    "DeployedInstance",
    "ExecutionClient",
    "HttpExecutionClient",
    "RpcError",
    "RetryPolicy",
]
