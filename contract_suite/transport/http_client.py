"""HTTP client for the remote execution environment.

Speaks JSON-RPC 2.0 over a single endpoint:
- status            - Liveness check used on connect
- getClientVersion  - Protocol version of the node ({"client_version": ...})
- deploy            - Instantiate code ({"address": ...})
- call              - Invoke a function on a deployed instance ({"return": ...})

All blocking requests run in a worker thread so the caller's event loop
keeps running while a request is in flight.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import requests

from ..errors import DeployError
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: Optional[int], message: str):
        super().__init__(f"RPC '{method}' failed ({code}): {message}")
        self.method = method
        self.code = code


@dataclass
class DeployedInstance:
    """Handle to a live instance of a unit's code."""
    address: str
    interface: list[dict[str, Any]] = field(default_factory=list)
    client: Optional["HttpExecutionClient"] = field(default=None, repr=False)

    async def call(self, method: str, *args: Any) -> Any:
        """Invoke ``method`` on this instance and return its result.

        Raises:
            ConnectionError: If the instance has no client or the node is unreachable.
            RpcError: If the node rejects the call.
        """
        if self.client is None:
            raise ConnectionError(f"Instance {self.address} is not bound to a client")
        return await self.client.call(self.address, method, list(args))


class ExecutionClient(Protocol):
    async def connect(self, endpoint: str) -> None:
        ...

    async def get_protocol_version(self) -> str:
        ...

    async def deploy(self, code: str, interface: list[dict[str, Any]]) -> DeployedInstance:
        ...


class HttpExecutionClient:
    """JSON-RPC client for the remote execution environment."""

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        request_timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize execution client.

        Args:
            retry_policy: Retry policy for transport failures.
            request_timeout: Timeout of a single request in seconds.
            session: Pre-configured session (a new one is created if None).
        """
        self.endpoint: Optional[str] = None
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = request_timeout
        self._ids = itertools.count(1)
        self._session = session or requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    async def connect(self, endpoint: str) -> None:
        """Connect to the node at ``endpoint``.

        Raises:
            ConnectionError: If the node is unreachable or rejects the status call.
        """
        self.endpoint = endpoint.rstrip("/")
        logger.debug("Using execution endpoint: %s", self.endpoint)
        try:
            await asyncio.to_thread(self._rpc, "status")
        except RpcError as e:
            raise ConnectionError(f"Node at {self.endpoint} rejected status: {e}") from e

    async def get_protocol_version(self) -> str:
        """Get the node's protocol version.

        Raises:
            ConnectionError: If the node is unreachable or the answer is malformed.
        """
        try:
            result = await asyncio.to_thread(self._rpc, "getClientVersion")
        except RpcError as e:
            raise ConnectionError(str(e)) from e

        if not isinstance(result, dict) or "client_version" not in result:
            raise ConnectionError(f"Malformed getClientVersion response: {result!r}")
        return str(result["client_version"])

    async def deploy(self, code: str, interface: list[dict[str, Any]]) -> DeployedInstance:
        """Deploy code and return a handle to the new instance.

        Raises:
            DeployError: If the node can't be reached or rejects the code.
        """
        try:
            result = await asyncio.to_thread(
                self._rpc, "deploy", {"code": code, "abi": interface}
            )
        except (ConnectionError, RpcError) as e:
            raise DeployError(f"Deployment failed: {e}") from e

        if not isinstance(result, dict) or not result.get("address"):
            raise DeployError(f"Deployment returned no address: {result!r}")
        return DeployedInstance(address=result["address"], interface=interface, client=self)

    async def call(self, address: str, method: str, args: Optional[list] = None) -> Any:
        """Invoke ``method`` on the instance at ``address``."""
        result = await asyncio.to_thread(
            self._rpc,
            "call",
            {"address": address, "method": method, "args": args or []},
        )
        if isinstance(result, dict):
            return result.get("return")
        return result

    def _rpc(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Send one JSON-RPC request and return its result.

        Raises:
            ConnectionError: If the endpoint can't be reached after all retries.
            RpcError: If the node answers with an error object.
        """
        if self.endpoint is None:
            raise ConnectionError("Client is not connected")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }
        try:
            response = self._request_with_retry(payload)
            data = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status is not None and status < 500:
                # The node is reachable but rejected this request.
                raise RpcError(method, status, str(e)) from e
            raise ConnectionError(f"RPC '{method}' to {self.endpoint} failed: {e}") from e
        except (requests.RequestException, ValueError) as e:
            raise ConnectionError(f"RPC '{method}' to {self.endpoint} failed: {e}") from e

        if not isinstance(data, dict):
            raise ConnectionError(f"RPC '{method}' returned a non-object response")
        if data.get("error"):
            error = data["error"]
            raise RpcError(method, error.get("code"), error.get("message", "unknown error"))
        return data.get("result")

    def _request_with_retry(self, payload: dict[str, Any]) -> requests.Response:
        """POST ``payload``, retrying transport failures and 5xx responses."""
        for attempt in range(self.retry_policy.attempts):
            last = attempt == self.retry_policy.max_retries
            try:
                response = self._session.post(
                    self.endpoint,
                    json=payload,
                    timeout=self.request_timeout,
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                if last:
                    raise
                logger.debug("RPC '%s' attempt %d failed: %s", payload["method"], attempt + 1, e)
            else:
                if response.status_code < 500 or last:
                    response.raise_for_status()
                    return response
                logger.debug(
                    "RPC '%s' attempt %d got HTTP %d",
                    payload["method"], attempt + 1, response.status_code,
                )

            time.sleep(self.retry_policy.get_delay(attempt))

        raise RuntimeError("Request failed with no error captured")

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
