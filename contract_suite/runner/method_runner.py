"""Method runner - executes the test methods of one deployed unit.

Test methods are the interface functions whose names start with ``test``.
All of them are invoked at once, so a unit costs one round of calls rather
than one per test. A method passes when it returns a truthy value.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from ..errors import UnitMethodRunError, UnitMethodStartError
from ..transport.http_client import DeployedInstance
from .events import MethodsDone, MethodsStarted, NotificationChannel

logger = logging.getLogger(__name__)

TEST_METHOD_PREFIX = "test"


@dataclass
class MethodResult:
    """Outcome of a single test method."""
    name: str
    passed: bool
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "passed": self.passed, "message": self.message}


@dataclass
class MethodStats:
    """Aggregated outcome of a unit's test methods."""
    unit_name: str
    results: list[MethodResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def all_passed(self) -> bool:
        return all(r.passed for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class MethodRunnerProtocol(Protocol):
    channel: NotificationChannel

    async def run(self) -> None:
        ...


MethodRunnerFactory = Callable[[str, DeployedInstance], MethodRunnerProtocol]


def find_test_methods(interface: list[dict[str, Any]]) -> list[str]:
    """Names of the test functions declared in an interface descriptor."""
    return [
        entry["name"]
        for entry in interface
        if entry.get("type") == "function"
        and str(entry.get("name", "")).startswith(TEST_METHOD_PREFIX)
    ]


class MethodRunner:
    """Runs the test methods of a deployed unit.

    Emits exactly one MethodsStarted and, unless starting failed, exactly
    one MethodsDone on its channel.
    """

    def __init__(self, unit_name: str, instance: DeployedInstance):
        self.unit_name = unit_name
        self.instance = instance
        self.channel = NotificationChannel()

    async def run(self) -> None:
        try:
            methods = find_test_methods(self.instance.interface)
        except (AttributeError, KeyError, TypeError) as e:
            self.channel.emit(MethodsStarted(
                error=UnitMethodStartError(
                    self.unit_name, f"malformed interface descriptor: {e}", cause=e
                ),
                unit_name=self.unit_name,
            ))
            return
        if not methods:
            self.channel.emit(MethodsStarted(
                error=UnitMethodStartError(self.unit_name, "no test methods found"),
                unit_name=self.unit_name,
            ))
            return

        self.channel.emit(MethodsStarted(
            error=None, methods=tuple(methods), unit_name=self.unit_name
        ))

        try:
            results = await asyncio.gather(*(self._run_method(m) for m in methods))
        except ConnectionError as e:
            self.channel.emit(MethodsDone(
                error=UnitMethodRunError(self.unit_name, str(e), cause=e),
                unit_name=self.unit_name,
            ))
            return

        stats = MethodStats(unit_name=self.unit_name, results=list(results))
        logger.debug("%s: %d/%d methods passed", self.unit_name, stats.passed, stats.total)
        self.channel.emit(MethodsDone(error=None, unit_name=self.unit_name, result=stats))

    async def _run_method(self, method: str) -> MethodResult:
        """Invoke one test method. Transport failures propagate."""
        try:
            value = await self.instance.call(method)
        except ConnectionError:
            raise
        except Exception as e:
            return MethodResult(name=method, passed=False, message=f"{type(e).__name__}: {e}")

        return MethodResult(
            name=method,
            passed=bool(value),
            message="" if value else f"{method} returned {value!r}",
        )
