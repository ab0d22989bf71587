"""Suite orchestrator - runs an ordered list of test units.

Coordinates the full run:
1. Connect to the execution environment and check its protocol version
2. For each unit, in order:
   a. Load artifacts
   b. Deploy code
   c. Run test methods
   d. Analyze coverage (optional)
   e. Record results
3. Report the results of every unit that ran to completion

A failing unit never stops the run: its stage reports the error and the
orchestrator moves on to the next unit. Only the connection and protocol
version checks are fatal.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, TypeVar

from ..artifacts.loader import ArtifactLoader, FileArtifactLoader, tested_unit_name
from ..coverage.analyzer import CoverageAnalyzer, CoverageAnalyzerProtocol, CoverageStats
from ..errors import (
    CoverageAnalysisError,
    FatalSetupError,
    UnitDeployError,
    UnitError,
    UnitLoadError,
    UnitMethodRunError,
    UnitMethodStartError,
)
from ..suite.schema import RunSpec
from ..transport.http_client import DeployedInstance, ExecutionClient
from .events import (
    ContractDone,
    ContractStarted,
    Listener,
    MethodsDone,
    MethodsStarted,
    Notification,
    NotificationChannel,
    NotificationKind,
    RunDone,
    RunStarted,
)
from .method_runner import MethodRunner, MethodRunnerFactory, MethodRunnerProtocol
from .result_collector import ResultEntry, RunResults

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXPECTED_PROTOCOL_VERSION = "0.5.0"


class OrchestratorState(str, Enum):
    """Where the orchestrator is in a run."""
    IDLE = "idle"
    CONNECTING = "connecting"
    LOADING = "loading"
    DEPLOYING = "deploying"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class OrchestratorConfig:
    """Configuration for suite runs.

    ``stage_timeout`` bounds the deploy stage and the method stage of each
    unit. None waits forever, so a collaborator that never answers stalls
    the rest of the run.
    """
    expected_protocol_version: str = EXPECTED_PROTOCOL_VERSION
    stage_timeout: Optional[float] = None
    logger: Optional[logging.Logger] = None


class Orchestrator:
    """Runs the units of a RunSpec one after another.

    Listeners subscribe to ``channel`` (or via ``subscribe``) and receive the
    run-started, contract-started, methods-started, methods-done,
    contract-done and run-done notifications in order.
    """

    def __init__(
        self,
        client: ExecutionClient,
        loader: Optional[ArtifactLoader] = None,
        coverage_analyzer: Optional[CoverageAnalyzerProtocol] = None,
        runner_factory: MethodRunnerFactory = MethodRunner,
        config: Optional[OrchestratorConfig] = None,
    ):
        """Initialize orchestrator.

        Args:
            client: Execution environment client.
            loader: Artifact loader (default: file system loader).
            coverage_analyzer: Coverage analyzer (default: name-reference analyzer).
            runner_factory: Builds a method runner from (unit_name, instance).
            config: Run configuration.
        """
        self.client = client
        self.loader = loader or FileArtifactLoader()
        self.coverage_analyzer = coverage_analyzer or CoverageAnalyzer()
        self.runner_factory = runner_factory
        self.config = config or OrchestratorConfig()
        self.channel = NotificationChannel()
        self.log = self.config.logger or logger

        self._spec: Optional[RunSpec] = None
        self._cursor = 0
        self._results = RunResults()
        self._state = OrchestratorState.IDLE

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def cursor(self) -> int:
        """Index of the next unit to run; equals the unit count when done."""
        return self._cursor

    @property
    def results(self) -> Mapping[str, ResultEntry]:
        return self._results.view()

    def subscribe(
        self,
        listener: Listener,
        kinds: Optional[Iterable[NotificationKind]] = None,
    ) -> Callable[[], None]:
        """Register a listener for run notifications."""
        return self.channel.subscribe(listener, kinds)

    def run(self, spec: RunSpec) -> Optional[Mapping[str, ResultEntry]]:
        """Run ``spec`` to completion on a new event loop."""
        return asyncio.run(self.start(spec))

    async def start(self, spec: RunSpec) -> Optional[Mapping[str, ResultEntry]]:
        """Connect, check the protocol version and run every unit of ``spec``.

        Args:
            spec: The units to run and where to find and run them.

        Returns:
            Read-only results keyed by unit name, or None if setup failed.

        Raises:
            RuntimeError: If a run is already in progress.
        """
        if self._state not in (
            OrchestratorState.IDLE, OrchestratorState.DONE, OrchestratorState.FAILED
        ):
            raise RuntimeError(f"A run is already in progress ({self._state.value})")
        # Claimed before the first await so a concurrent start() is rejected.
        self._state = OrchestratorState.CONNECTING

        try:
            await self.client.connect(spec.endpoint)
            version = await self.client.get_protocol_version()
        except Exception as e:
            self._fail_setup(FatalSetupError(f"Failed to connect to {spec.endpoint}: {e}"), e)
            return None

        expected = self.config.expected_protocol_version
        if version != expected:
            self._fail_setup(
                FatalSetupError(f"Client version must be '{expected}'. Got: {version}")
            )
            return None

        self._spec = spec
        self._cursor = 0
        self._results = RunResults()
        self.log.info("Running %d units from %s", spec.total_units, spec.base_dir)
        self._emit(RunStarted(error=None, unit_names=spec.units))

        while await self.run_contract():
            pass
        return self._results.view()

    async def run_contract(self) -> bool:
        """Run the unit at the cursor, or finish the run.

        Returns:
            False once the run is done, True if units may remain.
        """
        if self._spec is None:
            raise RuntimeError("run_contract() called before start()")
        if self._state == OrchestratorState.DONE:
            return False

        if self._cursor == self._spec.total_units:
            self._state = OrchestratorState.DONE
            self.log.info("Run done: %d of %d units completed", len(self._results), self._cursor)
            self._emit(RunDone(results=self._results.view()))
            return False

        # Advance before working so a failing unit is never retried.
        unit_name = self._spec.units[self._cursor]
        self._cursor += 1

        instance = await self._deploy(unit_name)
        if instance is not None:
            await self._execute(unit_name, instance)
        return True

    async def _deploy(self, unit_name: str) -> Optional[DeployedInstance]:
        """Load and deploy a unit. Returns None if the unit failed."""
        self._state = OrchestratorState.LOADING
        try:
            artifact = self.loader.load(self._spec.base_dir, unit_name)
        except Exception as e:
            self.log.error("Failed to load files for %s: %s", unit_name, e)
            self._emit(ContractStarted(
                error=UnitLoadError(unit_name, str(e), cause=e), unit_name=unit_name
            ))
            return None
        self._emit(ContractStarted(error=None, unit_name=unit_name))

        self._state = OrchestratorState.DEPLOYING
        try:
            return await self._with_timeout(
                self.client.deploy(artifact.code, artifact.interface)
            )
        except Exception as e:
            self.log.error("Failed to deploy contract for test %s: %s", unit_name, e)
            self._emit(ContractDone(
                error=UnitDeployError(unit_name, str(e) or type(e).__name__, cause=e),
                unit_name=unit_name,
            ))
            return None

    async def _execute(self, unit_name: str, instance: DeployedInstance) -> None:
        """Run a deployed unit's methods until the unit reaches an outcome."""
        self._state = OrchestratorState.RUNNING
        unit_done = asyncio.get_running_loop().create_future()

        try:
            runner = self.runner_factory(unit_name, instance)
        except Exception as e:
            self._handle_methods_started(unit_name, unit_done, MethodsStarted(error=e))
            return

        unsubscribe = [
            runner.channel.once(
                NotificationKind.METHODS_STARTED,
                lambda n: self._dispatch(
                    self._handle_methods_started, unit_name, unit_done, n
                ),
            ),
            runner.channel.once(
                NotificationKind.METHODS_DONE,
                lambda n: self._dispatch(
                    self._handle_methods_done, unit_name, unit_done, n
                ),
            ),
        ]
        try:
            await self._with_timeout(self._run_runner(runner, unit_done))
        except Exception as e:
            if not unit_done.done():
                self._handle_methods_done(
                    unit_name, unit_done, MethodsDone(error=e, unit_name=unit_name)
                )
        finally:
            for remove in unsubscribe:
                remove()

    async def _run_runner(
        self, runner: MethodRunnerProtocol, unit_done: asyncio.Future
    ) -> None:
        await runner.run()
        # The runner may report after run() returns. Shielded so a stage
        # timeout leaves the unit's outcome to be reported as an error.
        await asyncio.shield(unit_done)

    def _dispatch(
        self,
        handler: Callable[[str, asyncio.Future, Any], None],
        unit_name: str,
        unit_done: asyncio.Future,
        notification: Notification,
    ) -> None:
        try:
            handler(unit_name, unit_done, notification)
        except Exception as e:
            self.log.exception("Failed to handle %s for %s", notification.kind.value, unit_name)
            if not unit_done.done():
                # The unit still needs a terminal notification.
                self._emit(MethodsDone(
                    error=UnitMethodRunError(unit_name, str(e) or type(e).__name__, cause=e),
                    unit_name=unit_name,
                ))
                unit_done.set_result(None)

    def _handle_methods_started(
        self, unit_name: str, unit_done: asyncio.Future, notification: MethodsStarted
    ) -> None:
        if unit_done.done():
            return

        error = None
        if notification.error is not None:
            error = _unit_error(UnitMethodStartError, unit_name, notification.error)
            self.log.error("Failed to start methods for %s: %s", unit_name, error)

        self._emit(MethodsStarted(
            error=error, methods=notification.methods, unit_name=unit_name
        ))
        # No methods-done follows a failed start.
        if error is not None:
            unit_done.set_result(None)

    def _handle_methods_done(
        self, unit_name: str, unit_done: asyncio.Future, notification: MethodsDone
    ) -> None:
        if unit_done.done():
            return

        if notification.error is None and notification.result is None:
            notification = MethodsDone(
                error=UnitMethodRunError(unit_name, "no method statistics reported"),
                unit_name=unit_name,
            )

        if notification.error is not None:
            error = _unit_error(UnitMethodRunError, unit_name, notification.error)
            self.log.error("Failed to run methods for %s: %s", unit_name, error)
            self._emit(MethodsDone(error=error, unit_name=unit_name, result=notification.result))
            unit_done.set_result(None)
            return

        self._state = OrchestratorState.AGGREGATING
        entry = ResultEntry(test_results=notification.result)
        if self._spec.coverage:
            coverage, coverage_error = self._analyze_coverage(unit_name)
            if coverage_error is not None:
                self.log.warning(
                    "Failed to do coverage analysis for %s. Skipping: %s",
                    unit_name, coverage_error,
                )
            else:
                entry.coverage_results = coverage

        self._results.record(unit_name, entry)
        self.log.debug("Recorded results for %s", unit_name)
        self._emit(MethodsDone(error=None, unit_name=unit_name, result=entry))
        self._emit(ContractDone(error=None, unit_name=unit_name))
        unit_done.set_result(None)

    def _analyze_coverage(
        self, unit_name: str
    ) -> tuple[Optional[CoverageStats], Optional[CoverageAnalysisError]]:
        """Coverage of the tested unit, or the error that prevented it."""
        try:
            trace = self.loader.load_trace(self._spec.base_dir, unit_name)
            tested_interface = self.loader.load_interface(
                self._spec.base_dir, tested_unit_name(unit_name)
            )
            return self.coverage_analyzer.analyze(unit_name, trace, tested_interface), None
        except CoverageAnalysisError as e:
            return None, e
        except Exception as e:
            error = CoverageAnalysisError(f"{unit_name}: {e}")
            error.__cause__ = e
            return None, error

    def _fail_setup(
        self, error: FatalSetupError, cause: Optional[BaseException] = None
    ) -> None:
        if cause is not None:
            error.__cause__ = cause
        self._state = OrchestratorState.FAILED
        self.log.error("Run setup failed: %s", error)
        self._emit(RunStarted(error=error))

    def _emit(self, notification: Notification) -> None:
        self.channel.emit(notification)

    async def _with_timeout(self, awaitable: Awaitable[T]) -> T:
        if self.config.stage_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, self.config.stage_timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Stage timed out after {self.config.stage_timeout}s"
            ) from e


def _unit_error(
    error_type: type[UnitError], unit_name: str, error: BaseException
) -> UnitError:
    """Scope ``error`` to ``unit_name``, keeping errors that already are."""
    if isinstance(error, UnitError):
        return error
    return error_type(unit_name, str(error) or type(error).__name__, cause=error)
