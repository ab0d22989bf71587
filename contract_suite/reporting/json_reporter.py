"""JSON report generator for suite runs.

Listens to run notifications and generates structured JSON reports.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from ..errors import UnitError
from ..runner.events import (
    ContractDone,
    ContractStarted,
    MethodsDone,
    MethodsStarted,
    Notification,
    NotificationChannel,
    RunDone,
    RunStarted,
)
from ..runner.result_collector import ResultEntry


@dataclass
class UnitReport:
    """Outcome of one unit as seen through notifications."""
    name: str
    status: str = "not-run"  # passed | failed | error | not-run
    stage: Optional[str] = None
    error: Optional[str] = None
    tests_total: int = 0
    tests_passed: int = 0
    tests_failed: int = 0
    coverage: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "stage": self.stage,
            "error": self.error,
            "tests": {
                "total": self.tests_total,
                "passed": self.tests_passed,
                "failed": self.tests_failed,
            },
            "coverage": self.coverage,
        }


class JsonReporter:
    """Builds JSON reports from run notifications."""

    def __init__(self):
        self._unit_names: tuple[str, ...] = ()
        self._units: dict[str, UnitReport] = {}
        self._setup_error: Optional[str] = None
        self._results: Optional[Mapping[str, ResultEntry]] = None

    @property
    def finished(self) -> bool:
        """Whether run-done has been received."""
        return self._results is not None

    def attach(self, channel: NotificationChannel) -> Callable[[], None]:
        """Subscribe to ``channel``. Returns the unsubscribe callable."""
        return channel.subscribe(self.handle)

    def handle(self, notification: Notification) -> None:
        """Record one notification."""
        if isinstance(notification, RunStarted):
            if notification.error is not None:
                self._setup_error = str(notification.error)
            else:
                self._unit_names = tuple(notification.unit_names or ())

        elif isinstance(notification, (ContractStarted, ContractDone, MethodsStarted)):
            if notification.error is not None and notification.unit_name:
                self._record_error(notification.unit_name, notification.error)

        elif isinstance(notification, MethodsDone):
            if notification.error is not None:
                self._record_error(notification.unit_name, notification.error)
            elif isinstance(notification.result, ResultEntry):
                self._record_entry(notification.unit_name, notification.result)

        elif isinstance(notification, RunDone):
            self._results = notification.results

    def generate(self, duration_ms: int = 0) -> dict[str, Any]:
        """Generate a JSON report from the recorded notifications.

        Args:
            duration_ms: Run duration in milliseconds.

        Returns:
            Report dictionary ready for JSON serialization.
        """
        units = [self._unit(name) for name in self._unit_names]
        passed = sum(1 for u in units if u.status == "passed")
        failed = sum(1 for u in units if u.status == "failed")
        errored = sum(1 for u in units if u.status == "error")

        all_passed = (
            self._setup_error is None
            and self.finished
            and passed == len(units)
        )

        results = {
            name: entry.to_dict() for name, entry in (self._results or {}).items()
        }

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "passed" if all_passed else "failed",
            "summary": {
                "units": len(units),
                "passed": passed,
                "failed": failed,
                "errored": errored,
                "tests_total": sum(u.tests_total for u in units),
                "tests_passed": sum(u.tests_passed for u in units),
                "tests_failed": sum(u.tests_failed for u in units),
                "duration_ms": duration_ms,
            },
            "units": [u.to_dict() for u in units],
            "results": results,
            "error": self._setup_error,
        }

    def save(self, report: dict[str, Any], path: Path) -> Path:
        """Save report to a JSON file.

        Args:
            report: Report dictionary.
            path: Output file path.

        Returns:
            Path to the saved file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return path

    def to_json_string(self, report: dict[str, Any], pretty: bool = True) -> str:
        """Convert report to JSON string."""
        if pretty:
            return json.dumps(report, indent=2, ensure_ascii=False)
        return json.dumps(report, ensure_ascii=False)

    def generate_flow_output(
        self,
        report: dict[str, Any],
        report_path: Optional[str] = None,
    ) -> dict[str, Any]:
        """Generate the CLI output envelope.

        {
            "success": bool,
            "command": "run",
            "data": { ... },
            "message": str
        }

        Args:
            report: Report dictionary.
            report_path: Path where report was saved.

        Returns:
            Envelope dictionary.
        """
        summary = report["summary"]
        all_passed = report["status"] == "passed"

        data: dict[str, Any] = {
            "units": summary["units"],
            "passed": summary["passed"],
            "failed": summary["failed"],
            "errored": summary["errored"],
            "tests_total": summary["tests_total"],
            "tests_passed": summary["tests_passed"],
            "duration_ms": summary["duration_ms"],
            "results": report["results"],
        }

        if report_path:
            data["report_path"] = report_path

        if report.get("error"):
            message = f"Run failed: {report['error']}"
        elif not all_passed:
            message = f"{summary['passed']} of {summary['units']} units passed"
        else:
            message = "All units passed"

        return {
            "success": all_passed,
            "command": "run",
            "data": data,
            "message": message,
        }

    def _unit(self, name: str) -> UnitReport:
        if name not in self._units:
            self._units[name] = UnitReport(name=name)
        return self._units[name]

    def _record_error(self, unit_name: str, error: Exception) -> None:
        unit = self._unit(unit_name)
        unit.status = "error"
        unit.stage = error.stage if isinstance(error, UnitError) else None
        unit.error = str(error)

    def _record_entry(self, unit_name: str, entry: ResultEntry) -> None:
        unit = self._unit(unit_name)
        stats = entry.test_results
        unit.status = "passed" if stats.all_passed else "failed"
        unit.tests_total = stats.total
        unit.tests_passed = stats.passed
        unit.tests_failed = stats.failed
        if entry.coverage_results is not None:
            unit.coverage = entry.coverage_results.ratio
