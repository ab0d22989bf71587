"""Console progress output for suite runs."""

from typing import Callable

import click

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


class ConsoleReporter:
    """Prints run progress to stderr, keeping stdout for machine output."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def attach(self, channel: NotificationChannel) -> Callable[[], None]:
        return channel.subscribe(self.handle)

    def handle(self, notification: Notification) -> None:
        if isinstance(notification, RunStarted):
            if notification.error is not None:
                self._echo(f"ERROR: {notification.error}")
            else:
                names = notification.unit_names or ()
                self._echo(f"Running {len(names)} units: {', '.join(names)}")

        elif isinstance(notification, ContractStarted):
            if notification.error is not None:
                self._echo(f"[{notification.unit_name}] ERROR: {notification.error}")
            else:
                self._echo(f"[{notification.unit_name}] deploying")

        elif isinstance(notification, MethodsStarted):
            if notification.error is not None:
                self._echo(f"[{notification.unit_name}] ERROR: {notification.error}")
            elif self.verbose:
                self._echo(f"  methods: {', '.join(notification.methods or ())}")

        elif isinstance(notification, MethodsDone):
            if notification.error is not None:
                self._echo(f"[{notification.unit_name}] ERROR: {notification.error}")
            elif isinstance(notification.result, ResultEntry):
                self._print_entry(notification.unit_name, notification.result)

        elif isinstance(notification, ContractDone):
            if notification.error is not None:
                self._echo(f"[{notification.unit_name}] ERROR: {notification.error}")

        elif isinstance(notification, RunDone):
            passed = sum(
                1 for e in notification.results.values() if e.test_results.all_passed
            )
            self._echo(f"\nResults: {passed}/{len(notification.results)} completed units passed")

    def _print_entry(self, unit_name: str, entry: ResultEntry) -> None:
        stats = entry.test_results
        line = f"[{unit_name}] {stats.passed}/{stats.total} passed"
        if entry.coverage_results is not None:
            line += f", coverage {entry.coverage_results.ratio:.0%}"
        self._echo(line)
        for r in stats.results:
            status = "PASS" if r.passed else "FAIL"
            detail = f": {r.message}" if r.message else ""
            self._echo(f"  [{status}] {r.name}{detail}")

    def _echo(self, message: str) -> None:
        click.echo(message, err=True)
