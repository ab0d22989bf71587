"""Run lifecycle notifications.

Every notification is a small immutable record. Listeners register on a
NotificationChannel owned by the emitter; there is no process-wide emitter.

Per successful unit the orchestrator emits, in order:

    ContractStarted -> MethodsStarted -> MethodsDone -> ContractDone

A failing unit truncates the sequence at the point of failure.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Union

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Names of the lifecycle notifications."""
    RUN_STARTED = "run-started"
    CONTRACT_STARTED = "contract-started"
    METHODS_STARTED = "methods-started"
    METHODS_DONE = "methods-done"
    CONTRACT_DONE = "contract-done"
    RUN_DONE = "run-done"


@dataclass(frozen=True)
class RunStarted:
    error: Optional[Exception] = None
    unit_names: Optional[tuple[str, ...]] = None
    kind: NotificationKind = NotificationKind.RUN_STARTED


@dataclass(frozen=True)
class ContractStarted:
    error: Optional[Exception]
    unit_name: str
    kind: NotificationKind = NotificationKind.CONTRACT_STARTED


@dataclass(frozen=True)
class MethodsStarted:
    error: Optional[Exception] = None
    methods: Optional[tuple[str, ...]] = None
    unit_name: Optional[str] = None
    kind: NotificationKind = NotificationKind.METHODS_STARTED


@dataclass(frozen=True)
class MethodsDone:
    """Methods finished.

    ``result`` is the runner's statistics when emitted by a method runner,
    and the composed ResultEntry when forwarded by the orchestrator.
    """
    error: Optional[Exception]
    unit_name: str
    result: Any = None
    kind: NotificationKind = NotificationKind.METHODS_DONE


@dataclass(frozen=True)
class ContractDone:
    error: Optional[Exception] = None
    unit_name: Optional[str] = None
    kind: NotificationKind = NotificationKind.CONTRACT_DONE


@dataclass(frozen=True)
class RunDone:
    results: Mapping[str, Any]
    kind: NotificationKind = NotificationKind.RUN_DONE

    @property
    def error(self) -> None:
        return None


Notification = Union[
    RunStarted, ContractStarted, MethodsStarted, MethodsDone, ContractDone, RunDone
]
Listener = Callable[[Notification], None]


class NotificationChannel:
    """Synchronous, ordered delivery of notifications to listeners."""

    def __init__(self):
        self._listeners: list[tuple[Listener, Optional[frozenset], bool]] = []

    def subscribe(
        self,
        listener: Listener,
        kinds: Optional[Iterable[NotificationKind]] = None,
    ) -> Callable[[], None]:
        """Register ``listener`` for ``kinds`` (all kinds if None).

        Returns:
            A callable that removes the listener.
        """
        entry = (listener, frozenset(kinds) if kinds is not None else None, False)
        self._listeners.append(entry)
        return lambda: self._remove(entry)

    def once(self, kind: NotificationKind, handler: Listener) -> Callable[[], None]:
        """Register ``handler`` for the next notification of ``kind`` only."""
        entry = (handler, frozenset([kind]), True)
        self._listeners.append(entry)
        return lambda: self._remove(entry)

    def emit(self, notification: Notification) -> None:
        """Deliver ``notification`` to every matching listener in registration order.

        A listener that raises is logged and skipped.
        """
        for entry in list(self._listeners):
            listener, kinds, one_shot = entry
            if kinds is not None and notification.kind not in kinds:
                continue
            if one_shot:
                self._remove(entry)
            try:
                listener(notification)
            except Exception:
                logger.exception("Listener failed on %s", notification.kind.value)

    def __len__(self) -> int:
        return len(self._listeners)

    def _remove(self, entry) -> None:
        if entry in self._listeners:
            self._listeners.remove(entry)
