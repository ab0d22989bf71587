"""Result collector for suite runs.

Holds the per-unit result entries of a run, in execution order.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Optional

from ..coverage.analyzer import CoverageStats
from .method_runner import MethodStats


@dataclass
class ResultEntry:
    """Result of one successfully run unit."""
    test_results: MethodStats
    coverage_results: Optional[CoverageStats] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize; the coverage key is omitted when there is no coverage."""
        data: dict[str, Any] = {"testResults": self.test_results.to_dict()}
        if self.coverage_results is not None:
            data["coverageResults"] = self.coverage_results.to_dict()
        return data


class RunResults(Mapping[str, ResultEntry]):
    """Unit name -> ResultEntry, in the order units finished.

    Each unit name can be recorded once.
    """

    def __init__(self):
        self._entries: dict[str, ResultEntry] = {}

    def record(self, unit_name: str, entry: ResultEntry) -> None:
        """Store the entry for ``unit_name``.

        Raises:
            ValueError: If the unit already has an entry.
        """
        if unit_name in self._entries:
            raise ValueError(f"Result for '{unit_name}' already recorded")
        self._entries[unit_name] = entry

    def view(self) -> Mapping[str, ResultEntry]:
        """Read-only view of the entries."""
        return MappingProxyType(self._entries)

    def to_dict(self) -> dict[str, Any]:
        return {name: entry.to_dict() for name, entry in self._entries.items()}

    def __getitem__(self, unit_name: str) -> ResultEntry:
        return self._entries[unit_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
