"""Coverage analysis.

Correlates the syntax tree of a test unit with the interface of the unit
it tests: a function of the tested unit counts as covered when the test
source references it by name.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from ..errors import CoverageAnalysisError

# Fields of syntax tree nodes that carry referenced identifiers.
IDENTIFIER_FIELDS = ("name", "memberName", "member_name", "value")


@dataclass
class CoverageStats:
    """Coverage of a tested unit's functions by one test unit."""
    unit_name: str
    covered: list[str] = field(default_factory=list)
    uncovered: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.covered) + len(self.uncovered)

    @property
    def ratio(self) -> float:
        """Covered share of functions; 1.0 when there is nothing to cover."""
        if self.total == 0:
            return 1.0
        return len(self.covered) / self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "covered": list(self.covered),
            "uncovered": list(self.uncovered),
            "total": self.total,
            "ratio": round(self.ratio, 4),
        }


class CoverageAnalyzerProtocol(Protocol):
    def analyze(
        self, unit_name: str, trace: Any, tested_interface: list[dict[str, Any]]
    ) -> CoverageStats:
        ...


class CoverageAnalyzer:
    """Name-reference coverage of a tested unit's interface."""

    def analyze(
        self, unit_name: str, trace: Any, tested_interface: list[dict[str, Any]]
    ) -> CoverageStats:
        """Compute coverage of ``tested_interface`` by the syntax tree ``trace``.

        Args:
            unit_name: Name of the test unit.
            trace: Syntax tree of the test unit (nested dicts and lists).
            tested_interface: Interface descriptor of the tested unit.

        Returns:
            CoverageStats listing covered and uncovered functions.

        Raises:
            CoverageAnalysisError: If either input is malformed.
        """
        if not isinstance(trace, (dict, list)):
            raise CoverageAnalysisError(
                f"{unit_name}: syntax tree must be an object or list, got {type(trace).__name__}"
            )
        if not isinstance(tested_interface, list):
            raise CoverageAnalysisError(
                f"{unit_name}: interface descriptor must be a list, got {type(tested_interface).__name__}"
            )

        referenced = collect_identifiers(trace)
        stats = CoverageStats(unit_name=unit_name)
        for entry in tested_interface:
            if not isinstance(entry, dict):
                raise CoverageAnalysisError(f"{unit_name}: malformed interface entry {entry!r}")
            if entry.get("type", "function") != "function" or not entry.get("name"):
                continue
            name = entry["name"]
            if name in referenced:
                stats.covered.append(name)
            else:
                stats.uncovered.append(name)
        return stats


def collect_identifiers(tree: Any) -> set[str]:
    """All identifier strings referenced anywhere in ``tree``."""
    found: set[str] = set()
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            for key, value in node.items():
                if key in IDENTIFIER_FIELDS and isinstance(value, str):
                    found.add(value)
                elif isinstance(value, (dict, list)):
                    stack.append(value)
        elif isinstance(node, list):
            stack.extend(node)
    return found
