"""Reporting module - run progress and JSON reports."""

from .console import ConsoleReporter
from .json_reporter import JsonReporter, UnitReport

__all__ = ["ConsoleReporter", "JsonReporter", "UnitReport"]
