"""Models for read-only diagnostics collected before a remediation run."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum


class DiagnosticStatus(str, Enum):
    """Status for diagnostics checks."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class DiagnosticResult:
    """Result for a single diagnostic check."""

    name: str
    status: DiagnosticStatus
    details: str


Probe = Callable[[], DiagnosticResult]
DiagnosticsCollector = Callable[[], list[DiagnosticResult]]


def has_failures(results: Iterable[DiagnosticResult]) -> bool:
    """Return True when any probe reported FAIL."""

    return any(result.status is DiagnosticStatus.FAIL for result in results)
