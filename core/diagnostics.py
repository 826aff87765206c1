"""Diagnostics routines for the core subsystem."""

from __future__ import annotations

import importlib.util

from core.privilege import PrivilegeContext
from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(privilege: PrivilegeContext | None = None) -> DiagnosticResult:
    """Run a core probe to validate logging readiness and elevation.

    Args:
        privilege: Capability the run will use; detected when omitted.

    Returns:
        Diagnostic result indicating core readiness.
    """

    name = "core"
    from core import logging as core_logging
    from core.privilege import detect_privilege

    if core_logging.logger is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Core logger failed to initialize",
        )

    privilege = privilege if privilege is not None else detect_privilege()
    rich_available = importlib.util.find_spec("rich") is not None
    logging_details = "rich logging" if rich_available else "plain logging (rich not installed)"
    if not privilege.elevated:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"{logging_details}; {privilege.principal} is not elevated, escalation will be denied",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"{logging_details}; running elevated as {privilege.principal}",
    )
