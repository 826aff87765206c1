"""Diagnostics routines for the target service and its repair interface."""

from __future__ import annotations

from core.errors import RemediationError
from core.models import RunState
from diagnostics.models import DiagnosticResult, DiagnosticStatus
from services.service_controller import ServiceController


def probe(controller: ServiceController, service_name: str) -> DiagnosticResult:
    """Report whether the service is registered and how it is configured.

    Args:
        controller: Service controller used for a read-only query.
        service_name: Name of the target service.

    Returns:
        Diagnostic result describing the live service state.
    """

    name = "services"
    try:
        state = controller.query(service_name)
    except RemediationError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Service query failed ({exc.kind.value}): {exc}",
        )

    details = f"{service_name} is {state.run_state.value}, startup {state.startup_mode.value}"
    if state.run_state is RunState.RUNNING:
        return DiagnosticResult(name=name, status=DiagnosticStatus.PASS, details=details)
    return DiagnosticResult(name=name, status=DiagnosticStatus.WARN, details=details)


def probe_repair(invoker: object) -> DiagnosticResult:
    """Report whether the administrative reset interface can be used."""

    name = "repair"
    unavailable_reason = getattr(invoker, "unavailable_reason", None)
    if unavailable_reason is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details="Repair interface availability cannot be checked",
        )
    reason = unavailable_reason()
    if reason is not None:
        return DiagnosticResult(name=name, status=DiagnosticStatus.WARN, details=reason)
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Administrative index reset available",
    )
