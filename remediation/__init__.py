"""Remediation pipeline for the search-indexing service."""

__all__ = [
    "RemediationOrchestrator",
    "RemediationSettings",
    "build_live_orchestrator",
    "build_offline_orchestrator",
    "format_report",
]


def __getattr__(name: str):
    if name in {"RemediationOrchestrator", "RemediationSettings"}:
        from remediation import orchestrator

        return getattr(orchestrator, name)
    if name in {"build_live_orchestrator", "build_offline_orchestrator"}:
        from remediation import factory

        return getattr(factory, name)
    if name == "format_report":
        from remediation.report import format_report

        return format_report
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
