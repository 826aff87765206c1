"""Diagnostics helpers for searchdoctor."""

__all__ = [
    "DiagnosticResult",
    "DiagnosticStatus",
    "format_results",
    "run_diagnostics",
]


def __getattr__(name: str):
    if name in {"DiagnosticResult", "DiagnosticStatus"}:
        from diagnostics import models

        return getattr(models, name)
    if name in {"format_results", "run_diagnostics"}:
        from diagnostics import runner

        return getattr(runner, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
