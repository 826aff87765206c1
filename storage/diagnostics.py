"""Diagnostics routines for the index artifact store."""

from __future__ import annotations

from diagnostics.models import DiagnosticResult, DiagnosticStatus
from storage.index_store import IndexStore


def probe(store: IndexStore) -> DiagnosticResult:
    """Inspect the index artifacts without modifying them.

    Args:
        store: Index store whose artifact locations are inspected.

    Returns:
        Diagnostic result describing the on-disk index.
    """

    name = "storage"
    artifacts = store.locate()
    try:
        inventory = store.inventory(artifacts)
    except OSError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Index root {artifacts.root_path} unreadable: {exc}",
        )

    if not inventory.root_exists:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Index root {artifacts.root_path} not found; clearing will be skipped",
        )

    size_mb = inventory.primary_size / (1024 * 1024)
    primary = (
        f"{artifacts.primary_file.name} {size_mb:.1f} MiB"
        if inventory.primary_exists
        else f"{artifacts.primary_file.name} missing"
    )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"{primary}, {inventory.log_count} log file(s) under {artifacts.root_path}",
    )
