"""Renderers for remediation reports."""

from __future__ import annotations

import json

from core.models import OverallStatus, RemediationReport


_OUTCOME_LINES = {
    OverallStatus.SUCCESS: "Search service repaired and running.",
    OverallStatus.PARTIAL_SUCCESS: "Search service running; some remediation steps did not fully apply.",
    OverallStatus.FAILED: "Search service is not running after remediation.",
}


def format_report(report: RemediationReport) -> str:
    """Return a human-friendly remediation report."""

    lines = [f"Remediation report for {report.service_name}", "-" * 60]
    if report.diagnostics:
        lines.append("Pre-run diagnostics:")
        for result in report.diagnostics:
            lines.append(f"  [{result.status.value}] {result.name}: {result.details}")
        lines.append("")
    for index, result in enumerate(report.stage_results, start=1):
        marker = " (escalated)" if result.escalation_used else ""
        lines.append(
            f"{index}. [{result.status.value.upper()}] {result.stage.value}{marker}: {result.detail}"
        )
    lines.append("-" * 60)
    lines.append(f"Overall: {report.overall_status.value} ({report.duration_s:.1f}s)")
    lines.append(_OUTCOME_LINES[report.overall_status])
    if report.restart_required:
        lines.append(
            "Restart the computer: open file handles and loaded driver state can only be "
            "released by a full OS restart."
        )
    return "\n".join(lines)


def report_to_json(report: RemediationReport) -> str:
    """Serialize a report for automation callers."""

    return json.dumps(report.to_dict(), indent=2, sort_keys=False)


def exit_code_for(report: RemediationReport) -> int:
    """Map the overall outcome onto a process exit code."""

    return 1 if report.overall_status is OverallStatus.FAILED else 0
