"""Tests for the read-only diagnostics probes and runner."""

from __future__ import annotations

from pathlib import Path

from config.diagnostics import probe as config_probe
from core.diagnostics import probe as core_probe
from core.models import RunState
from core.privilege import PrivilegeContext
from diagnostics.models import DiagnosticResult, DiagnosticStatus, has_failures
from diagnostics.runner import collector_for, format_results, run_diagnostics
from remediation.factory import build_collector, seed_offline_index
from services.diagnostics import probe as services_probe, probe_repair
from services.repair_api import FakeRepairInvoker
from services.service_controller import FakeServiceController
from storage.diagnostics import probe as storage_probe
from storage.index_store import IndexStore


def test_config_probe_passes_for_packaged_config() -> None:
    result = config_probe()

    assert result.status is DiagnosticStatus.PASS


def test_config_probe_fails_without_default(tmp_path: Path) -> None:
    result = config_probe(tmp_path)

    assert result.status is DiagnosticStatus.FAIL


def test_config_probe_fails_on_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text("service: [unclosed", encoding="utf-8")

    result = config_probe(tmp_path)

    assert result.status is DiagnosticStatus.FAIL
    assert "YAML" in result.details


def test_core_probe_warns_when_not_elevated() -> None:
    result = core_probe(PrivilegeContext.unelevated_as("alice"))

    assert result.status is DiagnosticStatus.WARN
    assert "alice" in result.details


def test_core_probe_passes_when_elevated() -> None:
    result = core_probe(PrivilegeContext.elevated_as())

    assert result.status is DiagnosticStatus.PASS


def test_services_probe_reports_state() -> None:
    running = services_probe(FakeServiceController(run_state=RunState.RUNNING), "WSearch")
    stopped = services_probe(FakeServiceController(run_state=RunState.STOPPED), "WSearch")
    missing = services_probe(FakeServiceController(registered=False), "WSearch")

    assert running.status is DiagnosticStatus.PASS
    assert stopped.status is DiagnosticStatus.WARN
    assert "stopped" in stopped.details
    assert missing.status is DiagnosticStatus.FAIL
    assert "not_found" in missing.details


def test_storage_probe_warns_on_missing_root(tmp_path: Path) -> None:
    result = storage_probe(IndexStore(environ={"PROGRAMDATA": str(tmp_path)}))

    assert result.status is DiagnosticStatus.WARN


def test_storage_probe_counts_seeded_artifacts(tmp_path: Path) -> None:
    store = seed_offline_index({}, tmp_path)

    result = storage_probe(store)

    assert result.status is DiagnosticStatus.PASS
    assert "2 log file(s)" in result.details


def test_repair_probe_reflects_availability() -> None:
    assert probe_repair(FakeRepairInvoker()).status is DiagnosticStatus.PASS
    assert probe_repair(FakeRepairInvoker(available=False)).status is DiagnosticStatus.WARN
    assert probe_repair(object()).status is DiagnosticStatus.WARN


def test_runner_keeps_going_after_probe_exception() -> None:
    def broken_probe() -> DiagnosticResult:
        raise RuntimeError("probe exploded")

    def ok_probe() -> DiagnosticResult:
        return DiagnosticResult("ok", DiagnosticStatus.PASS, "fine")

    results = run_diagnostics([broken_probe, ok_probe])

    assert [result.status for result in results] == [DiagnosticStatus.FAIL, DiagnosticStatus.PASS]
    assert results[0].name == "broken_probe"
    assert has_failures(results)
    assert "[FAIL] broken_probe" in format_results(results)


def test_collector_for_runs_bound_probes_each_call() -> None:
    calls: list[int] = []

    def counting_probe() -> DiagnosticResult:
        calls.append(1)
        return DiagnosticResult("count", DiagnosticStatus.PASS, str(len(calls)))

    collect = collector_for([counting_probe])

    assert collect()[0].details == "1"
    assert collect()[0].details == "2"


def test_build_collector_covers_every_subsystem(tmp_path: Path) -> None:
    store = seed_offline_index({}, tmp_path)
    collect = build_collector(
        FakeServiceController(),
        store,
        FakeRepairInvoker(),
        PrivilegeContext.elevated_as(),
        "WSearch",
    )

    results = collect()

    assert [result.name for result in results] == ["config", "core", "services", "storage", "repair"]
    assert not has_failures(results)
