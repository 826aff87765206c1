"""Wiring of orchestrators and diagnostics collectors from configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from config.diagnostics import probe as config_probe
from core.diagnostics import probe as core_probe
from core.models import RunState, StartupMode
from core.privilege import PrivilegeContext, detect_privilege
from diagnostics.models import DiagnosticResult, DiagnosticsCollector
from diagnostics.runner import collector_for
from remediation.orchestrator import RemediationOrchestrator, RemediationSettings
from services.diagnostics import probe as services_probe, probe_repair
from services.repair_api import FakeRepairInvoker, TroubleshootingPackRepair
from services.service_controller import FakeServiceController, WindowsServiceController
from services.startup_config import FakeStartupConfigStore, WindowsStartupConfigStore
from storage.diagnostics import probe as storage_probe
from storage.index_store import IndexStore
from storage.permissions import FakePermissionEscalator, WindowsPermissionEscalator


def build_collector(
    services: Any,
    store: IndexStore,
    repair: Any,
    privilege: PrivilegeContext,
    service_name: str,
    config_dir: Path | None = None,
) -> DiagnosticsCollector:
    """Bind the read-only probes to the components of one run."""

    def config_probe_bound() -> DiagnosticResult:
        return config_probe(config_dir)

    def core_probe_bound() -> DiagnosticResult:
        return core_probe(privilege)

    def services_probe_bound() -> DiagnosticResult:
        return services_probe(services, service_name)

    def storage_probe_bound() -> DiagnosticResult:
        return storage_probe(store)

    def repair_probe_bound() -> DiagnosticResult:
        return probe_repair(repair)

    return collector_for(
        [
            config_probe_bound,
            core_probe_bound,
            services_probe_bound,
            storage_probe_bound,
            repair_probe_bound,
        ]
    )


def build_live_orchestrator(
    config: Mapping[str, Any],
    *,
    run_all: bool = False,
    privilege: PrivilegeContext | None = None,
    config_dir: Path | None = None,
) -> RemediationOrchestrator:
    """Wire the Windows-backed components described by ``config``."""

    privilege = privilege if privilege is not None else detect_privilege()
    settings = RemediationSettings.from_config(config, run_all=run_all)
    service_cfg = config.get("service") or {}
    services = WindowsServiceController.from_config(config, privilege)
    store = IndexStore.from_config(config)
    escalator = WindowsPermissionEscalator(
        privilege, command_timeout_s=float(service_cfg.get("command_timeout_s", 60.0))
    )
    startup_store = WindowsStartupConfigStore.from_config(config)
    repair = TroubleshootingPackRepair.from_config(config)
    return RemediationOrchestrator(
        services,
        store,
        escalator,
        startup_store,
        repair,
        settings,
        diagnostics=_maybe_collector(
            config, services, store, repair, privilege, settings.service_name, config_dir
        ),
    )


def seed_offline_index(config: Mapping[str, Any], base_dir: Path) -> IndexStore:
    """Create a throwaway index tree under ``base_dir`` and return its store."""

    index_cfg = config.get("index") or {}
    environ = {str(index_cfg.get("base_env", "PROGRAMDATA")): str(base_dir)}
    store = IndexStore.from_config(config, environ=environ)
    artifacts = store.locate()
    artifacts.root_path.mkdir(parents=True, exist_ok=True)
    artifacts.primary_file.write_bytes(b"offline index")
    for index in range(1, 3):
        (artifacts.root_path / f"MSS{index:05d}.log").write_text("offline", encoding="utf-8")
    return store


def build_offline_orchestrator(
    config: Mapping[str, Any],
    base_dir: Path,
    *,
    run_all: bool = False,
    config_dir: Path | None = None,
) -> RemediationOrchestrator:
    """Wire in-memory fakes and a seeded temporary index for dry runs."""

    privilege = PrivilegeContext.elevated_as("offline")
    settings = RemediationSettings.from_config(config, run_all=run_all)
    services = FakeServiceController(run_state=RunState.RUNNING, startup_mode=StartupMode.MANUAL)
    store = seed_offline_index(config, base_dir)
    escalator = FakePermissionEscalator.for_privilege(privilege)
    startup_store = FakeStartupConfigStore(on_write=services.follow_startup_store)
    repair = FakeRepairInvoker()
    return RemediationOrchestrator(
        services,
        store,
        escalator,
        startup_store,
        repair,
        settings,
        diagnostics=_maybe_collector(
            config, services, store, repair, privilege, settings.service_name, config_dir
        ),
    )


def _maybe_collector(
    config: Mapping[str, Any],
    services: Any,
    store: IndexStore,
    repair: Any,
    privilege: PrivilegeContext,
    service_name: str,
    config_dir: Path | None,
) -> DiagnosticsCollector | None:
    remediation_cfg = config.get("remediation") or {}
    if not remediation_cfg.get("consult_diagnostics", True):
        return None
    return build_collector(services, store, repair, privilege, service_name, config_dir)
