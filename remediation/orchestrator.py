"""Remediation orchestrator for the search-indexing service.

A run walks a fixed, linear pipeline::

    idle -> stopping_service -> clearing_index -> reconfiguring_startup
         -> starting_service -> verifying -> done

Every stage runs whatever happened before it. Failures are converted into
``StageResult`` values at the stage boundary, and only the final verification
decides whether the run as a whole failed.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import time
from typing import Any, Mapping

from core.errors import RemediationError, ServiceNotFound, classify_os_error
from core.logging import log_stage_result, logger as LOGGER
from core.models import (
    FailureKind,
    OperationResult,
    PipelineState,
    RemediationReport,
    RunState,
    StageName,
    StageResult,
    StageStatus,
    StartupMode,
)
from diagnostics.models import DiagnosticResult, DiagnosticStatus, DiagnosticsCollector
from services.repair_api import AlternateRepairInvoker
from services.service_controller import ServiceController
from services.startup_config import StartupConfigStore
from storage.index_store import IndexStore
from storage.permissions import PermissionEscalator


@dataclass(frozen=True)
class RemediationSettings:
    """Per-run switches for the escalating remediation strategies."""

    service_name: str = "WSearch"
    force_stop: bool = True
    allow_escalation: bool = True

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], *, run_all: bool = False
    ) -> "RemediationSettings":
        service_cfg = config.get("service") or {}
        remediation_cfg = config.get("remediation") or {}
        return cls(
            service_name=str(service_cfg.get("name", "WSearch")),
            force_stop=run_all or bool(remediation_cfg.get("force_stop", False)),
            allow_escalation=run_all or bool(remediation_cfg.get("allow_escalation", False)),
        )


class RemediationOrchestrator:
    """Drives one best-effort remediation pass and builds its report."""

    def __init__(
        self,
        services: ServiceController,
        index_store: IndexStore,
        escalator: PermissionEscalator,
        startup_store: StartupConfigStore,
        repair: AlternateRepairInvoker,
        settings: RemediationSettings | None = None,
        *,
        diagnostics: DiagnosticsCollector | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._services = services
        self._index_store = index_store
        self._escalator = escalator
        self._startup_store = startup_store
        self._repair = repair
        self._settings = settings or RemediationSettings()
        self._diagnostics = diagnostics
        self._clock = clock
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def settings(self) -> RemediationSettings:
        return self._settings

    def run(self) -> RemediationReport:
        """Run every stage in order and return the finished report."""

        self._state = PipelineState.IDLE
        started_at = self._clock()
        name = self._settings.service_name
        LOGGER.info(
            "[Remediation] Starting pass for %s (force_stop=%s, escalation=%s)",
            name,
            self._settings.force_stop,
            self._settings.allow_escalation,
        )
        diagnostics = self._collect_diagnostics()

        pipeline: list[tuple[PipelineState, StageName, Callable[[], StageResult]]] = [
            (PipelineState.STOPPING_SERVICE, StageName.STOP_SERVICE, self._stop_service),
            (PipelineState.CLEARING_INDEX, StageName.CLEAR_INDEX, self._clear_index),
            (PipelineState.RECONFIGURING_STARTUP, StageName.CONFIGURE_STARTUP, self._configure_startup),
            (PipelineState.STARTING_SERVICE, StageName.START_SERVICE, self._start_service),
            (PipelineState.VERIFYING, StageName.VERIFY, self._verify),
        ]
        results: list[StageResult] = []
        for state, stage, handler in pipeline:
            self._state = state
            result = self._run_stage(stage, handler)
            log_stage_result(result)
            results.append(result)
        self._state = PipelineState.DONE

        verification = results[-1]
        report = RemediationReport(
            service_name=name,
            stage_results=tuple(results),
            verified_running=verification.status is StageStatus.SUCCESS,
            diagnostics=tuple(diagnostics),
            started_at=started_at,
            finished_at=self._clock(),
        )
        LOGGER.info(
            "[Remediation] Finished: overall=%s restart_required=%s",
            report.overall_status.value,
            report.restart_required,
        )
        return report

    def _run_stage(self, stage: StageName, handler: Callable[[], StageResult]) -> StageResult:
        try:
            return handler()
        except RemediationError as exc:
            return StageResult(stage, StageStatus.FAILED, str(exc) or exc.kind.value, failure=exc.kind)
        except OSError as exc:
            return StageResult(stage, StageStatus.FAILED, str(exc), failure=classify_os_error(exc))
        except Exception as exc:  # noqa: BLE001 - remaining stages must still run
            LOGGER.exception("[Remediation] Stage %s raised unexpectedly", stage.value)
            return StageResult(
                stage,
                StageStatus.FAILED,
                f"Unexpected error: {exc}",
                failure=FailureKind.OS_ERROR,
            )

    def _collect_diagnostics(self) -> list[DiagnosticResult]:
        if self._diagnostics is None:
            return []
        try:
            results = list(self._diagnostics())
        except Exception as exc:  # noqa: BLE001 - diagnostics are advisory only
            LOGGER.exception("[Remediation] Diagnostics collector failed")
            return [
                DiagnosticResult(
                    name="collector",
                    status=DiagnosticStatus.FAIL,
                    details=f"Collector raised: {exc}",
                )
            ]
        for result in results:
            LOGGER.info("[Diagnostics] %s %s: %s", result.status.value, result.name, result.details)
        return results

    def _stop_service(self) -> StageResult:
        stage = StageName.STOP_SERVICE
        name = self._settings.service_name
        try:
            state = self._services.query(name)
        except ServiceNotFound as exc:
            return StageResult(stage, StageStatus.SKIPPED, str(exc), failure=FailureKind.NOT_FOUND)
        if state.run_state is RunState.STOPPED:
            return StageResult(stage, StageStatus.SKIPPED, f"Service {name} already stopped")

        result = self._services.stop(name, self._settings.force_stop)
        if result.failure is FailureKind.NOT_FOUND:
            return StageResult(stage, StageStatus.SKIPPED, result.detail, failure=result.failure)
        return _stage_from(stage, result)

    def _clear_index(self) -> StageResult:
        stage = StageName.CLEAR_INDEX
        artifacts = self._index_store.locate()
        result = self._index_store.clear(artifacts)
        if result.failure is not FailureKind.PERMISSION_DENIED:
            return _stage_from(stage, result)

        if not self._settings.allow_escalation:
            return StageResult(
                stage,
                StageStatus.FAILED,
                f"{result.detail}; ownership escalation disabled",
                failure=result.failure,
            )

        LOGGER.info("[Remediation] Access denied on %s; taking ownership", artifacts.root_path)
        escalation = self._escalator.take_ownership(artifacts.root_path)
        if not escalation.succeeded:
            return StageResult(
                stage,
                StageStatus.FAILED,
                f"{result.detail}; escalation failed: {escalation.detail}",
                escalation_used=True,
                failure=escalation.failure,
            )

        retry = self._index_store.clear(artifacts)
        return StageResult(
            stage,
            retry.status,
            f"{escalation.detail}; retry: {retry.detail}",
            escalation_used=True,
            failure=retry.failure,
        )

    def _configure_startup(self) -> StageResult:
        stage = StageName.CONFIGURE_STARTUP
        name = self._settings.service_name
        result = self._startup_store.set_startup_mode(name, StartupMode.AUTOMATIC_DELAYED)
        if result.failure is not FailureKind.STORE_MISSING:
            return _stage_from(stage, result)

        LOGGER.info("[Remediation] Delayed-start store missing; requesting plain automatic mode")
        fallback = self._services.set_startup_mode(name, StartupMode.AUTOMATIC)
        detail = f"{result.detail}; fallback to automatic via service manager: {fallback.detail}"
        if fallback.succeeded:
            return StageResult(
                stage, StageStatus.PARTIAL_SUCCESS, detail, failure=FailureKind.STORE_MISSING
            )
        return StageResult(stage, StageStatus.FAILED, detail, failure=fallback.failure)

    def _start_service(self) -> StageResult:
        stage = StageName.START_SERVICE
        name = self._settings.service_name
        primary = self._services.start(name)
        if primary.succeeded:
            return _stage_from(stage, primary)

        attempts = [f"primary start: {primary.detail}"]
        alternate = self._services.start_alternate(name)
        attempts.append(f"alternate start: {alternate.detail}")
        if alternate.succeeded:
            return StageResult(stage, alternate.status, "; ".join(attempts))

        repair = self._repair.reset_index()
        attempts.append(f"index reset: {repair.detail}")
        if not repair.succeeded:
            LOGGER.warning("[Remediation] Administrative reset not applied: %s", repair.detail)
            return StageResult(stage, StageStatus.FAILED, "; ".join(attempts), failure=repair.failure)

        retry = self._services.start(name)
        attempts.append(f"start after reset: {retry.detail}")
        status = retry.status if retry.succeeded else StageStatus.FAILED
        return StageResult(stage, status, "; ".join(attempts), failure=retry.failure)

    def _verify(self) -> StageResult:
        stage = StageName.VERIFY
        state = self._services.query(self._settings.service_name)
        if state.run_state is RunState.RUNNING:
            return StageResult(
                stage,
                StageStatus.SUCCESS,
                f"Service {state.name} running (startup {state.startup_mode.value})",
            )
        return StageResult(
            stage,
            StageStatus.FAILED,
            f"Service {state.name} is {state.run_state.value}; an OS restart is required",
        )


def _stage_from(stage: StageName, result: OperationResult) -> StageResult:
    return StageResult(stage, result.status, result.detail, failure=result.failure)
