"""Models for remediation stages, results and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from diagnostics.models import DiagnosticResult


class StageName(str, Enum):
    """Pipeline stages in execution order."""

    STOP_SERVICE = "stop_service"
    CLEAR_INDEX = "clear_index"
    CONFIGURE_STARTUP = "configure_startup"
    START_SERVICE = "start_service"
    VERIFY = "verify"


class StageStatus(str, Enum):
    """Outcome classification for a single stage or leaf operation."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"
    SKIPPED = "skipped"


class OverallStatus(str, Enum):
    """Outcome classification for a whole remediation run."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


class RunState(str, Enum):
    """Live run state of the target service."""

    STOPPED = "stopped"
    RUNNING = "running"
    UNKNOWN = "unknown"


class StartupMode(str, Enum):
    """Boot-time start policy of the target service."""

    DISABLED = "disabled"
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    AUTOMATIC_DELAYED = "automatic_delayed"


class FailureKind(str, Enum):
    """Classification of leaf-component failures."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    STORE_MISSING = "store_missing"
    REPAIR_API_UNAVAILABLE = "repair_api_unavailable"
    ESCALATION_DENIED = "escalation_denied"
    OS_ERROR = "os_error"


class PipelineState(str, Enum):
    """Orchestrator state machine positions."""

    IDLE = "idle"
    STOPPING_SERVICE = "stopping_service"
    CLEARING_INDEX = "clearing_index"
    RECONFIGURING_STARTUP = "reconfiguring_startup"
    STARTING_SERVICE = "starting_service"
    VERIFYING = "verifying"
    DONE = "done"


@dataclass(frozen=True)
class OperationResult:
    """Structured result code returned by leaf components."""

    status: StageStatus
    detail: str = ""
    failure: FailureKind | None = None

    @property
    def succeeded(self) -> bool:
        return self.status in {StageStatus.SUCCESS, StageStatus.PARTIAL_SUCCESS}

    @classmethod
    def ok(cls, detail: str = "") -> "OperationResult":
        return cls(status=StageStatus.SUCCESS, detail=detail)

    @classmethod
    def partial(cls, detail: str) -> "OperationResult":
        return cls(status=StageStatus.PARTIAL_SUCCESS, detail=detail)

    @classmethod
    def skipped(cls, detail: str) -> "OperationResult":
        return cls(status=StageStatus.SKIPPED, detail=detail)

    @classmethod
    def failed(cls, failure: FailureKind, detail: str) -> "OperationResult":
        return cls(status=StageStatus.FAILED, detail=detail, failure=failure)


@dataclass(frozen=True)
class StageResult:
    """Recorded outcome of one pipeline stage."""

    stage: StageName
    status: StageStatus
    detail: str
    escalation_used: bool = False
    failure: FailureKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "detail": self.detail,
            "escalation_used": self.escalation_used,
            "failure": self.failure.value if self.failure else None,
        }


@dataclass(frozen=True)
class ServiceState:
    """Point-in-time snapshot of the target service."""

    name: str
    run_state: RunState
    startup_mode: StartupMode


@dataclass(frozen=True)
class IndexArtifactSet:
    """Locations of the persisted index artifacts."""

    root_path: Path
    primary_file: Path
    log_file_pattern: str


@dataclass(frozen=True)
class RemediationReport:
    """Aggregate result of one remediation run.

    ``overall_status`` and ``restart_required`` are derived from the stage
    results and the verification outcome; neither is stored.
    """

    service_name: str
    stage_results: tuple[StageResult, ...]
    verified_running: bool
    diagnostics: tuple[DiagnosticResult, ...] = field(default_factory=tuple)
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def overall_status(self) -> OverallStatus:
        if not self.verified_running:
            return OverallStatus.FAILED
        degraded = {StageStatus.PARTIAL_SUCCESS, StageStatus.FAILED}
        if any(result.status in degraded for result in self.stage_results):
            return OverallStatus.PARTIAL_SUCCESS
        return OverallStatus.SUCCESS

    @property
    def restart_required(self) -> bool:
        return not self.verified_running

    @property
    def duration_s(self) -> float:
        return max(0.0, self.finished_at - self.started_at)

    def result_for(self, stage: StageName) -> StageResult | None:
        for result in self.stage_results:
            if result.stage is stage:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service_name,
            "overall_status": self.overall_status.value,
            "restart_required": self.restart_required,
            "duration_s": round(self.duration_s, 3),
            "stages": [result.to_dict() for result in self.stage_results],
            "diagnostics": [
                {
                    "name": result.name,
                    "status": result.status.value,
                    "details": result.details,
                }
                for result in self.diagnostics
            ],
        }
