"""Administrative reset of the search index, used after both starts fail."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import shutil
import subprocess
from typing import Any, Callable, Mapping, Protocol

from core.logging import logger as LOGGER
from core.models import FailureKind, OperationResult


class AlternateRepairInvoker(Protocol):
    """Higher-level administrative repair interface."""

    def reset_index(self) -> OperationResult:
        """Ask the indexing subsystem to reset its index."""


class TroubleshootingPackRepair:
    """Runs the Windows Search troubleshooting pack unattended."""

    def __init__(
        self,
        pack_path: str = "%SystemRoot%\\diagnostics\\system\\Search",
        *,
        timeout_s: float = 300.0,
        powershell: str = "powershell.exe",
    ) -> None:
        self._pack_path = pack_path
        self._timeout_s = float(timeout_s)
        self._powershell = powershell

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TroubleshootingPackRepair":
        repair_cfg = config.get("repair") or {}
        return cls(
            str(repair_cfg.get("troubleshooting_pack", "%SystemRoot%\\diagnostics\\system\\Search")),
            timeout_s=float(repair_cfg.get("timeout_s", 300.0)),
        )

    @property
    def pack_path(self) -> Path:
        return Path(os.path.expandvars(self._pack_path))

    def unavailable_reason(self) -> str | None:
        """Return why the interface cannot be instantiated, or None."""

        if shutil.which(self._powershell) is None:
            return f"{self._powershell} not found"
        if not self.pack_path.exists():
            return f"Troubleshooting pack missing at {self.pack_path}"
        return None

    def reset_index(self) -> OperationResult:
        reason = self.unavailable_reason()
        if reason is not None:
            LOGGER.warning("[Repair] Administrative reset unavailable: %s", reason)
            return OperationResult.failed(FailureKind.REPAIR_API_UNAVAILABLE, reason)

        script = (
            "$ErrorActionPreference = 'Stop'; "
            f"Get-TroubleshootingPack -Path '{self.pack_path}' | "
            "Invoke-TroubleshootingPack -Unattended | Out-Null"
        )
        try:
            completed = subprocess.run(
                [self._powershell, "-NoProfile", "-NonInteractive", "-Command", script],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
                timeout=self._timeout_s,
            )
        except subprocess.TimeoutExpired:
            return OperationResult.failed(
                FailureKind.TIMEOUT, f"Troubleshooting pack did not finish in {self._timeout_s:.0f}s"
            )
        except OSError as exc:
            return OperationResult.failed(
                FailureKind.REPAIR_API_UNAVAILABLE, f"Could not launch {self._powershell}: {exc}"
            )

        if completed.returncode != 0:
            return OperationResult.failed(
                FailureKind.OS_ERROR,
                f"Troubleshooting pack exited with code {completed.returncode}",
            )
        return OperationResult.ok("Index reset by the search troubleshooting pack")


@dataclass
class FakeRepairInvoker:
    """Repair invoker for tests and offline runs."""

    available: bool = True
    result: OperationResult | None = None
    calls: int = 0
    on_reset: Callable[[], None] | None = field(default=None, repr=False)

    def unavailable_reason(self) -> str | None:
        return None if self.available else "Administrative interface not registered"

    def reset_index(self) -> OperationResult:
        self.calls += 1
        if not self.available:
            return OperationResult.failed(
                FailureKind.REPAIR_API_UNAVAILABLE, "Administrative interface not registered"
            )
        result = self.result or OperationResult.ok("Index reset")
        if result.succeeded and self.on_reset is not None:
            self.on_reset()
        return result
