"""Ownership takeover for paths the current principal cannot modify."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import subprocess
from typing import Callable, Protocol

from core.errors import classify_os_error, classify_winerror
from core.logging import logger as LOGGER
from core.models import FailureKind, OperationResult
from core.privilege import PrivilegeContext


class PermissionEscalator(Protocol):
    """Take ownership of a path and grant full control to the caller."""

    def take_ownership(self, path: Path) -> OperationResult:
        """Recursively reassign ownership of ``path`` and its descendants."""


class WindowsPermissionEscalator:
    """Escalator built on ``takeown.exe`` and ``icacls.exe``.

    Both tools are idempotent, so rerunning on an owned tree succeeds.
    """

    def __init__(self, privilege: PrivilegeContext, *, command_timeout_s: float = 120.0) -> None:
        self._privilege = privilege
        self._command_timeout_s = float(command_timeout_s)

    def take_ownership(self, path: Path) -> OperationResult:
        if not self._privilege.elevated:
            return OperationResult.failed(
                FailureKind.ESCALATION_DENIED,
                f"{self._privilege.principal} is not elevated; cannot take ownership of {path}",
            )

        commands = [
            ["takeown.exe", "/F", str(path), "/R", "/D", "Y"],
            ["icacls.exe", str(path), "/grant", f"{self._privilege.principal}:(OI)(CI)F", "/T", "/C"],
        ]
        for command in commands:
            failure = self._run(command)
            if failure is not None:
                return failure
        LOGGER.info("[Permissions] Took ownership of %s for %s", path, self._privilege.principal)
        return OperationResult.ok(f"Ownership of {path} granted to {self._privilege.principal}")

    def _run(self, command: list[str]) -> OperationResult | None:
        tool = command[0]
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
                timeout=self._command_timeout_s,
            )
        except subprocess.TimeoutExpired:
            return OperationResult.failed(FailureKind.TIMEOUT, f"{tool} did not finish in time")
        except OSError as exc:
            return OperationResult.failed(classify_os_error(exc), f"{tool} unavailable: {exc}")

        if completed.returncode == 0:
            return None
        kind = classify_winerror(completed.returncode)
        if kind in {FailureKind.PERMISSION_DENIED, FailureKind.OS_ERROR}:
            kind = FailureKind.ESCALATION_DENIED
        return OperationResult.failed(kind, f"{tool} exited with code {completed.returncode}")


@dataclass
class FakePermissionEscalator:
    """Escalator for tests; ``on_success`` can unlock a simulated file."""

    elevated: bool = True
    calls: list[Path] = field(default_factory=list)
    on_success: Callable[[], None] | None = field(default=None, repr=False)

    @classmethod
    def for_privilege(cls, privilege: PrivilegeContext) -> "FakePermissionEscalator":
        return cls(elevated=privilege.elevated)

    def take_ownership(self, path: Path) -> OperationResult:
        self.calls.append(path)
        if not self.elevated:
            return OperationResult.failed(
                FailureKind.ESCALATION_DENIED, f"Not elevated; cannot take ownership of {path}"
            )
        if self.on_success is not None:
            self.on_success()
        return OperationResult.ok(f"Ownership of {path} granted")
