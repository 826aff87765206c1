"""Control of the OS-managed search service.

The production controller talks to the Windows service control manager through
pywin32 and reads live state through psutil. The alternate start goes through
``sc.exe`` so it uses a separate process and IPC channel from the primary
start, and its exit code is reported independently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import subprocess
import time
from typing import Any, Mapping, Protocol

from core.errors import (
    AccessDenied,
    ERROR_SERVICE_ALREADY_RUNNING,
    ERROR_SERVICE_NOT_ACTIVE,
    ServiceNotFound,
    classify_os_error,
    classify_winerror,
)
from core.logging import logger as LOGGER
from core.models import FailureKind, OperationResult, RunState, ServiceState, StartupMode
from core.privilege import PrivilegeContext


_PSUTIL_RUN_STATES = {
    "running": RunState.RUNNING,
    "stopped": RunState.STOPPED,
}

_PSUTIL_START_TYPES = {
    "automatic": StartupMode.AUTOMATIC,
    "manual": StartupMode.MANUAL,
    "disabled": StartupMode.DISABLED,
}


class ServiceController(Protocol):
    """Query, stop and start a named service."""

    def query(self, name: str) -> ServiceState:
        """Return a fresh snapshot; raise ServiceNotFound if unregistered."""

    def stop(self, name: str, forced: bool) -> OperationResult:
        """Request a stop, bounded by the stop timeout."""

    def start(self, name: str) -> OperationResult:
        """Start through the primary service manager API."""

    def start_alternate(self, name: str) -> OperationResult:
        """Start through the low-level fallback channel."""

    def set_startup_mode(self, name: str, mode: StartupMode) -> OperationResult:
        """Set the coarse startup mode through the service manager."""


class WindowsServiceController:
    """Service controller backed by the Windows service control manager."""

    def __init__(
        self,
        privilege: PrivilegeContext,
        *,
        stop_timeout_s: float = 30.0,
        start_timeout_s: float = 30.0,
        command_timeout_s: float = 60.0,
        poll_interval_s: float = 0.5,
    ) -> None:
        self._privilege = privilege
        self._stop_timeout_s = float(stop_timeout_s)
        self._start_timeout_s = float(start_timeout_s)
        self._command_timeout_s = float(command_timeout_s)
        self._poll_interval_s = float(poll_interval_s)

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], privilege: PrivilegeContext
    ) -> "WindowsServiceController":
        service_cfg = config.get("service") or {}
        return cls(
            privilege,
            stop_timeout_s=float(service_cfg.get("stop_timeout_s", 30.0)),
            start_timeout_s=float(service_cfg.get("start_timeout_s", 30.0)),
            command_timeout_s=float(service_cfg.get("command_timeout_s", 60.0)),
        )

    def query(self, name: str) -> ServiceState:
        import psutil

        try:
            info = psutil.win_service_get(name).as_dict()
        except psutil.NoSuchProcess as exc:
            raise ServiceNotFound(f"Service {name} is not registered") from exc
        except psutil.AccessDenied as exc:
            raise AccessDenied(f"Access denied querying service {name}") from exc

        run_state = _PSUTIL_RUN_STATES.get(str(info.get("status")), RunState.UNKNOWN)
        startup_mode = _PSUTIL_START_TYPES.get(str(info.get("start_type")), StartupMode.MANUAL)
        if startup_mode is StartupMode.AUTOMATIC and self._delayed_autostart(name):
            startup_mode = StartupMode.AUTOMATIC_DELAYED
        return ServiceState(name=name, run_state=run_state, startup_mode=startup_mode)

    def stop(self, name: str, forced: bool) -> OperationResult:
        import pywintypes
        import win32serviceutil

        try:
            win32serviceutil.StopService(name)
        except pywintypes.error as exc:
            if exc.winerror == ERROR_SERVICE_NOT_ACTIVE:
                return OperationResult.ok(f"Service {name} was not running")
            return self._failure("stop", name, exc)

        if self._wait_for_state(name, RunState.STOPPED, self._stop_timeout_s):
            return OperationResult.ok(f"Service {name} stopped")
        if forced:
            return self._terminate(name)
        return OperationResult.failed(
            FailureKind.TIMEOUT, f"Service {name} did not stop in {self._stop_timeout_s:.0f}s"
        )

    def start(self, name: str) -> OperationResult:
        import pywintypes
        import win32serviceutil

        try:
            win32serviceutil.StartService(name)
        except pywintypes.error as exc:
            if exc.winerror == ERROR_SERVICE_ALREADY_RUNNING:
                return OperationResult.ok(f"Service {name} already running")
            return self._failure("start", name, exc)

        if self._wait_for_state(name, RunState.RUNNING, self._start_timeout_s):
            return OperationResult.ok(f"Service {name} started")
        return OperationResult.failed(
            FailureKind.TIMEOUT, f"Service {name} did not start in {self._start_timeout_s:.0f}s"
        )

    def start_alternate(self, name: str) -> OperationResult:
        try:
            completed = subprocess.run(
                ["sc.exe", "start", name],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
                timeout=self._command_timeout_s,
            )
        except subprocess.TimeoutExpired:
            return OperationResult.failed(
                FailureKind.TIMEOUT, f"sc.exe start {name} did not return in time"
            )
        except OSError as exc:
            return OperationResult.failed(classify_os_error(exc), f"sc.exe unavailable: {exc}")

        code = completed.returncode
        if code not in (0, ERROR_SERVICE_ALREADY_RUNNING):
            return OperationResult.failed(
                classify_winerror(code), f"sc.exe start {name} exited with code {code}"
            )
        if self._wait_for_state(name, RunState.RUNNING, self._start_timeout_s):
            return OperationResult.ok(f"Service {name} started via sc.exe")
        return OperationResult.failed(
            FailureKind.TIMEOUT, f"Service {name} not running after sc.exe start"
        )

    def set_startup_mode(self, name: str, mode: StartupMode) -> OperationResult:
        import pywintypes
        import win32service

        start_types = {
            StartupMode.DISABLED: win32service.SERVICE_DISABLED,
            StartupMode.MANUAL: win32service.SERVICE_DEMAND_START,
            StartupMode.AUTOMATIC: win32service.SERVICE_AUTO_START,
            StartupMode.AUTOMATIC_DELAYED: win32service.SERVICE_AUTO_START,
        }
        try:
            scm = win32service.OpenSCManager(None, None, win32service.SC_MANAGER_CONNECT)
            try:
                handle = win32service.OpenService(scm, name, win32service.SERVICE_CHANGE_CONFIG)
                try:
                    win32service.ChangeServiceConfig(
                        handle,
                        win32service.SERVICE_NO_CHANGE,
                        start_types[mode],
                        win32service.SERVICE_NO_CHANGE,
                        None,
                        None,
                        0,
                        None,
                        None,
                        None,
                        None,
                    )
                    if mode is StartupMode.AUTOMATIC_DELAYED:
                        win32service.ChangeServiceConfig2(
                            handle, win32service.SERVICE_CONFIG_DELAYED_AUTO_START_INFO, True
                        )
                finally:
                    win32service.CloseServiceHandle(handle)
            finally:
                win32service.CloseServiceHandle(scm)
        except pywintypes.error as exc:
            return self._failure("configure", name, exc)
        return OperationResult.ok(f"Startup mode of {name} set to {mode.value}")

    def _delayed_autostart(self, name: str) -> bool:
        import pywintypes
        import win32service

        try:
            scm = win32service.OpenSCManager(None, None, win32service.SC_MANAGER_CONNECT)
            try:
                handle = win32service.OpenService(scm, name, win32service.SERVICE_QUERY_CONFIG)
                try:
                    return bool(
                        win32service.QueryServiceConfig2(
                            handle, win32service.SERVICE_CONFIG_DELAYED_AUTO_START_INFO
                        )
                    )
                finally:
                    win32service.CloseServiceHandle(handle)
            finally:
                win32service.CloseServiceHandle(scm)
        except pywintypes.error as exc:
            LOGGER.debug("[Service] Delayed-start flag unreadable for %s: %s", name, exc)
            return False

    def _terminate(self, name: str) -> OperationResult:
        import psutil

        if not self._privilege.elevated:
            return OperationResult.failed(
                FailureKind.TIMEOUT,
                f"Service {name} did not stop in {self._stop_timeout_s:.0f}s "
                "and forced termination needs elevation",
            )
        try:
            pid = psutil.win_service_get(name).pid()
            if pid:
                process = psutil.Process(pid)
                process.kill()
                process.wait(timeout=self._stop_timeout_s)
        except psutil.TimeoutExpired:
            return OperationResult.failed(
                FailureKind.TIMEOUT, f"Service {name} process survived termination"
            )
        except psutil.AccessDenied:
            return OperationResult.failed(
                FailureKind.PERMISSION_DENIED, f"Termination of {name} was denied"
            )
        except psutil.NoSuchProcess:
            pass
        LOGGER.warning("[Service] Terminated %s after stop timeout", name)
        return OperationResult.partial(f"Service {name} terminated after stop timeout")

    def _wait_for_state(self, name: str, target: RunState, timeout_s: float) -> bool:
        deadline = time.monotonic() + timeout_s
        while True:
            try:
                if self.query(name).run_state is target:
                    return True
            except ServiceNotFound:
                return False
            if time.monotonic() >= deadline:
                return False
            time.sleep(self._poll_interval_s)

    def _failure(self, action: str, name: str, exc: Any) -> OperationResult:
        kind = classify_winerror(getattr(exc, "winerror", None))
        message = getattr(exc, "strerror", None) or str(exc)
        return OperationResult.failed(kind, f"Could not {action} {name}: {message}")


@dataclass
class FakeServiceController:
    """In-memory service controller for tests and offline runs.

    Any ``*_result`` left as ``None`` succeeds and moves the fake service to the
    matching state. A stop that fails with a timeout leaves the service in an
    unknown (stop pending) state.
    """

    registered: bool = True
    run_state: RunState = RunState.RUNNING
    startup_mode: StartupMode = StartupMode.MANUAL
    stop_result: OperationResult | None = None
    start_result: OperationResult | None = None
    alternate_result: OperationResult | None = None
    startup_mode_result: OperationResult | None = None
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def query(self, name: str) -> ServiceState:
        self.calls.append(("query", name))
        if not self.registered:
            raise ServiceNotFound(f"Service {name} is not registered")
        return ServiceState(name=name, run_state=self.run_state, startup_mode=self.startup_mode)

    def stop(self, name: str, forced: bool) -> OperationResult:
        self.calls.append(("stop", name, "forced" if forced else "normal"))
        result = self.stop_result or OperationResult.ok(f"Service {name} stopped")
        if result.succeeded:
            self.run_state = RunState.STOPPED
        elif result.failure is FailureKind.TIMEOUT:
            self.run_state = RunState.UNKNOWN
        return result

    def start(self, name: str) -> OperationResult:
        self.calls.append(("start", name))
        return self._started(self.start_result or OperationResult.ok(f"Service {name} started"))

    def start_alternate(self, name: str) -> OperationResult:
        self.calls.append(("start_alternate", name))
        return self._started(
            self.alternate_result or OperationResult.ok(f"Service {name} started via fallback")
        )

    def set_startup_mode(self, name: str, mode: StartupMode) -> OperationResult:
        self.calls.append(("set_startup_mode", name, mode.value))
        result = self.startup_mode_result or OperationResult.ok(
            f"Startup mode of {name} set to {mode.value}"
        )
        if result.succeeded:
            self.startup_mode = mode
        return result

    def follow_startup_store(self, name: str, mode: StartupMode) -> None:
        """Reflect a startup mode persisted outside the service manager."""

        self.startup_mode = mode

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def _started(self, result: OperationResult) -> OperationResult:
        if result.succeeded:
            self.run_state = RunState.RUNNING
        return result
