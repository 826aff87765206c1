"""Persisted startup configuration of the search service."""

from __future__ import annotations

from dataclasses import dataclass, field
import sys
from typing import Any, Callable, Mapping, Protocol

from core.errors import classify_os_error
from core.logging import logger as LOGGER
from core.models import FailureKind, OperationResult, StartupMode


START_VALUE_NAME = "Start"
DELAYED_VALUE_NAME = "DelayedAutostart"

# Start value and delayed-start flag jointly encode the startup mode.
_REGISTRY_VALUES: dict[StartupMode, tuple[int, int]] = {
    StartupMode.AUTOMATIC_DELAYED: (2, 1),
    StartupMode.AUTOMATIC: (2, 0),
    StartupMode.MANUAL: (3, 0),
    StartupMode.DISABLED: (4, 0),
}


class StartupConfigStore(Protocol):
    """Fine-grained key-value store behind the service startup mode."""

    def set_startup_mode(self, service_name: str, mode: StartupMode) -> OperationResult:
        """Write both startup values as one logical write."""


class WindowsStartupConfigStore:
    """Startup configuration stored under the service's registry key."""

    def __init__(self, key_template: str = "SYSTEM\\CurrentControlSet\\Services\\{name}") -> None:
        self._key_template = key_template

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "WindowsStartupConfigStore":
        startup_cfg = config.get("startup") or {}
        return cls(str(startup_cfg.get("registry_key", "SYSTEM\\CurrentControlSet\\Services\\{name}")))

    def key_path(self, service_name: str) -> str:
        return self._key_template.format(name=service_name)

    def set_startup_mode(self, service_name: str, mode: StartupMode) -> OperationResult:
        if sys.platform != "win32":
            return OperationResult.failed(
                FailureKind.STORE_MISSING, "Registry store is only available on Windows"
            )
        import winreg

        key_path = self.key_path(service_name)
        start_value, delayed_value = _REGISTRY_VALUES[mode]
        access = winreg.KEY_QUERY_VALUE | winreg.KEY_SET_VALUE
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key_path, 0, access) as key:
                previous = self._read_values(key)
                try:
                    winreg.SetValueEx(key, START_VALUE_NAME, 0, winreg.REG_DWORD, start_value)
                    winreg.SetValueEx(key, DELAYED_VALUE_NAME, 0, winreg.REG_DWORD, delayed_value)
                except OSError:
                    self._restore_values(key, previous)
                    raise
        except FileNotFoundError:
            return OperationResult.failed(
                FailureKind.STORE_MISSING, f"Registry key HKLM\\{key_path} does not exist"
            )
        except OSError as exc:
            return OperationResult.failed(
                classify_os_error(exc), f"Could not write HKLM\\{key_path}: {exc}"
            )
        return OperationResult.ok(
            f"{START_VALUE_NAME}={start_value} {DELAYED_VALUE_NAME}={delayed_value} "
            f"written to HKLM\\{key_path}"
        )

    def _read_values(self, key: Any) -> dict[str, int | None]:
        import winreg

        values: dict[str, int | None] = {}
        for value_name in (START_VALUE_NAME, DELAYED_VALUE_NAME):
            try:
                values[value_name] = int(winreg.QueryValueEx(key, value_name)[0])
            except FileNotFoundError:
                values[value_name] = None
        return values

    def _restore_values(self, key: Any, previous: Mapping[str, int | None]) -> None:
        import winreg

        for value_name, value in previous.items():
            try:
                if value is None:
                    winreg.DeleteValue(key, value_name)
                else:
                    winreg.SetValueEx(key, value_name, 0, winreg.REG_DWORD, value)
            except OSError as exc:
                LOGGER.warning("[Startup] Could not restore %s: %s", value_name, exc)


@dataclass
class FakeStartupConfigStore:
    """In-memory startup store keyed by service name.

    ``on_write`` lets a fake service manager observe persisted modes.
    """

    present: bool = True
    writable: bool = True
    values: dict[str, dict[str, int]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    on_write: Callable[[str, StartupMode], None] | None = field(default=None, repr=False)

    def set_startup_mode(self, service_name: str, mode: StartupMode) -> OperationResult:
        self.calls.append((service_name, mode.value))
        if not self.present:
            return OperationResult.failed(
                FailureKind.STORE_MISSING, f"No startup store for {service_name}"
            )
        if not self.writable:
            return OperationResult.failed(
                FailureKind.PERMISSION_DENIED, f"Startup store for {service_name} is read-only"
            )
        start_value, delayed_value = _REGISTRY_VALUES[mode]
        self.values[service_name] = {
            START_VALUE_NAME: start_value,
            DELAYED_VALUE_NAME: delayed_value,
        }
        if self.on_write is not None:
            self.on_write(service_name, mode)
        return OperationResult.ok(f"Startup mode of {service_name} stored as {mode.value}")
