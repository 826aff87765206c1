"""Explicit privilege capability handed to components at construction."""

from __future__ import annotations

from dataclasses import dataclass
import getpass
import os
import sys


@dataclass(frozen=True)
class PrivilegeContext:
    """Whether the current principal may take ownership and control services."""

    elevated: bool
    principal: str

    @classmethod
    def elevated_as(cls, principal: str = "Administrators") -> "PrivilegeContext":
        return cls(elevated=True, principal=principal)

    @classmethod
    def unelevated_as(cls, principal: str = "user") -> "PrivilegeContext":
        return cls(elevated=False, principal=principal)


def _current_principal() -> str:
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        return "unknown"
    domain = os.environ.get("USERDOMAIN")
    return f"{domain}\\{user}" if domain and sys.platform == "win32" else user


def _is_elevated() -> bool:
    if sys.platform == "win32":
        import ctypes

        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def detect_privilege() -> PrivilegeContext:
    """Inspect the running process once and return its capability."""

    return PrivilegeContext(elevated=_is_elevated(), principal=_current_principal())
