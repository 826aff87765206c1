"""Failure taxonomy for remediation components."""

from __future__ import annotations

import errno

from core.models import FailureKind


# Native Windows error codes mapped into the taxonomy.
ERROR_ACCESS_DENIED = 5
ERROR_SHARING_VIOLATION = 32
ERROR_LOCK_VIOLATION = 33
ERROR_SERVICE_REQUEST_TIMEOUT = 1053
ERROR_SERVICE_ALREADY_RUNNING = 1056
ERROR_SERVICE_DOES_NOT_EXIST = 1060
ERROR_SERVICE_NOT_ACTIVE = 1062

_WINERROR_KINDS = {
    ERROR_ACCESS_DENIED: FailureKind.PERMISSION_DENIED,
    ERROR_SHARING_VIOLATION: FailureKind.PERMISSION_DENIED,
    ERROR_LOCK_VIOLATION: FailureKind.PERMISSION_DENIED,
    ERROR_SERVICE_REQUEST_TIMEOUT: FailureKind.TIMEOUT,
    ERROR_SERVICE_DOES_NOT_EXIST: FailureKind.NOT_FOUND,
}


class RemediationError(Exception):
    """Base error raised by remediation components."""

    kind = FailureKind.OS_ERROR

    def __init__(self, message: str = "", *, kind: FailureKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class ServiceNotFound(RemediationError):
    """The target service is not registered with the service manager."""

    kind = FailureKind.NOT_FOUND


class AccessDenied(RemediationError):
    """The caller lacks rights for the requested operation."""

    kind = FailureKind.PERMISSION_DENIED


def classify_winerror(code: int | None) -> FailureKind:
    """Map a native Windows error code into the failure taxonomy."""

    if code is None:
        return FailureKind.OS_ERROR
    return _WINERROR_KINDS.get(int(code), FailureKind.OS_ERROR)


def classify_os_error(exc: BaseException) -> FailureKind:
    """Map an exception raised by an OS call into the failure taxonomy."""

    if isinstance(exc, RemediationError):
        return exc.kind
    if isinstance(exc, PermissionError):
        return FailureKind.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return FailureKind.NOT_FOUND
    if isinstance(exc, TimeoutError):
        return FailureKind.TIMEOUT
    winerror = getattr(exc, "winerror", None)
    if winerror is not None:
        return classify_winerror(winerror)
    if isinstance(exc, OSError) and exc.errno in {errno.EACCES, errno.EPERM}:
        return FailureKind.PERMISSION_DENIED
    return FailureKind.OS_ERROR
