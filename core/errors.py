"""Typed errors surfaced by diagnostic passes."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Error classification rendered consistently by callers."""

    ACCESS_DENIED = "access_denied"
    TARGET_NOT_FOUND = "target_not_found"
    PARSE_INCOMPLETE = "parse_incomplete"
    PROBE_TIMEOUT = "probe_timeout"
    PROBE_ERROR = "probe_error"


class BootDiagnosticsError(Exception):
    """Base error for diagnostics failures.

    Only ``AccessDeniedError`` is fatal to a whole pass. Every other kind is
    contained by the check, stage or tier that raised it.
    """

    kind: ErrorKind = ErrorKind.PROBE_ERROR

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class AccessDeniedError(BootDiagnosticsError):
    """Raised when elevation is required to read boot state."""

    kind = ErrorKind.ACCESS_DENIED


class TargetNotFoundError(BootDiagnosticsError):
    """Raised when the target volume or its system directory is missing."""

    kind = ErrorKind.TARGET_NOT_FOUND


class ProbeTimeoutError(BootDiagnosticsError):
    """Raised when an external tool or probe exceeds its deadline."""

    kind = ErrorKind.PROBE_TIMEOUT


class ProbeError(BootDiagnosticsError):
    """Raised when a probe cannot produce an answer."""

    kind = ErrorKind.PROBE_ERROR


def error_kind_of(exc: BaseException) -> ErrorKind:
    """Return the error kind for any exception raised by a probe."""

    if isinstance(exc, BootDiagnosticsError):
        return exc.kind
    if isinstance(exc, PermissionError):
        return ErrorKind.ACCESS_DENIED
    if isinstance(exc, TimeoutError):
        return ErrorKind.PROBE_TIMEOUT
    return ErrorKind.PROBE_ERROR
