"""Failure taxonomy for scanner runs.

``FATAL_ERRORS`` abort the whole scanning session; every other
``ScanError`` only downgrades the affected scan kind to "no results".
"""

from __future__ import annotations


class ScanError(Exception):
    """Base class for every failure raised while running a scanner."""

    def __init__(self, message: str = "", *, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind


class NotEntitledError(ScanError):
    """The platform account is not entitled to run advanced scans."""

    def __init__(self, kind: str | None = None) -> None:
        super().__init__("The user is not entitled to run advanced security scans", kind=kind)


class NotSupportedError(ScanError):
    """The analyzer does not support the requested scan feature."""

    def __init__(self, kind: str | None = None) -> None:
        super().__init__(f"'{kind}' is not supported by the analyzer", kind=kind)


class OsNotSupportedError(ScanError):
    """The analyzer cannot run this scan kind on the current OS."""

    def __init__(self, kind: str | None = None) -> None:
        super().__init__(f"'{kind}' is not supported on this operating system", kind=kind)


class ScanCancelledError(ScanError):
    """Raised when the cooperative cancellation check fires."""

    def __init__(self, message: str = "Scan was cancelled") -> None:
        super().__init__(message)


class ScanTimeoutError(ScanError):
    """Raised when a task exceeds its timeout budget."""

    def __init__(self, title: str, timeout: float) -> None:
        super().__init__(f"Task {title} timed out after {timeout}s")
        self.title = title
        self.timeout = timeout


class ScanExecutionError(ScanError):
    """The analyzer exited with an unrecognised non-zero status."""

    def __init__(self, message: str, *, kind: str | None = None, exit_code: int | None = None) -> None:
        super().__init__(message, kind=kind)
        self.exit_code = exit_code


class MissingOutputError(ScanExecutionError):
    """The analyzer returned successfully but wrote no response file."""

    def __init__(self, kind: str | None, request: str) -> None:
        super().__init__(
            f"Running '{kind}' binary didn't produce response.\nRequest: {request}",
            kind=kind,
            exit_code=0,
        )
        self.request = request


class MalformedOutputError(ScanExecutionError):
    """The response file is not a valid scan response document."""


class ResourceUpdateError(Exception):
    """Downloading or replacing the analyzer binary failed."""


FATAL_ERRORS: tuple[type[ScanError], ...] = (NotEntitledError, ScanCancelledError)
UNSUPPORTED_ERRORS: tuple[type[ScanError], ...] = (NotSupportedError, OsNotSupportedError)
