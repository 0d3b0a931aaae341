"""Exception hierarchy mapping bridge failures to Python exceptions."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category tag carried by failed operation results."""
    VALIDATION = "validation"
    TOOL_NOT_FOUND = "tool_not_found"
    PROCESS_FAILURE = "process_failure"
    PARSE_MISS = "parse_miss"
    INTERNAL = "internal"


class DroidlinkError(Exception):
    """Base exception for all droidlink errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class ValidationError(DroidlinkError):
    """A required input is missing or invalid. No process was launched."""

    kind = ErrorKind.VALIDATION


class ToolNotFoundError(DroidlinkError):
    """The configured bridge executable does not exist."""

    kind = ErrorKind.TOOL_NOT_FOUND


class ProcessFailure(DroidlinkError):
    """The bridge exited non-zero with stderr output, or failed to launch."""

    kind = ErrorKind.PROCESS_FAILURE


class IndexOutOfRangeError(DroidlinkError, IndexError):
    """A registry index is outside the current device list."""

    kind = ErrorKind.VALIDATION
