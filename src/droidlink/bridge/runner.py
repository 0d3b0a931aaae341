"""Runs the bridge executable as a child process and captures its output."""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Callable, Sequence

from droidlink.exceptions import ProcessFailure
from droidlink.models.result import OperationResult
from droidlink.utils.logging import get_logger

logger = get_logger(__name__)

# (message, is_error) -> None
LogCallback = Callable[[str, bool], None]

# Keeps a console window from flashing up for every call on Windows.
_CREATION_FLAGS = subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0


class CommandRunner:
    """Launches the bridge with verbatim arguments and waits for it to exit.

    The executable path is assumed to have been validated by the caller.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def run(
        self,
        executable: str,
        arguments: Sequence[str],
        log: LogCallback | None = None,
    ) -> OperationResult:
        """Run ``executable *arguments`` without a shell.

        Non-zero exit with stderr text is a failure carrying that text.
        Any other exit is a success carrying stdout, which may be empty.
        """
        emit = log or _discard
        command_line = " ".join(arguments)
        emit(f"Running bridge command: {command_line}", False)
        logger.debug("bridge_command", executable=executable, args=list(arguments))

        try:
            proc = subprocess.run(
                [executable, *arguments],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._timeout,
                creationflags=_CREATION_FLAGS,
            )
        except subprocess.TimeoutExpired:
            reason = f"Bridge command timed out after {self._timeout} seconds: {command_line}"
            return self._failure(emit, reason, command_line)
        except OSError as exc:
            return self._failure(emit, f"Failed to launch bridge: {exc}", command_line)

        stdout = proc.stdout or ""
        stderr = proc.stderr or ""
        if proc.returncode != 0 and stderr:
            return self._failure(emit, stderr.strip(), command_line, proc.returncode)

        logger.debug("bridge_command_complete", args=command_line, return_code=proc.returncode)
        return OperationResult.ok(stdout)

    @staticmethod
    def _failure(
        emit: LogCallback,
        reason: str,
        command_line: str,
        return_code: int | None = None,
    ) -> OperationResult:
        emit(f"Bridge command error: {reason}", True)
        logger.warning(
            "bridge_command_failed",
            args=command_line,
            return_code=return_code,
            error=reason,
        )
        return OperationResult.from_error(ProcessFailure(reason))


def _discard(message: str, is_error: bool) -> None:
    pass
