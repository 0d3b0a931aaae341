"""Tagged success/failure outcome shared by the runner and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

from droidlink.exceptions import DroidlinkError, ErrorKind


@dataclass(frozen=True)
class OperationResult:
    """Exactly one of Success(output) or Failure(reason)."""

    success: bool
    output: str = ""
    reason: str = ""
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, output: str = "") -> OperationResult:
        return cls(success=True, output=output)

    @classmethod
    def fail(
        cls,
        reason: str,
        kind: ErrorKind = ErrorKind.PROCESS_FAILURE,
        output: str = "",
    ) -> OperationResult:
        return cls(success=False, output=output, reason=reason, kind=kind)

    @classmethod
    def from_error(cls, exc: DroidlinkError) -> OperationResult:
        return cls.fail(str(exc), kind=exc.kind)

    @property
    def failed(self) -> bool:
        return not self.success

    @property
    def text(self) -> str:
        """Output on success, reason on failure."""
        return self.output if self.success else self.reason
