"""Bridge tool configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_PORT = 5555


class ToolConfig(BaseModel):
    """Caller-owned settings read at the start of every operation."""
    model_config = {"frozen": True}

    bridge_executable_path: str = Field(
        default="",
        description="Path to the adb executable, or a bare name found on PATH",
    )
    default_port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)

    def with_path(self, path: str) -> ToolConfig:
        return self.model_copy(update={"bridge_executable_path": path})
