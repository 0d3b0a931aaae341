"""Device identity and on-demand state models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class DeviceState(str, Enum):
    """Connection state as reported by ``adb devices``."""
    UNKNOWN = "unknown"
    DEVICE = "device"
    OFFLINE = "offline"
    UNAUTHORIZED = "unauthorized"

    @classmethod
    def from_token(cls, token: str) -> DeviceState:
        try:
            return cls(token.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Device(BaseModel):
    """A device known to the bridge, e.g. ``emulator-5554`` or ``10.0.0.5:5555``."""
    model_config = {"frozen": True}

    identifier: str
    state: DeviceState = DeviceState.UNKNOWN

    @property
    def is_network(self) -> bool:
        """True for devices attached over TCP/IP (``host:port`` identifiers)."""
        return ":" in self.identifier


class DeviceInfo(BaseModel):
    """Result of a state query. Fields are None when their query failed."""
    identifier: str
    model: str | None = None
    os_version: str | None = None
    manufacturer: str | None = None
    battery_level: int | None = None

    def summary(self) -> str:
        """Human-readable multi-line summary; absent fields are left out."""
        lines: list[str] = []
        name = " ".join(part for part in (self.manufacturer, self.model) if part)
        if name:
            lines.append(f"Device: {name}")
        if self.os_version:
            lines.append(f"Android version: {self.os_version}")
        if self.battery_level is not None:
            lines.append(f"Battery level: {self.battery_level}%")
        if not lines:
            lines.append(f"No state available for {self.identifier}")
        return "\n".join(lines)
