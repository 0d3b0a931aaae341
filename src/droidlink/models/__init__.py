"""Pydantic data models for droidlink."""

from droidlink.models.config import DEFAULT_PORT, ToolConfig
from droidlink.models.device import Device, DeviceInfo, DeviceState
from droidlink.models.result import OperationResult

__all__ = [
    "DEFAULT_PORT",
    "Device",
    "DeviceInfo",
    "DeviceState",
    "OperationResult",
    "ToolConfig",
]
