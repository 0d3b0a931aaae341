"""Parsers for adb text output.

Every function here is pure and tolerant: empty or malformed input yields
an empty list or None, never an exception.
"""

from __future__ import annotations

import re

from droidlink.models.device import Device, DeviceState

DEVICES_HEADER = "List of devices attached"

# Syntactic check only; octets above 255 are not rejected.
_IPV4_RE = re.compile(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}")

_INET_PREFIX = "inet "
_BATTERY_LEVEL_KEY = "level:"
_CONNECTED_MARKER = "connected to "
_INSTALL_SUCCESS_MARKER = "Success"


def parse_device_entries(raw: str | None) -> list[Device]:
    """Parse ``adb devices -l`` output into devices, in bridge order.

    The first line is the header and is always dropped. Daemon start-up
    notices (``* daemon started successfully``) are skipped as well.
    """
    if not raw:
        return []

    devices: list[Device] = []
    for line in raw.splitlines()[1:]:
        tokens = line.split()
        if not tokens:
            continue
        identifier = tokens[0]
        if "List" in identifier or identifier.startswith("*"):
            continue
        state = DeviceState.from_token(tokens[1]) if len(tokens) > 1 else DeviceState.UNKNOWN
        devices.append(Device(identifier=identifier, state=state))
    return devices


def parse_connected_devices(raw: str | None) -> list[str]:
    """Return just the device identifiers from ``adb devices -l`` output."""
    return [device.identifier for device in parse_device_entries(raw)]


def parse_ipv4(raw: str | None) -> str | None:
    """Extract the first IPv4 address from ``ip -f inet addr show`` output.

    ``inet 192.168.1.100/24 brd 192.168.1.255 scope global wlan0``
    yields ``192.168.1.100``.
    """
    if not raw:
        return None

    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped.startswith(_INET_PREFIX):
            continue
        tokens = stripped.split()
        if len(tokens) < 2:
            continue
        address = tokens[1].split("/", 1)[0]
        if _IPV4_RE.fullmatch(address):
            return address
    return None


def parse_battery_level(raw: str | None) -> int | None:
    """Battery percentage from ``dumpsys battery``; only the first ``level:`` line counts."""
    if not raw:
        return None

    for line in raw.splitlines():
        if _BATTERY_LEVEL_KEY not in line:
            continue
        value = line.split(":", 1)[1].strip()
        try:
            return int(value)
        except ValueError:
            return None
    return None


def parse_property(raw: str | None) -> str | None:
    """Value printed by ``getprop <name>``; None when unset."""
    if not raw:
        return None
    value = raw.strip()
    return value or None


def first_line(raw: str | None) -> str:
    """First non-blank line, stripped."""
    if not raw:
        return ""
    for line in raw.splitlines():
        if line.strip():
            return line.strip()
    return ""


def is_connect_success(raw: str | None) -> bool:
    """True for ``connected to host:port`` and ``already connected to host:port``.

    ``failed to connect to ...`` and ``disconnected ...`` do not match.
    """
    return bool(raw) and _CONNECTED_MARKER in raw


def is_install_success(raw: str | None) -> bool:
    return bool(raw) and _INSTALL_SUCCESS_MARKER in raw
