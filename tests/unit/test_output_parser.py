"""Unit tests for droidlink.bridge.parser."""

from __future__ import annotations

import pytest

from droidlink.bridge.parser import (
    first_line,
    is_connect_success,
    is_install_success,
    parse_battery_level,
    parse_connected_devices,
    parse_device_entries,
    parse_ipv4,
    parse_property,
)
from droidlink.models.device import DeviceState


# ---------------------------------------------------------------------------
# adb devices -l
# ---------------------------------------------------------------------------

class TestParseConnectedDevices:
    def test_identifiers_in_bridge_order(self, devices_output: str):
        assert parse_connected_devices(devices_output) == [
            "emulator-5554",
            "192.168.1.20:5555",
            "R58M12ABCDE",
        ]

    def test_header_token_never_returned(self, devices_output: str):
        assert "List" not in parse_connected_devices(devices_output)

    def test_header_only(self):
        assert parse_connected_devices("List of devices attached\n\n") == []

    def test_first_line_always_discarded(self):
        raw = "emulator-5554 device\nemulator-5556 device\n"
        assert parse_connected_devices(raw) == ["emulator-5556"]

    def test_daemon_notices_skipped(self):
        raw = (
            "* daemon not running; starting now at tcp:5037\n"
            "* daemon started successfully\n"
            "List of devices attached\n"
            "emulator-5554\tdevice\n"
        )
        assert parse_connected_devices(raw) == ["emulator-5554"]

    def test_tab_separated(self):
        raw = "List of devices attached\r\nemulator-5554\tdevice\r\n"
        assert parse_connected_devices(raw) == ["emulator-5554"]

    @pytest.mark.parametrize("raw", ["", None, "\n\n\n", "garbage"])
    def test_empty_or_malformed(self, raw):
        assert parse_connected_devices(raw) == []


class TestParseDeviceEntries:
    def test_states(self, devices_output: str):
        states = [d.state for d in parse_device_entries(devices_output)]
        assert states == [DeviceState.DEVICE, DeviceState.DEVICE, DeviceState.UNAUTHORIZED]

    def test_missing_state_is_unknown(self):
        devices = parse_device_entries("List of devices attached\nabc123\n")
        assert devices[0].state is DeviceState.UNKNOWN

    def test_unrecognised_state_is_unknown(self):
        devices = parse_device_entries("List of devices attached\nabc123 recovery\n")
        assert devices[0].state is DeviceState.UNKNOWN

    def test_offline(self):
        devices = parse_device_entries("List of devices attached\n10.0.0.5:5555 offline\n")
        assert devices[0].state is DeviceState.OFFLINE
        assert devices[0].is_network


# ---------------------------------------------------------------------------
# ip -f inet addr show
# ---------------------------------------------------------------------------

IP_ADDR_OUTPUT = """\
30: wlan0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc mq state UP group default qlen 3000
    inet 192.168.1.100/24 brd 192.168.1.255 scope global wlan0
       valid_lft forever preferred_lft forever
"""


class TestParseIPv4:
    def test_interface_dump(self):
        assert parse_ipv4(IP_ADDR_OUTPUT) == "192.168.1.100"

    def test_prefix_stripped(self):
        assert parse_ipv4("inet 10.0.0.5/24 brd 10.0.0.255 scope global eth0") == "10.0.0.5"

    def test_without_prefix(self):
        assert parse_ipv4("    inet 10.0.0.5 peer 10.0.0.1") == "10.0.0.5"

    def test_first_match_wins(self):
        raw = "inet 10.0.0.5/24\ninet 10.0.0.6/24\n"
        assert parse_ipv4(raw) == "10.0.0.5"

    def test_skips_non_address_token(self):
        raw = "inet addr/24\ninet 172.16.0.9/16\n"
        assert parse_ipv4(raw) == "172.16.0.9"

    def test_syntactic_check_only(self):
        assert parse_ipv4("inet 999.1.1.1/8") == "999.1.1.1"

    def test_inet6_ignored(self):
        assert parse_ipv4("inet6 fe80::1/64 scope link") is None

    def test_no_inet_line(self):
        assert parse_ipv4("Device \"wlan0\" does not exist.\n") is None

    @pytest.mark.parametrize("raw", ["", None, "inet", "inet "])
    def test_empty_or_malformed(self, raw):
        assert parse_ipv4(raw) is None


# ---------------------------------------------------------------------------
# dumpsys battery
# ---------------------------------------------------------------------------

BATTERY_OUTPUT = """\
Current Battery Service state:
  AC powered: false
  USB powered: true
  status: 2
  health: 2
  present: true
  level: 87
  scale: 100
  voltage: 4231
"""


class TestParseBatteryLevel:
    def test_level(self):
        assert parse_battery_level(BATTERY_OUTPUT) == 87

    def test_first_match_wins(self):
        assert parse_battery_level("level: 40\nlevel: 90\n") == 40

    def test_non_numeric(self):
        assert parse_battery_level("  level: unknown\n") is None

    @pytest.mark.parametrize("raw", ["", None, "scale: 100\n"])
    def test_missing(self, raw):
        assert parse_battery_level(raw) is None


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

class TestParseProperty:
    def test_value_trimmed(self):
        assert parse_property("Pixel 7\r\n") == "Pixel 7"

    @pytest.mark.parametrize("raw", ["", None, "\n"])
    def test_unset(self, raw):
        assert parse_property(raw) is None


class TestFirstLine:
    def test_version_banner(self):
        raw = "Android Debug Bridge version 1.0.41\nVersion 35.0.1-11580240\n"
        assert first_line(raw) == "Android Debug Bridge version 1.0.41"

    def test_leading_blank_lines(self):
        assert first_line("\n\n  hello \n") == "hello"

    def test_empty(self):
        assert first_line("") == ""


class TestConnectSuccess:
    @pytest.mark.parametrize("raw", [
        "connected to 10.0.0.5:5555\n",
        "already connected to 10.0.0.5:5555\n",
    ])
    def test_success(self, raw):
        assert is_connect_success(raw) is True

    @pytest.mark.parametrize("raw", [
        "failed to connect to '10.0.0.5:5555': Connection refused\n",
        "cannot connect to 10.0.0.5:5555: No route to host\n",
        "disconnected 10.0.0.5:5555\n",
        "",
        None,
    ])
    def test_failure(self, raw):
        assert is_connect_success(raw) is False


class TestInstallSuccess:
    def test_success(self):
        assert is_install_success("Performing Streamed Install\nSuccess\n") is True

    def test_failure(self):
        assert is_install_success("Failure [INSTALL_FAILED_VERSION_DOWNGRADE]") is False

    def test_empty(self):
        assert is_install_success(None) is False
