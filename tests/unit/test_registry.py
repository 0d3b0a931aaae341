"""Unit tests for droidlink.core.registry."""

from __future__ import annotations

import pytest

from droidlink.core.registry import DeviceRegistry
from droidlink.exceptions import IndexOutOfRangeError
from droidlink.models.device import Device, DeviceState


class TestReplace:
    def test_starts_empty(self):
        reg = DeviceRegistry()
        assert len(reg) == 0
        assert reg.selected_index == -1
        assert reg.selected is None

    def test_non_empty_selects_first(self):
        reg = DeviceRegistry()
        reg.replace(["a", "b"])
        assert reg.identifiers == ["a", "b"]
        assert reg.selected_index == 0
        assert reg.selected == Device(identifier="a")

    def test_empty_clears_selection(self):
        reg = DeviceRegistry()
        reg.replace(["a"])
        reg.replace([])
        assert reg.selected_index == -1
        assert reg.identifiers == []

    def test_selection_reset_on_every_replace(self):
        reg = DeviceRegistry()
        reg.replace(["a", "b", "c"])
        reg.select(2)
        reg.replace(["a", "b", "c"])
        assert reg.selected_index == 0

    def test_stale_entries_dropped(self):
        reg = DeviceRegistry()
        reg.replace(["a", "b"])
        reg.replace(["c"])
        assert reg.identifiers == ["c"]
        assert "a" not in reg

    def test_accepts_devices(self):
        reg = DeviceRegistry()
        reg.replace([Device(identifier="x", state=DeviceState.OFFLINE)])
        assert reg.devices[0].state is DeviceState.OFFLINE

    @pytest.mark.parametrize("ids", [[], ["a"], ["a", "b", "c"]])
    def test_selection_invariant(self, ids):
        reg = DeviceRegistry()
        reg.replace(ids)
        assert (reg.selected_index == -1) == (len(ids) == 0)
        if ids:
            assert reg.selected_index == 0


class TestSelect:
    def test_valid_index(self):
        reg = DeviceRegistry()
        reg.replace(["a", "b"])
        assert reg.select(1).identifier == "b"
        assert reg.selected_index == 1

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_out_of_range(self, index):
        reg = DeviceRegistry()
        reg.replace(["a", "b"])
        with pytest.raises(IndexOutOfRangeError):
            reg.select(index)
        assert reg.selected_index == 0

    def test_select_on_empty(self):
        with pytest.raises(IndexError):
            DeviceRegistry().select(0)


class TestLookup:
    def test_iteration_is_a_snapshot(self):
        reg = DeviceRegistry()
        reg.replace(["a", "b"])
        seen = []
        for device in reg:
            seen.append(device.identifier)
            reg.replace([])
        assert seen == ["a", "b"]
