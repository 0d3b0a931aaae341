"""Ordered list of known devices plus the current selection."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from droidlink.exceptions import IndexOutOfRangeError
from droidlink.models.device import Device

NO_SELECTION = -1


class DeviceRegistry:
    """Devices in the order the bridge listed them.

    Replaced wholesale on every refresh. The selected index is -1 when the
    list is empty and 0 right after any non-empty replace.
    """

    def __init__(self) -> None:
        self._devices: list[Device] = []
        self._selected_index = NO_SELECTION

    def replace(self, devices: Iterable[Device | str]) -> None:
        self._devices = [
            d if isinstance(d, Device) else Device(identifier=d)
            for d in devices
        ]
        self._selected_index = 0 if self._devices else NO_SELECTION

    def select(self, index: int) -> Device:
        if not 0 <= index < len(self._devices):
            raise IndexOutOfRangeError(
                f"Device index {index} out of range (0..{len(self._devices) - 1})"
            )
        self._selected_index = index
        return self._devices[index]

    def clear(self) -> None:
        self.replace(())

    @property
    def devices(self) -> tuple[Device, ...]:
        return tuple(self._devices)

    @property
    def identifiers(self) -> list[str]:
        return [d.identifier for d in self._devices]

    @property
    def selected_index(self) -> int:
        return self._selected_index

    @property
    def selected(self) -> Device | None:
        if self._selected_index == NO_SELECTION:
            return None
        return self._devices[self._selected_index]

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices))

    def __contains__(self, identifier: object) -> bool:
        return any(d.identifier == identifier for d in self._devices)
