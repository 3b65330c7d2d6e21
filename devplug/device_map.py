"""Devices grouped by the resource name they are advertised under."""

from __future__ import annotations

from devplug.devices import Device, DeviceInfo, Devices, build_device


class DeviceMap(dict):
    """Maps resource names to the Devices advertised under them."""

    def insert(self, name: str, device: Device) -> None:
        """Add ``device`` under ``name``, replacing one with the same ID."""
        self.setdefault(name, Devices())[device.id] = device

    def merge(self, other: "DeviceMap") -> None:
        """Insert every device of ``other`` into this map."""
        for name, devices in other.items():
            for device in devices.values():
                self.insert(name, device)

    def is_empty(self) -> bool:
        """Return True if no resource holds any device."""
        return all(len(devices) == 0 for devices in self.values())

    def set_entry(self, name: str, index: str, info: DeviceInfo) -> None:
        """Build a device at ``index`` from ``info`` and insert it under ``name``."""
        self.insert(name, build_device(index, info))