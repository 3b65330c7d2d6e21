"""Access to NVIDIA PCI devices and their configuration space."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

PCI_DEVICES_ROOT = "/sys/bus/pci/devices"
PCI_STATUS_BYTE = 0x06
PCI_STATUS_CAPABILITY_LIST = 0x10
PCI_CAPABILITY_LIST = 0x34
PCI_CAPABILITY_LIST_ID = 0
PCI_CAPABILITY_LIST_NEXT = 1
PCI_CAPABILITY_LENGTH = 2
PCI_CAPABILITY_VENDOR_SPECIFIC_ID = 0x09
PCI_NVIDIA_VENDOR_ID = "0x10de"

_FULL_CONFIG_SIZE = 256


class PCIError(Exception):
    """Raised when PCI device data cannot be read or is incomplete."""


@dataclass
class PCIDevice:
    """A single PCI device together with its raw configuration space."""

    path: str
    address: str
    pci_class: str
    vendor: str
    config: bytes = field(repr=False)

    def get_vendor_specific_capability(self) -> bytes | None:
        """Return the vendor specific capability record, or None if there is none."""
        config = self.config
        if len(config) < _FULL_CONFIG_SIZE:
            raise PCIError(
                f"entire PCI configuration is not read for device {self.address}. "
                "Please run GFD with privileged mode to read complete PCI configuration data"
            )

        if not config[PCI_STATUS_BYTE] & PCI_STATUS_CAPABILITY_LIST:
            return None

        visited: set[int] = set()
        pos = get_byte(config, PCI_CAPABILITY_LIST)
        while pos != 0:
            cap_id = get_byte(config, (pos + PCI_CAPABILITY_LIST_ID) & 0xFF)
            next_pos = get_byte(config, (pos + PCI_CAPABILITY_LIST_NEXT) & 0xFF)
            length = get_byte(config, (pos + PCI_CAPABILITY_LENGTH) & 0xFF)

            if pos in visited:
                # chain looped
                break
            if cap_id == 0xFF:
                # chain broken
                break
            if cap_id == PCI_CAPABILITY_VENDOR_SPECIFIC_ID:
                start = pos + PCI_CAPABILITY_LIST_ID
                return bytes(config[start:start + length])

            visited.add(pos)
            pos = next_pos

        return None


class NvidiaPCILib:
    """Lists the NVIDIA PCI devices found under a sysfs devices directory."""

    def __init__(self, root: str | os.PathLike[str] = PCI_DEVICES_ROOT) -> None:
        self.root = Path(root)

    @staticmethod
    def _read(path: Path, what: str) -> bytes:
        try:
            return path.read_bytes()
        except OSError as err:
            raise PCIError(f"{what}: {err}") from err

    def devices(self) -> list[PCIDevice]:
        """Return every NVIDIA PCI device on the system, ordered by address."""
        try:
            addresses = sorted(entry.name for entry in os.scandir(self.root))
        except OSError as err:
            raise PCIError(f"unable to read PCI bus devices: {err}") from err

        found = []
        for address in addresses:
            device_path = self.root / address
            vendor = self._read(
                device_path / "vendor",
                f"unable to read PCI device vendor id for {address}",
            ).decode("latin-1").strip()
            if vendor != PCI_NVIDIA_VENDOR_ID:
                continue

            pci_class = self._read(
                device_path / "class", f"unable to read PCI device class for {address}"
            ).decode("latin-1")
            config = self._read(
                device_path / "config",
                f"unable to read PCI configuration space for {address}",
            )
            found.append(
                PCIDevice(
                    path=str(device_path),
                    address=address,
                    pci_class=pci_class[:4],
                    vendor=vendor,
                    config=config,
                )
            )
        return found


class MockNvidiaPCI:
    """A fixed set of PCI devices, for use without real hardware."""

    def __init__(self, devices: Iterable[PCIDevice]) -> None:
        self._devices = list(devices)

    def devices(self) -> list[PCIDevice]:
        """Return the configured devices."""
        return list(self._devices)


def get_byte(buffer: bytes, pos: int) -> int:
    """Return the byte at ``pos``."""
    return buffer[pos]


def get_word(buffer: bytes, pos: int) -> int:
    """Return the little-endian 16-bit value at ``pos``."""
    return int.from_bytes(bytes(buffer[pos:pos + 2]).ljust(2, b"")[:2], "little") \
        if len(buffer) >= pos + 2 else _short_read(buffer, pos, 2)


def get_long(buffer: bytes, pos: int) -> int:
    """Return the little-endian 32-bit value at ``pos``."""
    return int.from_bytes(bytes(buffer[pos:pos + 4]), "little") \
        if len(buffer) >= pos + 4 else _short_read(buffer, pos, 4)


def _short_read(buffer: bytes, pos: int, size: int) -> int:
    raise IndexError(
        f"cannot read {size} bytes at offset {pos} from a buffer of {len(buffer)} bytes"
    )


def _config_space(segments: dict[int, str]) -> bytes:
    space = bytearray(_FULL_CONFIG_SIZE)
    for offset, text in segments.items():
        data = bytes.fromhex(text)
        space[offset:offset + len(data)] = data
    return bytes(space)


_PASSTHROUGH_CONFIG = _config_space({
    0: (
        "de 10 8a 11 07 04 10 00 a1 00 00 03 00 f8 00 00 "
        "00 00 00 ec 0c 00 00 e0 00 00 00 00 0c 00 00 ea "
        "00 00 00 00 01 c1 00 00 00 00 00 00 de 10 14 10 "
        "00 00 00 ee 60 00 00 00 00 00 00 00 05 01 00 00 "
        "de 10 14 10 00 00 00 00 00 00 00 00 00 00 00 00 "
        "01 00 00 00 01 00 00 00 ce d6 23 00 00 00 00 00 "
        "01 68 03 00 08 00 00 00 05 78 81 00 00 70 e6 fe "
        "00 00 00 00 00 43 00 00 10 b4 02 00 e1 8d 64 00 "
        "10 29 00 00 03 3d 45 10 00 00 01 11 00 00 00 00 "
        "00 00 00 00 00 00 00 00 00 00 00 00 13 00 00 00 "
        "00 00 00 00 0e 00 00 00 03 00 3e 00 00 00 00 00 "
        "00 00 00 00 09 00 14 01"
    ),
})

_VGPU_CONFIG = _config_space({
    0: (
        "de 10 b8 1e 02 05 ff 06 a1 00 00 03 00 00 00 00 "
        "00 00 00 fc 0c 00 00 d0 00 00 00 00 04 00 00 fa "
        "00 00 00 00 00 00 00 00 00 00 00 00 de 10 0f 13 "
        "00 00 00 00 d0 00 00 00 00 00 00 00 0a 01 00 00 "
        "00 00 00 00 00 00 00 00 00 00 00 00 00 00 00 00 "
        "01 00 00 00 01 00 00 00 ce d6 23 00 00 00 00 00 "
        "00 00 00 00 00 00 00 00 05 00 81 00 00 00 e0 fe "
        "00 00 00 00 4e 40"
    ),
    0xD0: (
        "09 68 1b 56 46 00 16 34 36 30 2e 31 36 00 00 00 "
        "00 72 34 36 30 5f 30 30 00 00 00"
    ),
})


def new_mock_nvidia_pci() -> MockNvidiaPCI:
    """Return a mock with one passthrough GPU and one vGPU."""
    return MockNvidiaPCI([
        PCIDevice(
            path="",
            address="passthrough",
            vendor=PCI_NVIDIA_VENDOR_ID,
            pci_class="300",
            config=_PASSTHROUGH_CONFIG,
        ),
        PCIDevice(
            path="",
            address="vgpu",
            vendor=PCI_NVIDIA_VENDOR_ID,
            pci_class="300",
            config=_VGPU_CONFIG,
        ),
    ])