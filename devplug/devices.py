"""Devices managed by a resource manager, and the IDs that name their replicas."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable

HEALTHY = "Healthy"
UNHEALTHY = "Unhealthy"

TEGRA_DEVICE_NAME = "tegra"

_ANNOTATION_SEPARATOR = "::"
_REPLICA_PATTERN = re.compile(r"[+-]?\d+")


class DeviceInfo(ABC):
    """The information needed to construct a Device."""

    @abstractmethod
    def get_uuid(self) -> str:
        """Return the device UUID."""

    @abstractmethod
    def get_paths(self) -> list[str]:
        """Return the device nodes belonging to the device."""

    @abstractmethod
    def get_numa_node(self) -> tuple[bool, int]:
        """Return whether a NUMA node is known, and which one."""

    @abstractmethod
    def get_total_memory(self) -> int:
        """Return the total memory of the device in bytes."""

    @abstractmethod
    def get_compute_capability(self) -> str:
        """Return the compute capability as "major.minor"."""


@dataclass
class Device:
    """A device advertised to the kubelet, with extra metadata."""

    id: str
    index: str = ""
    paths: list[str] = field(default_factory=list)
    total_memory: int = 0
    compute_capability: str = ""
    # Total number of times this device is replicated; 0 or 1 means not shared.
    replicas: int = 0
    health: str = HEALTHY
    numa_node: int | None = None

    def aligned_allocation_supported(self) -> bool:
        """Return True if the device may take part in an aligned allocation."""
        if self.is_mig_device():
            return False
        return "/dev/dxg" not in self.paths

    def is_mig_device(self) -> bool:
        """Return True if the device is a MIG device."""
        return ":" in self.index

    def get_uuid(self) -> str:
        """Return the UUID of the device, without any replica annotation."""
        return get_id(self.id)


class Devices(dict):
    """Devices keyed by their (possibly annotated) ID."""

    def contains(self, *ids: str) -> bool:
        """Return True if every one of ``ids`` is present."""
        return all(device_id in self for device_id in ids)

    def get_by_id(self, id: str) -> Device | None:
        """Return the device with the given ID, or None."""
        return self.get(id)

    def get_by_index(self, index: str) -> Device | None:
        """Return the first device with the given index, or None."""
        return next((d for d in self.values() if d.index == index), None)

    def subset(self, ids: Iterable[str]) -> "Devices":
        """Return the devices matching ``ids``; unknown IDs are skipped."""
        return Devices((device_id, self[device_id]) for device_id in ids if device_id in self)

    def difference(self, other: "Devices") -> "Devices":
        """Return the devices present here but not in ``other``."""
        return Devices((k, v) for k, v in self.items() if k not in other)

    def get_ids(self) -> list[str]:
        """Return the IDs of all devices."""
        return [d.id for d in self.values()]

    def get_uuids(self) -> list[str]:
        """Return the distinct UUIDs behind the devices."""
        return list(dict.fromkeys(d.get_uuid() for d in self.values()))

    def get_indices(self) -> list[str]:
        """Return the indices of all devices."""
        return [d.index for d in self.values()]

    def get_paths(self) -> list[str]:
        """Return the device paths of all devices, concatenated."""
        return [p for d in self.values() for p in d.paths]

    def aligned_allocation_supported(self) -> bool:
        """Return True if every device supports an aligned allocation."""
        return all(d.aligned_allocation_supported() for d in self.values())


class TegraDevice(DeviceInfo):
    """The single integrated GPU of a Tegra system."""

    def get_uuid(self) -> str:
        return TEGRA_DEVICE_NAME

    def get_paths(self) -> list[str]:
        return []

    def get_numa_node(self) -> tuple[bool, int]:
        return False, -1

    def get_total_memory(self) -> int:
        return 0

    def get_compute_capability(self) -> str:
        return "0.0"


def build_device(index: str, info: DeviceInfo) -> Device:
    """Build a healthy Device at ``index`` from ``info``."""
    uuid = info.get_uuid()
    paths = info.get_paths()
    has_numa, numa = info.get_numa_node()
    total_memory = info.get_total_memory()
    compute_capability = info.get_compute_capability()
    return Device(
        id=uuid,
        index=index,
        paths=list(paths or []),
        total_memory=total_memory,
        compute_capability=compute_capability,
        health=HEALTHY,
        numa_node=numa if has_numa else None,
    )


def new_annotated_id(id: str, replica: int) -> str:
    """Return ``id`` annotated with a replica number."""
    return f"{id}{_ANNOTATION_SEPARATOR}{replica}"


def has_annotations(annotated: str) -> bool:
    """Return True if the ID carries a replica annotation."""
    return _ANNOTATION_SEPARATOR in annotated


def split_annotated_id(annotated: str) -> tuple[str, int]:
    """Split an annotated ID into its ID and replica number."""
    device_id, sep, replica = annotated.partition(_ANNOTATION_SEPARATOR)
    if not sep:
        return annotated, 0
    if _REPLICA_PATTERN.fullmatch(replica):
        return device_id, int(replica)
    return device_id, 0


def get_id(annotated: str) -> str:
    """Return the ID part of an annotated ID."""
    return split_annotated_id(annotated)[0]


def any_has_annotations(ids: Iterable[str]) -> bool:
    """Return True if any of the IDs carries an annotation."""
    return any(has_annotations(i) for i in ids)


def strip_annotations(ids: Iterable[str]) -> list[str]:
    """Return the ID parts of the given annotated IDs."""
    return [get_id(i) for i in ids]


def nul_terminated_string(values: Iterable[int]) -> str:
    """Return the text held in a NUL-terminated sequence of (signed) bytes."""
    data = bytearray()
    for value in values:
        if value == 0:
            break
        data.append(value & 0xFF)
    return data.decode("utf-8", errors="replace")