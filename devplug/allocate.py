"""Allocation that spreads replicated devices evenly over their GPUs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from devplug.devices import Devices, get_id


class AllocationError(Exception):
    """Raised when an allocation cannot be satisfied."""


@dataclass
class _ReplicaCount:
    total: int = 0
    available: int = 0


def distributed_alloc(
    devices: Devices, available: Sequence[str], required: Sequence[str], size: int
) -> list[str]:
    """Choose ``size`` devices, spreading replicas evenly over the GPUs behind them.

    Required devices come first; the rest are taken one at a time from the GPU
    with the fewest replicas already allocated.
    """
    candidates = devices.subset(available).difference(devices.subset(required)).get_ids()
    needed = size - len(required)

    if len(candidates) < needed:
        raise AllocationError("not enough available devices to satisfy allocation")

    replicas: dict[str, _ReplicaCount] = {}
    for candidate in candidates:
        replicas.setdefault(get_id(candidate), _ReplicaCount()).available += 1
    for device_id in devices:
        count = replicas.get(get_id(device_id))
        if count is not None:
            count.total += 1

    def used(candidate: str) -> int:
        count = replicas[get_id(candidate)]
        return count.total - count.available

    chosen = []
    for _ in range(needed):
        candidates.sort(key=used)
        pick = candidates.pop(0)
        replicas[get_id(pick)].available -= 1
        chosen.append(pick)

    return list(required) + chosen