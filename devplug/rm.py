"""Resource managers that validate requests and choose allocations."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from devplug.allocate import distributed_alloc
from devplug.devices import Devices, any_has_annotations

_log = logging.getLogger(__name__)


class SharingStrategy(enum.Enum):
    """How a resource's devices are shared between workloads."""

    NONE = "none"
    TIME_SLICING = "time-slicing"
    MPS = "mps"


class InvalidRequestError(ValueError):
    """Raised when an allocation request does not fit the resource manager."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"invalid request: {detail}")
        self.detail = detail


@dataclass
class ResourceManager:
    """The devices advertised under one resource name, with its sharing settings."""

    resource: str
    devices: Devices = field(default_factory=Devices)
    sharing_strategy: SharingStrategy = SharingStrategy.NONE
    fail_requests_greater_than_one: bool = False

    def validate_request(self, ids: Iterable[str]) -> None:
        """Raise InvalidRequestError if the IDs are unknown or break the sharing rules."""
        ids = list(ids)
        for device_id in ids:
            if not self.devices.contains(device_id):
                raise InvalidRequestError(f"unknown device: {device_id}")

        includes_replicas = any_has_annotations(ids)
        count = len(ids)
        if not includes_replicas or count <= 1:
            return

        # MPS ignores fail_requests_greater_than_one: its limit is always one.
        if self.sharing_strategy is SharingStrategy.MPS or (
            self.sharing_strategy is SharingStrategy.TIME_SLICING
            and self.fail_requests_greater_than_one
        ):
            raise InvalidRequestError(
                f"maximum request size for shared resources is 1; found {count}"
            )


class TegraResourceManager(ResourceManager):
    """Resource manager for the integrated GPU of a Tegra system."""

    def get_preferred_allocation(
        self, available: Sequence[str], required: Sequence[str], size: int
    ) -> list[str]:
        """Spread the allocation evenly over the replicated devices."""
        return distributed_alloc(self.devices, available, required, size)

    def get_device_paths(self, ids: Iterable[str]) -> list[str]:
        """Return the device nodes of the requested devices; Tegra devices have none."""
        return list(self.devices.subset(list(ids)).get_paths() or [])

    def check_health(self, stop, unhealthy) -> None:
        """Return at once: health checks are disabled for Tegra devices."""
        _log.debug(
            "health checks are disabled for resource %s (%d devices)",
            self.resource,
            len(self.devices.get_ids() or []),
        )
        return None