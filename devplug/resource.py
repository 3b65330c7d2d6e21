"""Resource managers that discover devices and report driver versions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class UnsupportedError(Exception):
    """Raised when a manager does not support an operation."""


class Manager(ABC):
    """Interface for managing devices."""

    @abstractmethod
    def init(self) -> None:
        """Initialise the underlying library."""

    @abstractmethod
    def shutdown(self) -> None:
        """Shut down the underlying library."""

    @abstractmethod
    def get_devices(self) -> list[Any]:
        """Return the devices known to the manager."""

    @abstractmethod
    def get_driver_version(self) -> str:
        """Return the driver version."""

    @abstractmethod
    def get_cuda_driver_version(self) -> tuple[int, int]:
        """Return the CUDA driver version as (major, minor)."""


class NullManager(Manager):
    """A manager with no devices whose init and shutdown do nothing."""

    def init(self) -> None:
        """Do nothing."""

    def shutdown(self) -> None:
        """Do nothing."""

    def get_devices(self) -> list[Any]:
        """Return no devices."""
        return []

    def get_cuda_driver_version(self) -> tuple[int, int]:
        """Always raise: not supported."""
        raise UnsupportedError("GetCudaDriverVersion is unsupported")

    def get_driver_version(self) -> str:
        """Always raise: not supported."""
        raise UnsupportedError("GetDriverVersion is unsupported")


class FallbackToNullManager(Manager):
    """Wraps a manager and turns into a NullManager on the first init error."""

    def __init__(self, manager: Manager) -> None:
        self._wraps = manager
        self._fallback = NullManager()

    def init(self) -> None:
        """Initialise the wrapped manager, falling back to a NullManager on failure."""
        try:
            self._wraps.init()
        except Exception as err:  # any init failure triggers the fallback
            logger.warning("Failed to initialize resource manager: %s", err)
            self._wraps = self._fallback

    def shutdown(self) -> None:
        self._wraps.shutdown()

    def get_devices(self) -> list[Any]:
        return self._wraps.get_devices()

    def get_cuda_driver_version(self) -> tuple[int, int]:
        return self._wraps.get_cuda_driver_version()

    def get_driver_version(self) -> str:
        return self._wraps.get_driver_version()