"""Building blocks for managing GPU devices: device sets, replica allocation, request validation, health settings, vGPU detection and watching."""

__version__ = "0.17.0"