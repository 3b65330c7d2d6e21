"""Health-check settings and parsing of MIG device UUIDs."""

from __future__ import annotations

import logging
import os
import re

logger = logging.getLogger(__name__)

ENV_DISABLE_HEALTH_CHECKS = "DP_DISABLE_HEALTHCHECKS"
ALL_HEALTH_CHECKS = "xids"

# Application errors: the GPU should still be healthy after these.
APPLICATION_ERROR_XIDS = frozenset({
    13,  # Graphics Engine Exception
    31,  # GPU memory page fault
    43,  # GPU stopped processing
    45,  # Preemptive cleanup, due to previous errors
    68,  # Video processor exception
})

# Marks the GPU and compute instance of a full (non-MIG) device.
NO_INSTANCE_ID = 0xFFFFFFFF

_UINT64_MAX = (1 << 64) - 1
_UINT32_MAX = (1 << 32) - 1
_DECIMAL = re.compile(r"[0-9]+")


class MigUUIDError(ValueError):
    """Raised when a UUID cannot be parsed as a MIG device UUID."""

    def __init__(self, mig: str) -> None:
        super().__init__("unable to parse UUID as MIG device")
        self.mig = mig


def _parse_unsigned(text: str, maximum: int) -> int | None:
    if not _DECIMAL.fullmatch(text):
        return None
    value = int(text)
    return value if value <= maximum else None


def _setting(value: str | None) -> str:
    if value is None:
        value = os.environ.get(ENV_DISABLE_HEALTH_CHECKS, "")
    value = value.lower()
    return ALL_HEALTH_CHECKS if value == "all" else value


def get_additional_xids(input: str) -> list[int]:
    """Return the valid unsigned Xids in a comma-separated string; others are ignored."""
    xids = []
    for item in input.split(","):
        trimmed = item.strip()
        if not trimmed:
            continue
        xid = _parse_unsigned(trimmed, _UINT64_MAX)
        if xid is None:
            logger.info("Ignoring malformed Xid value %s", trimmed)
            continue
        xids.append(xid)
    return xids


def health_checks_disabled(value: str | None = None) -> bool:
    """Return True if the setting (default: the environment) turns health checks off."""
    return ALL_HEALTH_CHECKS in _setting(value)


def skipped_xids(value: str | None = None) -> frozenset[int]:
    """Return the Xids that do not mark a device unhealthy."""
    return APPLICATION_ERROR_XIDS | frozenset(get_additional_xids(_setting(value)))


def parse_mig_device_uuid(mig: str) -> tuple[str, int, int]:
    """Split "MIG-GPU-<uuid>/<gi>/<ci>" into (parent UUID, GI, CI)."""
    prefix, sep, rest = mig.partition("-")
    if not sep or prefix != "MIG":
        raise MigUUIDError(mig)

    tokens = rest.split("/", 2)
    if len(tokens) != 3 or not tokens[0].startswith("GPU-"):
        raise MigUUIDError(mig)

    gi = _parse_unsigned(tokens[1], _UINT32_MAX)
    ci = _parse_unsigned(tokens[2], _UINT32_MAX)
    if gi is None or ci is None:
        raise MigUUIDError(mig)

    return tokens[0], gi, ci