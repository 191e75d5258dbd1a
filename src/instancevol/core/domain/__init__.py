"""Domain models and enums."""

from instancevol.core.domain.volume import (
    GB,
    STABLE_STATUSES,
    VolumeStatus,
    VolumeType,
)

__all__ = [
    "GB",
    "STABLE_STATUSES",
    "VolumeStatus",
    "VolumeType",
]
