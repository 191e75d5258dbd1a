"""Volume domain enums and constants."""

from enum import StrEnum

# Sizes are declared in gigabytes and sent to the API in bytes.
GB = 1 << 30


class VolumeType(StrEnum):
    """Volume storage class (immutable after creation)."""

    B_SSD = "b_ssd"  # block storage, resizable
    L_SSD = "l_ssd"  # local storage, fixed size


class VolumeStatus(StrEnum):
    """Remote volume state."""

    AVAILABLE = "available"
    SNAPSHOTTING = "snapshotting"
    FETCHING = "fetching"
    RESIZING = "resizing"
    SAVING = "saving"
    HOTSYNCING = "hotsyncing"
    ERROR = "error"
    UNKNOWN = "unknown"


# No in-flight operation; the API accepts new mutations.
STABLE_STATUSES = frozenset({
    VolumeStatus.AVAILABLE,
    VolumeStatus.ERROR,
})
