"""Volume models."""

from instancevol.core.models.volume import (
    VOLUME_SCHEMA,
    CreateVolumeRequest,
    FieldSchema,
    Volume,
    VolumeDiff,
    VolumeSpec,
    diff_specs,
)

__all__ = [
    "VOLUME_SCHEMA",
    "CreateVolumeRequest",
    "FieldSchema",
    "Volume",
    "VolumeDiff",
    "VolumeSpec",
    "diff_specs",
]
