"""Core interfaces."""

from instancevol.core.interfaces.volume import InstanceVolumeAPI

__all__ = ["InstanceVolumeAPI"]
