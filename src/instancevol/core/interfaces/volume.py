"""Instance volume API interface."""

from abc import ABC, abstractmethod

from instancevol.core.models.volume import CreateVolumeRequest, Volume


class InstanceVolumeAPI(ABC):
    """Interface for remote volume operations.

    Implementations:
    - InstanceAPIClient: Instance API v1 over HTTP
    """

    @abstractmethod
    async def create_volume(self, request: CreateVolumeRequest) -> Volume:
        """Create a volume.

        Args:
            request: Creation payload

        Returns:
            The created volume (its id is assigned by the remote side)
        """
        ...

    @abstractmethod
    async def get_volume(self, zone: str, volume_id: str) -> Volume:
        """Fetch a volume.

        Raises:
            RemoteNotFoundError: If the volume does not exist
        """
        ...

    @abstractmethod
    async def update_volume(
        self,
        zone: str,
        volume_id: str,
        *,
        name: str | None = None,
        size: int | None = None,
    ) -> Volume:
        """Rename and/or resize a volume.

        Args:
            name: New name (unchanged if None)
            size: New size in bytes (unchanged if None)
        """
        ...

    @abstractmethod
    async def delete_volume(self, zone: str, volume_id: str) -> None:
        """Delete a volume.

        Raises:
            RemoteNotFoundError: If the volume does not exist
        """
        ...

    @abstractmethod
    async def wait_for_volume(
        self,
        zone: str,
        volume_id: str,
        *,
        retry_interval: float,
        timeout: float | None = None,
    ) -> Volume:
        """Poll until the volume reaches a stable state.

        Raises:
            OperationTimeoutError: If the volume is still transitioning
                when the timeout elapses
        """
        ...
