"""API dependencies for dependency injection."""

from instancevol.app.config import get_settings
from instancevol.control import VolumeReconciler
from instancevol.infra import InstanceAPIClient

_client: InstanceAPIClient | None = None
_reconciler: VolumeReconciler | None = None


async def init_reconciler() -> None:
    """Initialize the API client and reconciler singletons.

    Must be called during app startup.
    """
    global _client, _reconciler
    settings = get_settings()
    _client = InstanceAPIClient(settings.api, settings.retry)
    _reconciler = VolumeReconciler(
        _client,
        settings.volume,
        default_zone=settings.api.default_zone,
        default_project_id=settings.api.default_project_id,
    )


async def close_reconciler() -> None:
    """Close the API client and release resources."""
    global _client, _reconciler
    if _client:
        await _client.close()
    _client = None
    _reconciler = None


def get_reconciler() -> VolumeReconciler:
    """Get reconciler singleton.

    Raises:
        RuntimeError: If called before init_reconciler().
    """
    if _reconciler is None:
        raise RuntimeError("Reconciler not initialized. Call init_reconciler() first.")
    return _reconciler
