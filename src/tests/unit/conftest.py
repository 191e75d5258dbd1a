"""Shared fixtures for unit tests."""

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from instancevol.app.config import VolumeConfig
from instancevol.control import VolumeReconciler
from instancevol.core.domain import GB, VolumeStatus, VolumeType
from instancevol.core.interfaces import InstanceVolumeAPI
from instancevol.core.models import Volume

ZONE = "fr-par-1"
VOLUME_ID = "11111111-1111-1111-1111-111111111111"
PROJECT_ID = "22222222-2222-2222-2222-222222222222"
ORGANIZATION_ID = "33333333-3333-3333-3333-333333333333"


@pytest.fixture
def make_volume() -> Callable[..., Volume]:
    """Factory for remote Volume objects with sensible defaults."""

    def _make(**overrides: object) -> Volume:
        fields: dict = {
            "id": VOLUME_ID,
            "name": "data",
            "volume_type": VolumeType.B_SSD,
            "size": 10 * GB,
            "zone": ZONE,
            "project": PROJECT_ID,
            "organization": ORGANIZATION_ID,
            "server_id": None,
            "state": VolumeStatus.AVAILABLE,
        }
        fields.update(overrides)
        return Volume(**fields)

    return _make


@pytest.fixture
def volume_config() -> VolumeConfig:
    """No-sleep timing so polling loops run instantly."""
    return VolumeConfig(
        wait_retry_interval=0.0,
        wait_timeout=5.0,
        delete_timeout=5.0,
        name_prefix="tf-vol",
    )


@pytest.fixture
def mock_api(make_volume: Callable[..., Volume]) -> AsyncMock:
    """Mock InstanceVolumeAPI returning a healthy 10 GB block volume."""
    api = AsyncMock(spec=InstanceVolumeAPI)
    api.create_volume = AsyncMock(return_value=make_volume())
    api.get_volume = AsyncMock(return_value=make_volume())
    api.update_volume = AsyncMock(return_value=make_volume())
    api.delete_volume = AsyncMock(return_value=None)
    api.wait_for_volume = AsyncMock(return_value=make_volume())
    return api


@pytest.fixture
def reconciler(mock_api: AsyncMock, volume_config: VolumeConfig) -> VolumeReconciler:
    return VolumeReconciler(
        mock_api,
        volume_config,
        default_zone=ZONE,
        default_project_id=PROJECT_ID,
    )
