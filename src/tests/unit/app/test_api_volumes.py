"""Unit tests for Volume API endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from instancevol.app.api.dependencies import get_reconciler
from instancevol.app.main import app
from instancevol.core.domain import VolumeType
from instancevol.core.errors import (
    OperationTimeoutError,
    RemoteFatalError,
    ValidationError,
)
from instancevol.core.models import VolumeSpec

ZONE = "fr-par-1"
VOLUME_ID = "11111111-1111-1111-1111-111111111111"
ZONED_ID = f"{ZONE}/{VOLUME_ID}"
SOURCE_ID = "55555555-5555-5555-5555-555555555555"


def _observed(**overrides: object) -> VolumeSpec:
    fields: dict = {
        "id": ZONED_ID,
        "name": "data",
        "type": VolumeType.B_SSD,
        "size_in_gb": 10,
        "zone": ZONE,
        "project_id": "proj",
        "organization_id": "org",
    }
    fields.update(overrides)
    return VolumeSpec(**fields)


@pytest.fixture
def mock_reconciler() -> MagicMock:
    """Create mock reconciler."""
    reconciler = MagicMock()
    reconciler.create = AsyncMock(return_value=_observed())
    reconciler.import_volume = AsyncMock(return_value=_observed())
    reconciler.update = AsyncMock(return_value=_observed(size_in_gb=20))
    reconciler.delete = AsyncMock()
    return reconciler


@pytest.fixture
def client(mock_reconciler: MagicMock) -> TestClient:
    """Create test client with mocked reconciler."""
    app.dependency_overrides[get_reconciler] = lambda: mock_reconciler

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


class TestVolumeAPI:
    """Tests for Volume API endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_schema(self, client: TestClient) -> None:
        response = client.get("/api/v1/volumes/schema")

        assert response.status_code == 200
        data = response.json()
        assert data["type"]["required"] is True
        assert data["server_id"]["computed"] is True

    def test_create_volume(self, client: TestClient, mock_reconciler: MagicMock) -> None:
        response = client.post(
            "/api/v1/volumes", json={"name": "data", "type": "b_ssd", "size_in_gb": 10}
        )

        assert response.status_code == 201
        assert response.json()["id"] == ZONED_ID
        spec = mock_reconciler.create.await_args.args[0]
        assert spec.type == VolumeType.B_SSD
        assert spec.size_in_gb == 10
        assert spec.id is None

    def test_create_conflicting_sources(
        self, client: TestClient, mock_reconciler: MagicMock
    ) -> None:
        response = client.post(
            "/api/v1/volumes",
            json={"type": "b_ssd", "size_in_gb": 10, "from_snapshot_id": SOURCE_ID},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_FAILED"
        mock_reconciler.create.assert_not_awaited()

    def test_create_remote_failure(
        self, client: TestClient, mock_reconciler: MagicMock
    ) -> None:
        mock_reconciler.create.side_effect = RemoteFatalError(
            "couldn't create volume: quota exceeded"
        )

        response = client.post("/api/v1/volumes", json={"type": "l_ssd"})

        assert response.status_code == 502
        assert response.json()["error"]["message"] == "couldn't create volume: quota exceeded"

    def test_get_volume(self, client: TestClient, mock_reconciler: MagicMock) -> None:
        response = client.get(f"/api/v1/volumes/{ZONE}/{VOLUME_ID}")

        assert response.status_code == 200
        assert response.json()["size_in_gb"] == 10
        mock_reconciler.import_volume.assert_awaited_once_with(ZONED_ID)

    def test_get_missing_volume(
        self, client: TestClient, mock_reconciler: MagicMock
    ) -> None:
        mock_reconciler.import_volume.return_value = None

        response = client.get(f"/api/v1/volumes/{ZONE}/{VOLUME_ID}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "VOLUME_NOT_FOUND"

    def test_update_volume(self, client: TestClient, mock_reconciler: MagicMock) -> None:
        response = client.patch(
            f"/api/v1/volumes/{ZONE}/{VOLUME_ID}", json={"size_in_gb": 20}
        )

        assert response.status_code == 200
        assert response.json()["size_in_gb"] == 20
        old, new = mock_reconciler.update.await_args.args
        assert old.size_in_gb == 10
        assert new.size_in_gb == 20
        assert new.name == "data"

    def test_update_rejected(self, client: TestClient, mock_reconciler: MagicMock) -> None:
        mock_reconciler.update.side_effect = ValidationError(
            "block volumes cannot be resized down"
        )

        response = client.patch(
            f"/api/v1/volumes/{ZONE}/{VOLUME_ID}", json={"size_in_gb": 5}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "block volumes cannot be resized down"

    def test_delete_volume(self, client: TestClient, mock_reconciler: MagicMock) -> None:
        response = client.delete(f"/api/v1/volumes/{ZONE}/{VOLUME_ID}")

        assert response.status_code == 204
        mock_reconciler.delete.assert_awaited_once()

    def test_delete_missing_volume(
        self, client: TestClient, mock_reconciler: MagicMock
    ) -> None:
        mock_reconciler.import_volume.return_value = None

        response = client.delete(f"/api/v1/volumes/{ZONE}/{VOLUME_ID}")

        assert response.status_code == 204
        mock_reconciler.delete.assert_not_awaited()

    def test_delete_timeout(self, client: TestClient, mock_reconciler: MagicMock) -> None:
        mock_reconciler.delete.side_effect = OperationTimeoutError(
            "timeout while deleting volume"
        )

        response = client.delete(f"/api/v1/volumes/{ZONE}/{VOLUME_ID}")

        assert response.status_code == 504
        assert response.json()["error"]["code"] == "OPERATION_TIMEOUT"

    def test_trace_id_header(self, client: TestClient) -> None:
        response = client.get(
            f"/api/v1/volumes/{ZONE}/{VOLUME_ID}", headers={"X-Trace-ID": "trace-1"}
        )

        assert response.headers["X-Trace-ID"] == "trace-1"

    def test_request_bodies_in_openapi(self, client: TestClient) -> None:
        schemas = client.get("/openapi.json").json()["components"]["schemas"]

        assert "CreateVolumeBody" in schemas
        assert "UpdateVolumeBody" in schemas
        assert "CreateVolumeRequest" not in schemas
