"""Volume API endpoints."""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from instancevol.app.api.dependencies import get_reconciler
from instancevol.control import VolumeReconciler
from instancevol.core.domain import VolumeType
from instancevol.core.errors import RemoteNotFoundError, ValidationError
from instancevol.core.ids import format_zoned_id
from instancevol.core.models import VOLUME_SCHEMA, FieldSchema, VolumeSpec

router = APIRouter(prefix="/volumes", tags=["volumes"])


# =============================================================================
# Schemas
# =============================================================================


class CreateVolumeBody(BaseModel):
    """Desired volume configuration."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: VolumeType
    size_in_gb: int | None = Field(default=None, gt=0)
    from_volume_id: str | None = None
    from_snapshot_id: str | None = None
    zone: str | None = None
    project_id: str | None = None


class UpdateVolumeBody(BaseModel):
    """In-place changes. Unset fields keep their current value."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    size_in_gb: int | None = Field(default=None, gt=0)


class VolumeResponse(BaseModel):
    """Observed volume state."""

    id: str
    name: str | None
    type: VolumeType
    size_in_gb: int | None
    from_volume_id: str | None
    from_snapshot_id: str | None
    server_id: str | None
    zone: str | None
    project_id: str | None
    organization_id: str | None

    model_config = {"from_attributes": True}


def _to_response(state: VolumeSpec) -> VolumeResponse:
    return VolumeResponse.model_validate(state)


async def _current(
    reconciler: VolumeReconciler, zone: str, volume_id: str
) -> VolumeSpec:
    zoned_id = format_zoned_id(zone, volume_id)
    state = await reconciler.import_volume(zoned_id)
    if state is None:
        raise RemoteNotFoundError(f"volume {zoned_id} not found")
    return state


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/schema", response_model=dict[str, FieldSchema])
async def get_schema() -> dict[str, FieldSchema]:
    """Declarative field rules."""
    return VOLUME_SCHEMA


@router.post("", status_code=201, response_model=VolumeResponse)
async def create_volume(
    request: CreateVolumeBody,
    reconciler: VolumeReconciler = Depends(get_reconciler),
) -> VolumeResponse:
    """Create a volume.

    At most one of size_in_gb, from_volume_id, from_snapshot_id.
    """
    try:
        spec = VolumeSpec(**request.model_dump())
    except PydanticValidationError as exc:
        raise ValidationError(
            "; ".join(str(err["msg"]) for err in exc.errors())
        ) from exc
    state = await reconciler.create(spec)
    return _to_response(state)


@router.get("/{zone}/{volume_id}", response_model=VolumeResponse)
async def get_volume(
    zone: str,
    volume_id: str,
    reconciler: VolumeReconciler = Depends(get_reconciler),
) -> VolumeResponse:
    """Read a volume. 404 when it no longer exists."""
    state = await _current(reconciler, zone, volume_id)
    return _to_response(state)


@router.patch("/{zone}/{volume_id}", response_model=VolumeResponse)
async def update_volume(
    zone: str,
    volume_id: str,
    request: UpdateVolumeBody,
    reconciler: VolumeReconciler = Depends(get_reconciler),
) -> VolumeResponse:
    """Rename and/or grow a volume."""
    old = await _current(reconciler, zone, volume_id)
    new = old.model_copy(update=request.model_dump(exclude_none=True))
    state = await reconciler.update(old, new)
    return _to_response(state)


@router.delete("/{zone}/{volume_id}", status_code=204)
async def delete_volume(
    zone: str,
    volume_id: str,
    reconciler: VolumeReconciler = Depends(get_reconciler),
) -> Response:
    """Delete a volume, waiting for it to be detached first.

    Deleting a volume that no longer exists succeeds.
    """
    state = await reconciler.import_volume(format_zoned_id(zone, volume_id))
    if state is not None:
        await reconciler.delete(state)
    return Response(status_code=204)
