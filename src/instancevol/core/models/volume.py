"""Volume models.

- Volume: remote API representation (what GET returns)
- CreateVolumeRequest: remote creation payload
- VolumeSpec: declarative record (desired + observed) kept in state
- VOLUME_SCHEMA: per-field rules consumed by the plan engine
- VolumeDiff: changed fields between two VolumeSpec records
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from instancevol.core.domain.volume import GB, VolumeStatus, VolumeType
from instancevol.core.errors import ValidationError
from instancevol.core.ids import validate_uuid_or_locality, validate_zone


# =============================================================================
# Remote representation
# =============================================================================


class Volume(BaseModel):
    """Volume as reported by the Instance API."""

    id: str
    name: str
    volume_type: VolumeType
    size: int  # bytes
    zone: str
    project: str | None = None
    organization: str | None = None
    server_id: str | None = None
    state: VolumeStatus = VolumeStatus.UNKNOWN

    model_config = {"frozen": True}

    @classmethod
    def from_api(cls, data: dict) -> "Volume":
        """Parse the ``volume`` object of an API response.

        Raises:
            ValueError: If the volume type is not one this service manages
        """
        server = data.get("server") or {}
        try:
            volume_type = VolumeType(data["volume_type"])
        except ValueError:
            raise ValueError(
                f"unsupported volume type: {data['volume_type']}"
            ) from None
        try:
            state = VolumeStatus(data.get("state", "unknown"))
        except ValueError:
            state = VolumeStatus.UNKNOWN
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            volume_type=volume_type,
            size=int(data.get("size") or 0),
            zone=data.get("zone", ""),
            project=data.get("project"),
            organization=data.get("organization"),
            server_id=server.get("id"),
            state=state,
        )

    @property
    def size_in_gb(self) -> int:
        return self.size // GB


class CreateVolumeRequest(BaseModel):
    """Remote creation payload. At most one of size/base_volume/base_snapshot."""

    zone: str
    name: str
    volume_type: VolumeType
    project: str | None = None
    size: int | None = None  # bytes
    base_volume: str | None = None
    base_snapshot: str | None = None

    model_config = {"frozen": True}

    def to_api(self) -> dict:
        """Convert to Instance API JSON body (zone goes in the path)."""
        result: dict = {"name": self.name, "volume_type": self.volume_type.value}
        if self.project:
            result["project"] = self.project
        if self.size is not None:
            result["size"] = self.size
        if self.base_volume:
            result["base_volume"] = self.base_volume
        if self.base_snapshot:
            result["base_snapshot"] = self.base_snapshot
        return result


# =============================================================================
# Declarative record
# =============================================================================

_SOURCE_FIELDS = ("size_in_gb", "from_volume_id", "from_snapshot_id")


class VolumeSpec(BaseModel):
    """Declarative volume record.

    ``id`` is ``None`` until the volume is created. ``server_id`` and
    ``organization_id`` are observed only and never sent to the API.
    """

    id: str | None = None
    name: str | None = None
    type: VolumeType
    size_in_gb: int | None = Field(default=None, ge=0)
    from_volume_id: str | None = None
    from_snapshot_id: str | None = None
    server_id: str | None = None
    zone: str | None = None
    project_id: str | None = None
    organization_id: str | None = None

    @field_validator("from_volume_id", "from_snapshot_id")
    @classmethod
    def _check_source_id(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return validate_uuid_or_locality(value)

    @field_validator("zone")
    @classmethod
    def _check_zone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            return validate_zone(value)
        except ValidationError as exc:
            raise ValueError(exc.message) from exc

    @model_validator(mode="after")
    def _check_sources_exclusive(self) -> "VolumeSpec":
        # Observed records carry size_in_gb next to the creation source,
        # so the rule only applies to records not yet created. A zero size
        # counts as unset.
        if self.id is None:
            given = [f for f in _SOURCE_FIELDS if getattr(self, f)]
            if len(given) > 1:
                raise ValueError(f"conflicting fields: {', '.join(given)}")
        return self


class FieldSchema(BaseModel):
    """Declarative rules for one VolumeSpec field."""

    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    conflicts_with: tuple[str, ...] = ()
    description: str = ""

    model_config = {"frozen": True}


VOLUME_SCHEMA: dict[str, FieldSchema] = {
    "name": FieldSchema(
        optional=True, computed=True, description="The name of the volume"
    ),
    "type": FieldSchema(
        required=True, force_new=True, description="The volume type"
    ),
    "size_in_gb": FieldSchema(
        optional=True,
        conflicts_with=("from_snapshot_id", "from_volume_id"),
        description="The size of the volume in gigabyte",
    ),
    "from_volume_id": FieldSchema(
        optional=True,
        force_new=True,
        conflicts_with=("from_snapshot_id", "size_in_gb"),
        description="Create a copy of an existing volume",
    ),
    "from_snapshot_id": FieldSchema(
        optional=True,
        force_new=True,
        conflicts_with=("from_volume_id", "size_in_gb"),
        description="Create a volume based on a image",
    ),
    "server_id": FieldSchema(
        computed=True, description="The server associated with this volume"
    ),
    "zone": FieldSchema(
        optional=True,
        computed=True,
        force_new=True,
        description="The zone you want to attach the resource to",
    ),
    "project_id": FieldSchema(
        optional=True,
        computed=True,
        force_new=True,
        description="The project_id you want to attach the resource to",
    ),
    "organization_id": FieldSchema(
        computed=True, description="The organization_id you want to attach the resource to"
    ),
}


class VolumeDiff(BaseModel):
    """Fields that differ between prior state and desired config."""

    changed: dict[str, tuple[object, object]] = Field(default_factory=dict)

    def has_change(self, field: str) -> bool:
        return field in self.changed

    def get_change(self, field: str) -> tuple[object, object]:
        return self.changed[field]

    @property
    def replacement_fields(self) -> list[str]:
        return sorted(f for f in self.changed if VOLUME_SCHEMA[f].force_new)

    @property
    def requires_replacement(self) -> bool:
        return bool(self.replacement_fields)


def diff_specs(old: VolumeSpec, new: VolumeSpec) -> VolumeDiff:
    """Compare settable fields of two records.

    Computed-only fields are ignored. An optional field left unset (None)
    in ``new`` keeps the old value and is not a change.
    """
    changed: dict[str, tuple[object, object]] = {}
    for field, rules in VOLUME_SCHEMA.items():
        if not (rules.required or rules.optional):
            continue
        old_value = getattr(old, field)
        new_value = getattr(new, field)
        if new_value is None and not rules.required:
            continue
        if old_value != new_value:
            changed[field] = (old_value, new_value)
    return VolumeDiff(changed=changed)
