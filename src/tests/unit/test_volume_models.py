"""Tests for volume models, schema table and plan diff."""

import pydantic
import pytest

from instancevol.core.domain import GB, VolumeType
from instancevol.core.models import (
    VOLUME_SCHEMA,
    CreateVolumeRequest,
    Volume,
    VolumeSpec,
    diff_specs,
)

ZONE = "fr-par-1"
VOLUME_ID = "11111111-1111-1111-1111-111111111111"
SOURCE_ID = "55555555-5555-5555-5555-555555555555"


class TestVolumeSpec:
    """Tests for construction-time invariants."""

    @pytest.mark.parametrize(
        "sources",
        [
            {"size_in_gb": 10, "from_volume_id": SOURCE_ID},
            {"size_in_gb": 10, "from_snapshot_id": SOURCE_ID},
            {"from_volume_id": SOURCE_ID, "from_snapshot_id": SOURCE_ID},
        ],
    )
    def test_sources_are_mutually_exclusive(self, sources: dict) -> None:
        with pytest.raises(pydantic.ValidationError, match="conflicting fields"):
            VolumeSpec(type=VolumeType.B_SSD, **sources)

    def test_zero_size_does_not_conflict_with_source(self) -> None:
        spec = VolumeSpec(type=VolumeType.B_SSD, size_in_gb=0, from_snapshot_id=SOURCE_ID)
        assert spec.from_snapshot_id == SOURCE_ID

    def test_observed_record_may_carry_size_and_source(self) -> None:
        """A created volume reports its size next to the source it came from."""
        spec = VolumeSpec(
            id=f"{ZONE}/{VOLUME_ID}",
            type=VolumeType.B_SSD,
            size_in_gb=10,
            from_snapshot_id=SOURCE_ID,
        )
        assert spec.size_in_gb == 10

    def test_source_accepts_locality_prefix(self) -> None:
        spec = VolumeSpec(type=VolumeType.B_SSD, from_volume_id=f"{ZONE}/{SOURCE_ID}")
        assert spec.from_volume_id == f"{ZONE}/{SOURCE_ID}"

    def test_source_rejects_garbage(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="not a UUID"):
            VolumeSpec(type=VolumeType.B_SSD, from_snapshot_id="snap-1")

    def test_invalid_zone_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="invalid zone"):
            VolumeSpec(type=VolumeType.B_SSD, zone="paris")

    def test_type_is_required(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            VolumeSpec()

    def test_type_enum(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            VolumeSpec(type="sbs_volume")


class TestRemoteModels:
    def test_volume_from_api(self) -> None:
        volume = Volume.from_api(
            {
                "id": VOLUME_ID,
                "name": "data",
                "volume_type": "l_ssd",
                "size": 20 * GB,
                "zone": ZONE,
                "server": {"id": "srv-1"},
                "state": "resizing",
            }
        )
        assert volume.volume_type == VolumeType.L_SSD
        assert volume.size_in_gb == 20
        assert volume.server_id == "srv-1"
        assert volume.project is None

    def test_create_request_omits_unset(self) -> None:
        request = CreateVolumeRequest(
            zone=ZONE, name="data", volume_type=VolumeType.B_SSD, base_snapshot=SOURCE_ID
        )
        assert request.to_api() == {
            "name": "data",
            "volume_type": "b_ssd",
            "base_snapshot": SOURCE_ID,
        }


class TestSchemaTable:
    def test_type_is_required_and_forces_new(self) -> None:
        assert VOLUME_SCHEMA["type"].required
        assert VOLUME_SCHEMA["type"].force_new

    def test_size_conflicts_with_sources(self) -> None:
        assert set(VOLUME_SCHEMA["size_in_gb"].conflicts_with) == {
            "from_volume_id",
            "from_snapshot_id",
        }
        assert not VOLUME_SCHEMA["size_in_gb"].force_new

    def test_server_id_is_read_only(self) -> None:
        rules = VOLUME_SCHEMA["server_id"]
        assert rules.computed
        assert not rules.optional and not rules.required

    def test_covers_every_spec_field(self) -> None:
        assert set(VOLUME_SCHEMA) == set(VolumeSpec.model_fields) - {"id"}


class TestDiff:
    def _state(self, **overrides: object) -> VolumeSpec:
        fields: dict = {
            "id": f"{ZONE}/{VOLUME_ID}",
            "name": "data",
            "type": VolumeType.B_SSD,
            "size_in_gb": 10,
            "zone": ZONE,
            "server_id": "srv-1",
        }
        fields.update(overrides)
        return VolumeSpec(**fields)

    def test_no_change(self) -> None:
        diff = diff_specs(self._state(), self._state())
        assert diff.changed == {}
        assert not diff.requires_replacement

    def test_name_and_size_are_in_place(self) -> None:
        diff = diff_specs(self._state(), self._state(name="x", size_in_gb=20))
        assert diff.has_change("name")
        assert diff.get_change("size_in_gb") == (10, 20)
        assert not diff.requires_replacement

    def test_unset_optional_keeps_value(self) -> None:
        diff = diff_specs(self._state(), self._state(name=None, zone=None))
        assert diff.changed == {}

    def test_computed_fields_are_ignored(self) -> None:
        diff = diff_specs(self._state(), self._state(server_id=None))
        assert diff.changed == {}

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": VolumeType.L_SSD},
            {"zone": "nl-ams-1"},
            {"from_snapshot_id": SOURCE_ID},
        ],
    )
    def test_immutable_fields_force_replacement(self, overrides: dict) -> None:
        diff = diff_specs(self._state(), self._state(**overrides))
        assert diff.requires_replacement
        assert diff.replacement_fields == list(overrides)

    def test_bytes_per_gb(self) -> None:
        assert GB == 1073741824
