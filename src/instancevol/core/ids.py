"""Zoned identifiers.

A volume is addressed system-wide by ``{zone}/{uuid}``. Source volume and
snapshot ids may be given either bare or with the same locality prefix.

Usage:
    from instancevol.core.ids import format_zoned_id, parse_zoned_id

    zoned = format_zoned_id("fr-par-1", volume_id)
    zone, volume_id = parse_zoned_id(zoned)
"""

import re
from uuid import UUID

from instancevol.core.errors import ValidationError

ZONE_PATTERN = re.compile(r"^[a-z]{2}-[a-z]{3}-[0-9]+$")


def is_zone(value: str) -> bool:
    """Check that value looks like a zone (e.g. fr-par-1)."""
    return bool(ZONE_PATTERN.match(value))


def is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def validate_zone(zone: str) -> str:
    if not is_zone(zone):
        raise ValidationError(f"invalid zone: {zone!r}")
    return zone


def format_zoned_id(zone: str, resource_id: str) -> str:
    """Build the composite identifier stored in state."""
    return f"{zone}/{resource_id}"


def parse_zoned_id(zoned_id: str) -> tuple[str, str]:
    """Split a composite identifier into (zone, id).

    Raises:
        ValidationError: If the value is not ``{zone}/{id}``.
    """
    parts = zoned_id.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValidationError(f"cannot parse zoned ID: {zoned_id!r}")
    zone, resource_id = parts
    validate_zone(zone)
    return zone, resource_id


def expand_id(value: str) -> str:
    """Strip an optional locality prefix: ``fr-par-1/<uuid>`` -> ``<uuid>``."""
    return value.rsplit("/", 1)[-1]


def validate_uuid_or_locality(value: str) -> str:
    """Accept ``<uuid>`` or ``<locality>/<uuid>``.

    Raises:
        ValueError: For anything else (used from pydantic validators).
    """
    parts = value.split("/")
    if len(parts) == 1 and is_uuid(parts[0]):
        return value
    if len(parts) == 2 and is_zone(parts[0]) and is_uuid(parts[1]):
        return value
    raise ValueError(f"{value!r} is not a UUID or a UUID with locality")
