"""Volume Lifecycle Reconciler.

Translates a declarative VolumeSpec into Instance API calls and refreshes
the record from the remote side.

Operations:
- create: POST the volume, then read it back
- read: GET the volume; absence returns None instead of raising
- update: rename and/or grow a block volume, then read it back
- delete: wait for detachment within a deadline, then DELETE
- import_volume: read a volume by its zoned id

Every operation ends on a remote read, so returned state never echoes
request payloads. Calls for one volume are strictly sequential; the caller
serializes operations per volume.
"""

import asyncio
import logging
import time

from ulid import ULID

from instancevol.app.config import VolumeConfig
from instancevol.app.logging import volume_context
from instancevol.core.domain.volume import GB, VolumeStatus, VolumeType
from instancevol.core.errors import (
    OperationTimeoutError,
    RemoteAPIError,
    RemoteFatalError,
    RemoteNotFoundError,
    ValidationError,
    VolumeAttachedError,
)
from instancevol.core.ids import expand_id, format_zoned_id, parse_zoned_id, validate_zone
from instancevol.core.interfaces import InstanceVolumeAPI
from instancevol.core.logging_schema import Component, ErrorClass, LogEvent
from instancevol.core.models.volume import CreateVolumeRequest, VolumeSpec, diff_specs
from instancevol.core.retryable import is_retryable

logger = logging.getLogger(__name__)

# Remote failures wrapped with operation context
_REMOTE_ERRORS = (RemoteAPIError, RemoteNotFoundError)


def generate_name(prefix: str) -> str:
    """Random resource name, e.g. tf-vol-01hx3k9c2m."""
    return f"{prefix}-{str(ULID()).lower()[-10:]}"


def _error_class(exc: Exception) -> ErrorClass:
    """Log tag for a remote failure. Failures are never retried here."""
    if isinstance(exc, RemoteAPIError) and exc.status == 429:
        return ErrorClass.RATE_LIMITED
    return ErrorClass.TRANSIENT if is_retryable(exc) else ErrorClass.PERMANENT


class VolumeReconciler:
    """CRUD lifecycle for one kind of resource: an instance volume.

    Args:
        api: Remote API handle, owned by the caller
        config: Wait and timeout settings
        default_zone: Zone used when the desired record leaves it unset
        default_project_id: Project used when the desired record leaves it unset
    """

    def __init__(
        self,
        api: InstanceVolumeAPI,
        config: VolumeConfig,
        *,
        default_zone: str,
        default_project_id: str | None = None,
    ) -> None:
        self._api = api
        self._config = config
        self._default_zone = default_zone
        self._default_project_id = default_project_id

    # =========================================================================
    # Create
    # =========================================================================

    async def create(self, spec: VolumeSpec) -> VolumeSpec:
        """Create the volume and return its refreshed state.

        Raises:
            RemoteFatalError: If the API rejects the creation
            RemoteNotFoundError: If the volume is gone right after creation
        """
        zone = validate_zone(spec.zone or self._default_zone)

        request = CreateVolumeRequest(
            zone=zone,
            name=spec.name or generate_name(self._config.name_prefix),
            volume_type=spec.type,
            project=spec.project_id or self._default_project_id,
            size=spec.size_in_gb * GB if spec.size_in_gb else None,
            base_volume=expand_id(spec.from_volume_id) if spec.from_volume_id else None,
            base_snapshot=(
                expand_id(spec.from_snapshot_id) if spec.from_snapshot_id else None
            ),
        )

        try:
            volume = await self._api.create_volume(request)
        except _REMOTE_ERRORS as exc:
            self._log_failure("create", exc)
            raise RemoteFatalError(f"couldn't create volume: {exc.message}") from exc

        zoned_id = format_zoned_id(zone, volume.id)
        logger.info(
            "Volume created: %s",
            zoned_id,
            extra={
                "event": LogEvent.VOLUME_CREATED,
                "component": Component.RECONCILER,
                "volume_id": zoned_id,
                "volume_type": request.volume_type,
            },
        )

        state = await self._refresh(zoned_id, carry=spec)
        if state is None:
            raise RemoteNotFoundError(f"volume {zoned_id} not found after creation")
        return state

    # =========================================================================
    # Read
    # =========================================================================

    async def read(self, state: VolumeSpec) -> VolumeSpec | None:
        """Refresh state from the remote volume.

        Returns:
            The observed record, or None if the volume no longer exists
            (the caller drops it from state and recreates on next apply).

        Raises:
            ValidationError: If the record has no id
            RemoteFatalError: On any other remote failure
        """
        if state.id is None:
            raise ValidationError("volume has not been created yet")
        return await self._refresh(state.id, carry=state)

    async def import_volume(self, zoned_id: str) -> VolumeSpec | None:
        """Adopt an existing volume by its ``{zone}/{id}`` identifier."""
        return await self._refresh(zoned_id, carry=None)

    async def _refresh(
        self, zoned_id: str, carry: VolumeSpec | None
    ) -> VolumeSpec | None:
        zone, volume_id = parse_zoned_id(zoned_id)

        try:
            volume = await self._api.get_volume(zone, volume_id)
        except RemoteNotFoundError:
            logger.info(
                "Volume not found, treating as deleted: %s",
                zoned_id,
                extra={
                    "event": LogEvent.VOLUME_ABSENT,
                    "component": Component.RECONCILER,
                    "volume_id": zoned_id,
                },
            )
            return None
        except RemoteAPIError as exc:
            self._log_failure("read", exc, zoned_id)
            raise RemoteFatalError(f"couldn't read volume: {exc.message}") from exc

        # Creation sources are never reported back; keep what the config said
        return VolumeSpec(
            id=zoned_id,
            name=volume.name,
            type=volume.volume_type,
            size_in_gb=volume.size_in_gb,
            from_volume_id=carry.from_volume_id if carry else None,
            from_snapshot_id=carry.from_snapshot_id if carry else None,
            server_id=volume.server_id or None,
            zone=zone,
            project_id=volume.project,
            organization_id=volume.organization,
        )

    # =========================================================================
    # Update
    # =========================================================================

    async def update(self, old: VolumeSpec, new: VolumeSpec) -> VolumeSpec:
        """Apply in-place changes (name, size) and return refreshed state.

        All validation runs before the first remote call.

        Raises:
            ValidationError: Replacement-forcing change, resize of a
                non-block volume, or a downward resize
            RemoteFatalError: If a rename or resize is rejected
            OperationTimeoutError: If the volume does not settle in time
        """
        if old.id is None:
            raise ValidationError("volume has not been created yet")
        with volume_context(old.id):
            return await self._update(old, new)

    async def _update(self, old: VolumeSpec, new: VolumeSpec) -> VolumeSpec:
        diff = diff_specs(old, new)
        if diff.requires_replacement:
            raise ValidationError(
                "cannot update in place, replacement required for: "
                + ", ".join(diff.replacement_fields)
            )

        new_size: int | None = None
        if diff.has_change("size_in_gb"):
            if old.type != VolumeType.B_SSD:
                self._log_rejected(old.id, "only block volume can be resized")
                raise ValidationError("only block volume can be resized")
            old_size, new_size = diff.get_change("size_in_gb")
            if old_size is not None and old_size > new_size:
                self._log_rejected(old.id, "block volumes cannot be resized down")
                raise ValidationError("block volumes cannot be resized down")

        zone, volume_id = parse_zoned_id(old.id)

        if diff.has_change("name"):
            try:
                await self._api.update_volume(zone, volume_id, name=new.name)
            except _REMOTE_ERRORS as exc:
                self._log_failure("update", exc, old.id)
                raise RemoteFatalError(f"couldn't update volume: {exc.message}") from exc
            logger.info(
                "Volume renamed: %s",
                old.id,
                extra={
                    "event": LogEvent.VOLUME_RENAMED,
                    "component": Component.RECONCILER,
                    "volume_id": old.id,
                },
            )

        if new_size is not None:
            # The API rejects a resize while a previous operation is in flight
            await self._wait_stable(zone, volume_id)
            try:
                await self._api.update_volume(zone, volume_id, size=new_size * GB)
            except _REMOTE_ERRORS as exc:
                self._log_failure("resize", exc, old.id)
                raise RemoteFatalError(f"couldn't resize volume: {exc.message}") from exc
            # Resizing is asynchronous remotely
            await self._wait_stable(zone, volume_id)
            logger.info(
                "Volume resized: %s -> %d GB",
                old.id,
                new_size,
                extra={
                    "event": LogEvent.VOLUME_RESIZED,
                    "component": Component.RECONCILER,
                    "volume_id": old.id,
                    "size_in_gb": new_size,
                },
            )

        state = await self._refresh(old.id, carry=old)
        if state is None:
            raise RemoteNotFoundError(f"volume {old.id} not found after update")
        return state

    async def _wait_stable(self, zone: str, volume_id: str) -> None:
        try:
            volume = await self._api.wait_for_volume(
                zone,
                volume_id,
                retry_interval=self._config.wait_retry_interval,
                timeout=self._config.wait_timeout,
            )
        except _REMOTE_ERRORS as exc:
            self._log_failure("wait", exc, format_zoned_id(zone, volume_id))
            raise RemoteFatalError(
                f"couldn't wait for volume: {exc.message}"
            ) from exc
        if volume.state == VolumeStatus.ERROR:
            logger.warning(
                "Volume settled in error state: %s",
                format_zoned_id(zone, volume_id),
                extra={"component": Component.RECONCILER, "state": volume.state},
            )

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete(self, state: VolumeSpec, timeout: float | None = None) -> None:
        """Delete the volume once no server holds it.

        Polls every ``wait_retry_interval`` while the volume is attached.
        A missing volume counts as deleted.

        Args:
            state: Record to delete
            timeout: Overall deadline in seconds (default: delete_timeout)

        Raises:
            OperationTimeoutError: Still attached when the deadline passed
            RemoteFatalError: Any other remote failure (not retried)
        """
        if state.id is None:
            raise ValidationError("volume has not been created yet")
        with volume_context(state.id):
            await self._delete(state, timeout)

    async def _delete(self, state: VolumeSpec, timeout: float | None) -> None:
        zone, volume_id = parse_zoned_id(state.id)
        timeout = self._config.delete_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        attempt = 0

        while True:
            attempt += 1
            try:
                volume = await self._api.get_volume(zone, volume_id)
            except RemoteNotFoundError:
                self._log_deleted(state.id, already=True)
                return
            except RemoteAPIError as exc:
                self._log_failure("delete", exc, state.id)
                raise RemoteFatalError(f"couldn't delete volume: {exc.message}") from exc

            if volume.server_id:
                attached = VolumeAttachedError(server_id=volume.server_id)
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.error(
                        "Timed out waiting for volume detachment: %s",
                        state.id,
                        extra={
                            "event": LogEvent.OPERATION_TIMEOUT,
                            "component": Component.RECONCILER,
                            "error_class": ErrorClass.TIMEOUT,
                            "volume_id": state.id,
                            "server_id": volume.server_id,
                            "attempt": attempt,
                        },
                    )
                    raise OperationTimeoutError(
                        f"timeout while deleting volume {state.id}: {attached.message}"
                    ) from attached

                logger.info(
                    "Volume still attached, retrying delete: %s",
                    state.id,
                    extra={
                        "event": LogEvent.VOLUME_DELETE_RETRY,
                        "component": Component.RECONCILER,
                        "error_class": ErrorClass.TRANSIENT,
                        "volume_id": state.id,
                        "server_id": volume.server_id,
                        "attempt": attempt,
                    },
                )
                await asyncio.sleep(min(self._config.wait_retry_interval, remaining))
                continue

            try:
                await self._api.delete_volume(zone, volume_id)
            except RemoteNotFoundError:
                self._log_deleted(state.id, already=True)
                return
            except RemoteAPIError as exc:
                self._log_failure("delete", exc, state.id)
                raise RemoteFatalError(f"couldn't delete volume: {exc.message}") from exc

            self._log_deleted(state.id, already=False)
            return

    # =========================================================================
    # Logging helpers
    # =========================================================================

    @staticmethod
    def _log_deleted(zoned_id: str, *, already: bool) -> None:
        logger.info(
            "Volume already deleted: %s" if already else "Volume deleted: %s",
            zoned_id,
            extra={
                "event": LogEvent.VOLUME_DELETED,
                "component": Component.RECONCILER,
                "volume_id": zoned_id,
                "status": "already_deleted" if already else "deleted",
            },
        )

    @staticmethod
    def _log_rejected(zoned_id: str, reason: str) -> None:
        logger.warning(
            "Update rejected for %s: %s",
            zoned_id,
            reason,
            extra={
                "event": LogEvent.VALIDATION_FAILED,
                "component": Component.RECONCILER,
                "error_class": ErrorClass.PERMANENT,
                "volume_id": zoned_id,
            },
        )

    @staticmethod
    def _log_failure(
        operation: str, exc: Exception, zoned_id: str | None = None
    ) -> None:
        logger.error(
            "Volume %s failed: %s",
            operation,
            exc,
            extra={
                "event": LogEvent.OPERATION_FAILED,
                "component": Component.RECONCILER,
                "error_class": _error_class(exc),
                "operation": operation,
                "volume_id": zoned_id,
            },
        )
