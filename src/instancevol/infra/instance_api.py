"""Instance API v1 client for volumes.

Async httpx client implementing InstanceVolumeAPI against
``{api_url}/instance/v1/zones/{zone}/volumes``.

Configuration via ApiConfig (SCW_ env prefix).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Literal

import httpx

from instancevol.app.config import ApiConfig, RetryConfig
from instancevol.core.domain.volume import STABLE_STATUSES
from instancevol.core.errors import (
    OperationTimeoutError,
    RemoteAPIError,
    RemoteNotFoundError,
)
from instancevol.core.interfaces import InstanceVolumeAPI
from instancevol.core.logging_schema import Component, LogEvent
from instancevol.core.models.volume import CreateVolumeRequest, Volume
from instancevol.core.retryable import with_retry

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Extract the API error message, falling back to the raw body."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.text


def _parse_volume(resp: httpx.Response) -> Volume:
    """Parse the ``volume`` object of a response body.

    A payload this service cannot represent (an unsupported volume type,
    missing fields) is reported as a remote failure.
    """
    try:
        return Volume.from_api(resp.json()["volume"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RemoteAPIError(f"invalid volume in response: {exc}") from exc


class InstanceAPIClient(InstanceVolumeAPI):
    """HTTP client for Instance API volumes.

    404 responses raise RemoteNotFoundError, other error statuses raise
    RemoteAPIError carrying the remote message. Only GET requests are
    retried on transient errors.
    """

    def __init__(
        self,
        config: ApiConfig,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._retry = retry or RetryConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with the secret key."""
        headers = {"Content-Type": "application/json"}
        if self._config.secret_key:
            headers["X-Auth-Token"] = self._config.secret_key
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.api_url,
                headers=self._get_headers(),
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _volumes_path(zone: str, volume_id: str | None = None) -> str:
        path = f"/instance/v1/zones/{zone}/volumes"
        if volume_id:
            path = f"{path}/{volume_id}"
        return path

    async def _send(
        self,
        method: Literal["get", "post", "patch", "delete"],
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        resp = await client.request(method.upper(), path, **kwargs)

        if resp.status_code == 404:
            raise RemoteNotFoundError(_error_message(resp))
        if resp.is_error:
            raise RemoteAPIError(_error_message(resp), status=resp.status_code)
        return resp

    async def _request(
        self,
        method: Literal["get", "post", "patch", "delete"],
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make HTTP request with common error handling.

        Args:
            method: HTTP method.
            path: URL path.
            **kwargs: Additional arguments for httpx request.

        Raises:
            RemoteNotFoundError: On 404.
            RemoteAPIError: On other error statuses and transport failures.
        """
        try:
            if method != "get":
                return await self._send(method, path, **kwargs)
            return await with_retry(
                lambda: self._send(method, path, **kwargs),
                max_retries=self._retry.max_retries,
                base_delay=self._retry.base_delay,
                max_delay=self._retry.max_delay,
            )
        except httpx.HTTPError as exc:
            raise RemoteAPIError(f"{method.upper()} {path}: {exc}") from exc

    # =========================================================================
    # InstanceVolumeAPI interface
    # =========================================================================

    async def create_volume(self, request: CreateVolumeRequest) -> Volume:
        resp = await self._request(
            "post", self._volumes_path(request.zone), json=request.to_api()
        )
        volume = _parse_volume(resp)
        logger.debug(
            "Created volume via API: %s",
            volume.id,
            extra={"component": Component.API_CLIENT, "zone": request.zone},
        )
        return volume

    async def get_volume(self, zone: str, volume_id: str) -> Volume:
        resp = await self._request("get", self._volumes_path(zone, volume_id))
        return _parse_volume(resp)

    async def update_volume(
        self,
        zone: str,
        volume_id: str,
        *,
        name: str | None = None,
        size: int | None = None,
    ) -> Volume:
        body: dict = {}
        if name is not None:
            body["name"] = name
        if size is not None:
            body["size"] = size
        resp = await self._request(
            "patch", self._volumes_path(zone, volume_id), json=body
        )
        return _parse_volume(resp)

    async def delete_volume(self, zone: str, volume_id: str) -> None:
        await self._request("delete", self._volumes_path(zone, volume_id))

    async def wait_for_volume(
        self,
        zone: str,
        volume_id: str,
        *,
        retry_interval: float,
        timeout: float | None = None,
    ) -> Volume:
        """Poll GET until the volume is in a stable state.

        A volume settling in ``error`` is returned as is.
        """
        timeout = 300.0 if timeout is None else timeout
        deadline = time.monotonic() + timeout

        while True:
            volume = await self.get_volume(zone, volume_id)
            if volume.state in STABLE_STATUSES:
                return volume

            if time.monotonic() >= deadline:
                raise OperationTimeoutError(
                    f"timeout waiting for volume {volume_id} "
                    f"(last state: {volume.state})"
                )

            logger.debug(
                "Volume not stable yet: %s (%s)",
                volume_id,
                volume.state,
                extra={
                    "event": LogEvent.VOLUME_WAIT,
                    "component": Component.API_CLIENT,
                    "state": volume.state,
                },
            )
            await asyncio.sleep(retry_interval)
