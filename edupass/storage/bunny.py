"""Bunny.net client for remote asset lookups and cleanup.

Two APIs are used:
- Stream (``video.bunnycdn.com``): play data for a video, video deletion.
  Authenticated with the Stream API key.
- Storage: file deletion by the object's access URL. Authenticated with the
  storage zone password.

Deletions are always attempted after the database change is committed and
never raise: each one yields a ``RemoteDeletionResult`` the caller reports
alongside the primary outcome.

SECURITY: API keys are kept server-side and never exposed to clients.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from edupass.config.settings import Settings
from edupass.core.logging import get_logger
from edupass.core.retry import call_with_retry


logger = get_logger(__name__)


class BunnyServiceError(Exception):
    """Base exception for Bunny service errors."""


class BunnyNotConfiguredError(BunnyServiceError):
    """Raised when the required Bunny.net key is missing."""


class BunnyApiError(BunnyServiceError):
    """Raised when a Bunny.net API request fails."""


class RemoteAssetKind(str, Enum):
    VIDEO = "video"
    FILE = "file"


class RemoteDeletionStatus(str, Enum):
    DELETED = "deleted"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RemoteAsset:
    """A remote object to delete: a Stream video or a Storage file."""

    kind: RemoteAssetKind
    target: str
    library_id: str | None = None

    @classmethod
    def video(cls, library_id: str, video_id: str) -> "RemoteAsset":
        return cls(kind=RemoteAssetKind.VIDEO, target=video_id, library_id=library_id)

    @classmethod
    def file(cls, access_url: str) -> "RemoteAsset":
        return cls(kind=RemoteAssetKind.FILE, target=access_url)


@dataclass
class RemoteDeletionResult:
    """Outcome of deleting one remote asset."""

    kind: RemoteAssetKind
    target: str
    status: RemoteDeletionStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == RemoteDeletionStatus.DELETED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind.value,
            "id": self.target,
            "status": self.status.value,
        }
        if self.error:
            data["error"] = self.error
        return data


class BunnyStorageClient:
    """Async Bunny.net client.

    ``transport`` lets tests plug an ``httpx.MockTransport``.
    """

    BUNNY_API_BASE = "https://video.bunnycdn.com"

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = settings.bunny_api_key
        self._storage_api_key = settings.bunny_storage_api_key
        self._timeout = settings.bunny_request_timeout
        self._attempts = settings.bunny_retry_attempts
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _request(self, method: str, url: str, access_key: str) -> httpx.Response:
        async def send() -> httpx.Response:
            async with self._client() as client:
                return await client.request(
                    method,
                    url,
                    headers={"AccessKey": access_key, "accept": "application/json"},
                )

        return await call_with_retry(send, max_attempts=self._attempts)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_play_fallback_url(self, library_id: str, video_id: str) -> str | None:
        """Return the MP4 fallback URL of a Stream video (used as download URL).

        Raises:
            BunnyNotConfiguredError: If the Stream API key is missing.
            BunnyApiError: On transport failure or a non-200 response,
                or a body that is not a JSON object.
        """
        if not self._api_key:
            raise BunnyNotConfiguredError("Bunny.net Stream API key is not configured")

        url = f"{self.BUNNY_API_BASE}/library/{library_id}/videos/{video_id}/play?expires=0"
        try:
            response = await self._request("GET", url, self._api_key)
        except httpx.HTTPError as e:
            logger.error("bunny_play_data_failed", video_id=video_id, error=str(e))
            raise BunnyApiError(f"Bunny.net request error: {e}") from e

        if response.status_code != httpx.codes.OK:
            logger.error(
                "bunny_play_data_failed",
                video_id=video_id,
                status_code=response.status_code,
            )
            raise BunnyApiError(f"Bunny.net API error: {response.status_code}")

        try:
            return response.json().get("fallbackUrl")
        except (ValueError, AttributeError) as e:
            logger.error("bunny_play_data_unreadable", video_id=video_id, error=str(e))
            raise BunnyApiError("Bunny.net returned unreadable play data") from e

    # ==========================================================================
    # Cleanup
    # ==========================================================================

    async def delete_video(self, library_id: str, video_id: str) -> RemoteDeletionResult:
        url = f"{self.BUNNY_API_BASE}/library/{library_id}/videos/{video_id}"
        return await self._delete(RemoteAssetKind.VIDEO, video_id, url, self._api_key)

    async def delete_file(self, access_url: str) -> RemoteDeletionResult:
        return await self._delete(
            RemoteAssetKind.FILE, access_url, access_url, self._storage_api_key
        )

    async def delete_assets(self, assets: list[RemoteAsset]) -> list[RemoteDeletionResult]:
        """Delete several assets concurrently, one result per asset, in order."""
        return list(
            await asyncio.gather(
                *(
                    self.delete_video(asset.library_id or "", asset.target)
                    if asset.kind == RemoteAssetKind.VIDEO
                    else self.delete_file(asset.target)
                    for asset in assets
                )
            )
        )

    async def _delete(
        self,
        kind: RemoteAssetKind,
        target: str,
        url: str,
        access_key: str | None,
    ) -> RemoteDeletionResult:
        if not access_key:
            logger.warning("bunny_delete_skipped", kind=kind.value, target=target)
            return RemoteDeletionResult(
                kind=kind,
                target=target,
                status=RemoteDeletionStatus.SKIPPED,
                error="Bunny.net is not configured",
            )

        try:
            response = await self._request("DELETE", url, access_key)
        except httpx.HTTPError as e:
            logger.warning(
                "bunny_delete_failed", kind=kind.value, target=target, error=str(e)
            )
            return RemoteDeletionResult(
                kind=kind,
                target=target,
                status=RemoteDeletionStatus.FAILED,
                error=str(e) or type(e).__name__,
            )

        # Already gone counts as cleaned up
        if response.is_success or response.status_code == httpx.codes.NOT_FOUND:
            logger.info("bunny_asset_deleted", kind=kind.value, target=target)
            return RemoteDeletionResult(
                kind=kind, target=target, status=RemoteDeletionStatus.DELETED
            )

        logger.warning(
            "bunny_delete_failed",
            kind=kind.value,
            target=target,
            status_code=response.status_code,
        )
        return RemoteDeletionResult(
            kind=kind,
            target=target,
            status=RemoteDeletionStatus.FAILED,
            error=f"HTTP {response.status_code}",
        )

