"""Cloudflare Images / Stream upload client."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from sitewriter.core.config import settings
from sitewriter.core.errors import UploadError
from sitewriter.core.metrics import media_uploads_total
from sitewriter.core.tracing import start_span
from sitewriter.models.content import MediaAsset

logger = logging.getLogger("sitewriter")

UPLOAD_TIMEOUT_SECONDS = 120


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(timezone.utc)


def _error_text(payload: Any) -> str:
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if not errors:
        return "Unknown error"
    messages = []
    for err in errors:
        if isinstance(err, dict):
            messages.append(str(err.get("message") or err.get("code") or err))
        else:
            messages.append(str(err))
    return ", ".join(messages)


class MediaUploadClient:
    def __init__(
        self,
        account_id: str,
        api_token: str,
        delivery_hash: Optional[str],
        *,
        api_url: Optional[str] = None,
        delivery_host: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = UPLOAD_TIMEOUT_SECONDS,
    ):
        self.account_id = account_id
        self.api_token = api_token
        self.delivery_hash = delivery_hash
        self.api_url = (api_url or settings.CLOUDFLARE_API_URL).rstrip("/")
        self.delivery_host = delivery_host or settings.IMAGE_DELIVERY_HOST
        self._transport = transport
        self._timeout = timeout

    def delivery_url(self, asset_id: str, variant: str) -> str:
        return f"https://{self.delivery_host}/{self.delivery_hash}/{asset_id}/{variant}"

    async def _post(self, media: str, url: str, files: Dict[str, Any]) -> Dict[str, Any]:
        with start_span("cloudflare.upload", {"media": media}):
            try:
                async with httpx.AsyncClient(
                    base_url=self.api_url,
                    headers={"Authorization": f"Bearer {self.api_token}"},
                    timeout=self._timeout,
                    transport=self._transport,
                ) as client:
                    response = await client.post(url, files=files)
            except httpx.HTTPError as exc:
                media_uploads_total.inc(labels={"media": media, "outcome": "error"})
                raise UploadError(f"Cloudflare upload failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            media_uploads_total.inc(labels={"media": media, "outcome": "error"})
            raise UploadError(f"Cloudflare upload failed: unexpected response ({response.status_code})")

        if not isinstance(payload, dict) or not payload.get("success"):
            media_uploads_total.inc(labels={"media": media, "outcome": "error"})
            raise UploadError(
                f"Cloudflare upload failed: {_error_text(payload)}",
                details={"status": response.status_code},
            )
        media_uploads_total.inc(labels={"media": media, "outcome": "ok"})
        return payload.get("result") or {}

    async def upload_image(
        self,
        data: bytes,
        content_type: str,
        filename: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MediaAsset:
        # Checked first so a misconfigured deployment never leaves an orphaned asset
        if not self.delivery_hash:
            raise UploadError("Cloudflare delivery hash configuration missing")

        files = {
            "file": (filename, data, content_type),
            "metadata": (None, json.dumps(metadata or {}), "application/json"),
        }
        result = await self._post("image", f"/accounts/{self.account_id}/images/v1", files)
        asset_id = result.get("id")
        if not asset_id:
            raise UploadError("Cloudflare upload failed: response carried no image id")

        logger.info("media.uploaded", extra={"content_kind": "image", "path": asset_id})
        return MediaAsset(
            asset_id=asset_id,
            uploaded_at=_parse_timestamp(result.get("uploaded")),
            filename=result.get("filename") or filename,
            public_url=self.delivery_url(asset_id, "public"),
            thumbnail_url=self.delivery_url(asset_id, "thumbnail"),
            is_video=False,
        )

    async def upload_video(self, data: bytes, content_type: str, filename: str) -> MediaAsset:
        files = {"file": (filename, data, content_type)}
        result = await self._post("video", f"/accounts/{self.account_id}/stream", files)
        uid = result.get("uid")
        hls = (result.get("playback") or {}).get("hls")
        if not uid or not hls:
            raise UploadError("Cloudflare video upload failed: response carried no playback url")

        logger.info("media.uploaded", extra={"content_kind": "video", "path": uid})
        return MediaAsset(
            asset_id=uid,
            uploaded_at=_parse_timestamp(result.get("created")),
            filename=filename,
            public_url=hls,
            thumbnail_url=result.get("thumbnail"),
            is_video=True,
        )
