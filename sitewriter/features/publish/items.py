"""
Collection item builders for stories.json and photos.json.

The site's media script tells videos from images by the presence of
`playback`; images carry `variants` as [public, thumbnail].
"""

import base64
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sitewriter.core.errors import ValidationError
from sitewriter.models.content import MediaAsset


def iso_millis(value: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_story_item(asset: MediaAsset, *, alt: Optional[str], caption: Optional[str], tags: List[str]) -> Dict[str, Any]:
    meta: Dict[str, Any] = {}
    if alt:
        meta["alt"] = alt
    if caption:
        meta["caption"] = caption
    meta["tags"] = list(tags)
    if asset.is_video:
        meta["url"] = asset.public_url
        meta["title"] = caption or ""

    item: Dict[str, Any] = {
        "uploaded": iso_millis(asset.uploaded_at),
        "id": asset.asset_id,
        "filename": asset.filename,
        "meta": meta,
        "requireSignedURLs": False,
    }
    if asset.is_video:
        item["thumbnail"] = asset.thumbnail_url or ""
        item["playback"] = {"hls": asset.public_url}
    else:
        item["variants"] = [asset.public_url, asset.thumbnail_url or ""]
    return item


def build_photo_item(
    asset: MediaAsset,
    *,
    ratio: float,
    orientation: str,
    alt: str,
    caption: Optional[str],
    albums: List[str],
    featured: bool,
    location: Optional[str],
    taken_at: Optional[str],
) -> Dict[str, Any]:
    return {
        "uploaded": iso_millis(asset.uploaded_at),
        "id": asset.asset_id,
        "filename": asset.filename,
        "meta": {
            "ratio": ratio,
            "orientation": orientation,
            "caption": caption or None,
            "alt": alt,
            "featured": featured,
            "albums": list(albums),
            "location": location or None,
            "datetime": taken_at or None,
        },
        "variants": [asset.public_url, asset.thumbnail_url or ""],
        "requireSignedURLs": False,
    }


def is_video_item(item: Dict[str, Any]) -> bool:
    meta = item.get("meta") or {}
    return bool((item.get("playback") or {}).get("hls") or meta.get("url"))


def encode_item(item: Dict[str, Any]) -> str:
    """Workflow payload: base64 of the compact JSON item."""
    raw = json.dumps(item, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def check_item_shape(item: Dict[str, Any]) -> Dict[str, Any]:
    """Minimal structural check before re-dispatching a previously built item."""
    if not isinstance(item, dict):
        raise ValidationError("item must be an object")
    missing = [key for key in ("id", "uploaded", "filename", "meta") if key not in item]
    if missing:
        raise ValidationError(f"item is missing: {', '.join(missing)}", details={"missing": missing})
    if not isinstance(item["meta"], dict):
        raise ValidationError("item.meta must be an object")
    return item
