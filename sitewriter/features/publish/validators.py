"""Client-side publish checks. All of these run before any network call."""

from datetime import date
from typing import Optional

from sitewriter.core.config import settings
from sitewriter.core.errors import ValidationError
from sitewriter.models.content import MediaFile

ORIENTATIONS = ("landscape", "portrait", "square")


def require_text(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required", details={"field": field_name})
    return value


def validate_media_file(
    media: Optional[MediaFile],
    *,
    allow_video: bool,
    max_bytes: Optional[int] = None,
) -> MediaFile:
    if media is None or not media.data:
        raise ValidationError("No file provided", details={"field": "file"})

    content_type = (media.content_type or "").lower()
    if not (content_type.startswith("image/") or (allow_video and content_type.startswith("video/"))):
        accepted = "an image or video" if allow_video else "an image"
        raise ValidationError(f"File must be {accepted}", details={"field": "file", "content_type": content_type})

    limit = max_bytes or settings.MAX_UPLOAD_BYTES
    if media.size > limit:
        raise ValidationError(
            f"File exceeds {limit // (1024 * 1024)} MiB",
            details={"field": "file", "size": media.size, "limit": limit},
        )
    return media


def require_non_empty_list(values, field_name: str, message: str):
    cleaned = [v.strip() for v in values or [] if v and v.strip()]
    if not cleaned:
        raise ValidationError(message, details={"field": field_name})
    return cleaned


def validate_post_date(value: Optional[str]) -> str:
    if not value:
        return date.today().isoformat()
    try:
        return date.fromisoformat(value[:10]).isoformat()
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", details={"field": "date"})


def validate_orientation(value: str) -> str:
    if value not in ORIENTATIONS:
        raise ValidationError(f"orientation must be one of {', '.join(ORIENTATIONS)}", details={"field": "orientation"})
    return value
