"""
Pure aggregation over already-fetched collections.

Nothing here talks to the network; DashboardService does the fetching.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from sitewriter.core.errors import ValidationError

ACTIVITY_WINDOWS = (7, 30, 90)
ACTIVITY_KINDS = ("note", "post", "story", "photo")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Best-effort timestamp: ISO datetimes, bare dates, or the epoch floor."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value or not isinstance(value, str):
        return _EPOCH
    text = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def best_timestamp(entry: Dict[str, Any]) -> datetime:
    for key in ("timestamp", "uploaded", "date"):
        if entry.get(key):
            return parse_timestamp(entry[key])
    return _EPOCH


def count_distinct(items: Iterable[Dict[str, Any]], field: str) -> int:
    """Size of the union of meta[field] lists across items."""
    seen = set()
    for item in items:
        values = (item.get("meta") or {}).get(field)
        if isinstance(values, list):
            seen.update(v for v in values if isinstance(v, str))
    return len(seen)


def recent(entries: Iterable[Dict[str, Any]], limit: int = 5) -> List[Dict[str, Any]]:
    # sorted() is stable with reverse=True, so ties keep listing order
    return sorted(entries, key=best_timestamp, reverse=True)[:limit]


def note_tag_index(notes: Iterable[Dict[str, Any]]) -> List[str]:
    tags = set()
    for note in notes:
        raw = note.get("tags") or ""
        if isinstance(raw, list):
            raw = ",".join(raw)
        tags.update(t.strip() for t in raw.split(",") if t.strip())
    return sorted(tags)


def _split_tags(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [t for t in raw if t]
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def _note_activity(note: Dict[str, Any]) -> Dict[str, Any]:
    name = note.get("name", "")
    return {
        "type": "note",
        "timestamp": best_timestamp(note),
        "title": note.get("body") or "Empty note",
        "filename": name[:-3] if name.endswith(".md") else name,
        "tags": _split_tags(note.get("tags")),
        "href": "/notes",
    }


def _post_activity(post: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "post",
        "timestamp": best_timestamp(post),
        "title": post.get("title") or post.get("name", ""),
        "href": "/posts",
    }


def _story_activity(story: Dict[str, Any]) -> Dict[str, Any]:
    meta = story.get("meta") or {}
    variants = story.get("variants") or []
    return {
        "type": "story",
        "timestamp": best_timestamp(story),
        "title": meta.get("caption") or "Untitled Story",
        "subtitle": ", ".join(meta.get("tags") or []),
        "thumbnail_url": story.get("thumbnail") or (variants[1] if len(variants) > 1 else None),
        "href": "/stories",
    }


def _photo_activity(photo: Dict[str, Any]) -> Dict[str, Any]:
    meta = photo.get("meta") or {}
    variants = photo.get("variants") or []
    return {
        "type": "photo",
        "timestamp": best_timestamp(photo),
        "title": meta.get("caption") or meta.get("alt") or "Untitled Photo",
        "subtitle": ", ".join(meta.get("albums") or []),
        "thumbnail_url": variants[1] if len(variants) > 1 else None,
        "href": "/photos",
    }


def activity_feed(
    notes: Iterable[Dict[str, Any]],
    posts: Iterable[Dict[str, Any]],
    stories: Iterable[Dict[str, Any]],
    photos: Iterable[Dict[str, Any]],
    window: Optional[int] = None,
    kind: Optional[str] = None,
    now: Optional[datetime] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """Merged timeline, newest first, optionally restricted to a window and type."""
    if window is not None and window not in ACTIVITY_WINDOWS:
        raise ValidationError(f"window must be one of {', '.join(map(str, ACTIVITY_WINDOWS))} days")
    if kind is not None and kind not in ACTIVITY_KINDS:
        raise ValidationError(f"type must be one of {', '.join(ACTIVITY_KINDS)}")

    merged = (
        [_note_activity(n) for n in notes]
        + [_post_activity(p) for p in posts]
        + [_story_activity(s) for s in stories]
        + [_photo_activity(p) for p in photos]
    )
    merged.sort(key=lambda entry: entry["timestamp"], reverse=True)

    if kind is not None:
        merged = [entry for entry in merged if entry["type"] == kind]
    if window is not None:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=window)
        merged = [entry for entry in merged if entry["timestamp"] >= cutoff]
    return merged[:limit]
