import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from sitewriter.core.tracing import start_span
from sitewriter.features.dashboard import read_model
from sitewriter.features.frontmatter.codec import extract_date
from sitewriter.features.library.service import ContentLibrary

RECENT_PER_KIND = 5


def _recent_collection_item(item: Dict[str, Any], video_aware: bool) -> Dict[str, Any]:
    variants = item.get("variants") or []
    thumbnail = variants[1] if len(variants) > 1 else None
    if video_aware:
        thumbnail = item.get("thumbnail") or thumbnail
    return {
        "id": item.get("id"),
        "uploaded": item.get("uploaded"),
        "meta": item.get("meta") or {},
        "thumbnail_url": thumbnail,
    }


class DashboardService:
    """Counts and recent lists over the four collections, fetched concurrently."""

    def __init__(self, library: ContentLibrary):
        self.library = library

    async def _load(self):
        with start_span("dashboard.load"):
            notes, posts, stories, photos = await asyncio.gather(
                self.library.list_notes(),
                self.library.list_posts(),
                self.library.read_stories(),
                self.library.read_photos(),
            )
        notes = [{**note, "date": extract_date(note.get("name", ""))} for note in notes]
        return notes, posts, stories.items, photos.items

    async def stats(self) -> Dict[str, Any]:
        notes, posts, stories, photos = await self._load()
        return {
            "stats": {
                "notes": len(notes),
                "posts": len(posts),
                "published_posts": sum(1 for p in posts if p.get("published")),
                "stories": len(stories),
                "story_tags": read_model.count_distinct(stories, "tags"),
                "photos": len(photos),
                "photo_albums": read_model.count_distinct(photos, "albums"),
            },
            "recent": {
                "notes": [
                    {"name": n["name"], "path": n["path"], "date": n["date"]}
                    for n in read_model.recent(notes, RECENT_PER_KIND)
                ],
                "posts": [
                    {"name": p["name"], "path": p["path"], "date": p["date"], "title": p.get("title")}
                    for p in read_model.recent(posts, RECENT_PER_KIND)
                ],
                "stories": [_recent_collection_item(s, True) for s in read_model.recent(stories, RECENT_PER_KIND)],
                "photos": [_recent_collection_item(p, False) for p in read_model.recent(photos, RECENT_PER_KIND)],
            },
            "note_tags": read_model.note_tag_index(notes),
        }

    async def activity(
        self,
        window: Optional[int] = None,
        kind: Optional[str] = None,
        now: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        notes, posts, stories, photos = await self._load()
        return read_model.activity_feed(notes, posts, stories, photos, window=window, kind=kind, now=now, limit=limit)

