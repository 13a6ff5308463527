from typing import Dict, List, Optional

from sitewriter.core.config import Settings, settings as default_settings
from sitewriter.services.github_gateway import RemoteDocumentGateway

FEED_PREFIX = "stories-"
FEED_SUFFIX = ".json"


def feed_display_name(filename: str) -> str:
    """stories-road-trip.json -> Road Trip"""
    slug = filename[len(FEED_PREFIX):-len(FEED_SUFFIX)]
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-"))


async def list_story_feeds(gateway: RemoteDocumentGateway, settings: Optional[Settings] = None) -> List[Dict[str, str]]:
    cfg = settings or default_settings
    entries = await gateway.list_directory(cfg.FEEDS_DIR)
    feeds = [
        {"name": feed_display_name(entry.name), "filename": entry.name, "path": entry.path}
        for entry in entries
        if entry.type == "file" and entry.name.startswith(FEED_PREFIX) and entry.name.endswith(FEED_SUFFIX)
    ]
    return sorted(feeds, key=lambda feed: feed["name"].lower())
