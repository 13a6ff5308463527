"""
Direct edit and delete of published content.

Every mutation is guarded by the lock token the caller loaded. For collection
items the fetched token is compared with the caller's before anything is
written, and the write itself carries the caller's token, so a concurrent
change always surfaces as ConflictError. Conflicts are never retried here.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from sitewriter.core.config import Settings, settings as default_settings
from sitewriter.core.errors import ConflictError, NotFoundError, ValidationError
from sitewriter.core.logging import log_event
from sitewriter.features.frontmatter import codec
from sitewriter.features.publish.items import is_video_item
from sitewriter.models.content import CollectionSnapshot, ContentKind, DirectoryEntry, FileSnapshot
from sitewriter.services.github_gateway import RemoteDocumentGateway

logger = logging.getLogger("sitewriter")


def markdown_files(entries: List[DirectoryEntry]) -> List[DirectoryEntry]:
    return [e for e in entries if e.type == "file" and e.name.endswith(".md")]


def post_title(filename: str) -> str:
    stem = codec.strip_date_prefix(filename[:-3] if filename.endswith(".md") else filename)
    return stem.replace("-", " ").strip() or filename


class ContentLibrary:
    def __init__(self, gateway: RemoteDocumentGateway, settings: Optional[Settings] = None):
        self.gateway = gateway
        self.settings = settings or default_settings

    def collection_path(self, kind: str) -> str:
        if kind == ContentKind.STORY.value:
            return self.settings.STORIES_PATH
        if kind == ContentKind.PHOTO.value:
            return self.settings.PHOTOS_PATH
        raise ValidationError(f"{kind} is not a collection")

    async def _read_all(self, entries: List[DirectoryEntry]) -> List[FileSnapshot]:
        results = await asyncio.gather(
            *(self.gateway.read_file(entry.path) for entry in entries),
            return_exceptions=True,
        )
        snapshots = []
        for entry, result in zip(entries, results):
            if isinstance(result, NotFoundError):
                # Deleted between listing and reading
                logger.info("library.file_vanished", extra={"path": entry.path})
                continue
            if isinstance(result, BaseException):
                raise result
            snapshots.append(result)
        return snapshots

    # Listings ----------------------------------------------------------
    async def list_notes(self) -> List[Dict[str, Any]]:
        entries = markdown_files(await self.gateway.list_directory(self.settings.NOTES_DIR))
        names = {e.path: e.name for e in entries}
        notes = []
        for snapshot in await self._read_all(entries):
            parsed = codec.parse(snapshot.body)
            note = dict(codec.flatten(parsed.metadata))
            note.update({
                "path": snapshot.path,
                "name": names[snapshot.path],
                "sha": snapshot.lock_token,
                "content": snapshot.body,
                "body": parsed.body.strip(),
            })
            notes.append(note)
        return notes

    async def list_posts(self) -> List[Dict[str, Any]]:
        entries = markdown_files(await self.gateway.list_directory(self.settings.POSTS_DIR))
        snapshots = {s.path: s for s in await self._read_all(entries)}
        posts = []
        for entry in entries:
            snapshot = snapshots.get(entry.path)
            if snapshot is None:
                continue
            posts.append({
                "name": entry.name,
                "path": entry.path,
                "sha": snapshot.lock_token,
                "title": codec.parse(snapshot.body).metadata.get("title") or post_title(entry.name),
                "date": codec.extract_date(entry.name),
                "published": codec.is_published_post(snapshot.body),
            })
        return posts

    async def read_collection(self, kind: str) -> CollectionSnapshot:
        return await self.gateway.read_collection(self.collection_path(kind))

    async def read_stories(self) -> CollectionSnapshot:
        return await self.read_collection(ContentKind.STORY.value)

    async def read_photos(self) -> CollectionSnapshot:
        return await self.read_collection(ContentKind.PHOTO.value)

    # Notes -------------------------------------------------------------
    async def update_note(
        self,
        path: str,
        lock_token: str,
        *,
        content: Optional[str] = None,
        tags: Optional[List[str]] = None,
        location: Optional[str] = None,
    ) -> str:
        """Rewrite tags/location in place and optionally replace the body. Returns the new sha."""
        if not lock_token:
            raise ValidationError("sha is required to edit a note", details={"field": "sha"})

        snapshot = await self.gateway.read_file(path)
        if snapshot.lock_token != lock_token:
            raise ConflictError(details={"path": path})

        changes: Dict[str, Any] = {}
        if tags is not None:
            changes["tags"] = [t.strip() for t in tags if t and t.strip()]
        if location is not None:
            changes["location"] = location.strip() or None

        raw = codec.update(snapshot.body, changes) if changes else snapshot.body
        if content is not None:
            raw = codec.replace_body(raw, "\n" + content.lstrip("\n"))

        new_token = await self.gateway.write_file(path, raw, lock_token=lock_token, message="Update note via web app")
        log_event("info", "library.note_updated", content_kind="note", path=path)
        return new_token

    async def delete_note(self, path: str, lock_token: str) -> None:
        if not lock_token:
            raise ValidationError("sha is required to delete a note", details={"field": "sha"})
        await self.gateway.delete_file(path, lock_token, message="Delete note via web app")
        log_event("info", "library.note_deleted", content_kind="note", path=path)

    # Collections -------------------------------------------------------
    async def _edit_item(
        self,
        kind: str,
        item_id: str,
        lock_token: str,
        mutate: Callable[[List[Dict[str, Any]], int], None],
        verb: str,
    ) -> CollectionSnapshot:
        if not lock_token:
            raise ValidationError("sha is required", details={"field": "sha"})
        path = self.collection_path(kind)

        snapshot = await self.gateway.read_collection(path)
        if snapshot.lock_token is None:
            raise NotFoundError(f"{kind} {item_id} not found")
        if snapshot.lock_token != lock_token:
            raise ConflictError(details={"path": path, "id": item_id})

        items = [dict(item) for item in snapshot.items]
        index = next((i for i, item in enumerate(items) if item.get("id") == item_id), None)
        if index is None:
            raise NotFoundError(f"{kind} {item_id} not found")

        mutate(items, index)
        message = f"{verb.capitalize()} {kind} {item_id} via web app"
        new_token = await self.gateway.write_collection(path, items, lock_token=lock_token, message=message)
        log_event("info", f"library.{kind}_{verb}d", content_kind=kind, path=path, extra={"id": item_id})
        return CollectionSnapshot(path=path, items=items, lock_token=new_token)

    async def update_story(
        self,
        item_id: str,
        lock_token: str,
        *,
        caption: Optional[str] = None,
        alt: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> CollectionSnapshot:
        def mutate(items, index):
            item = items[index]
            meta = dict(item.get("meta") or {})
            if caption is not None:
                if caption.strip():
                    meta["caption"] = caption.strip()
                else:
                    meta.pop("caption", None)
                if is_video_item(item):
                    meta["title"] = caption.strip()
            if alt is not None:
                if alt.strip():
                    meta["alt"] = alt.strip()
                else:
                    meta.pop("alt", None)
            if tags is not None:
                meta["tags"] = [t.strip() for t in tags if t and t.strip()]
            item["meta"] = meta

        return await self._edit_item(ContentKind.STORY.value, item_id, lock_token, mutate, "update")

    async def delete_story(self, item_id: str, lock_token: str) -> CollectionSnapshot:
        return await self._edit_item(ContentKind.STORY.value, item_id, lock_token, lambda items, i: items.pop(i), "delete")

    async def update_photo(
        self,
        item_id: str,
        lock_token: str,
        *,
        caption: Optional[str] = None,
        alt: Optional[str] = None,
        albums: Optional[List[str]] = None,
        location: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> CollectionSnapshot:
        # Reject before touching the network
        if alt is not None and not alt.strip():
            raise ValidationError("Alt text is required for accessibility", details={"field": "alt"})
        cleaned_albums = None
        if albums is not None:
            cleaned_albums = [a.strip() for a in albums if a and a.strip()]
            if not cleaned_albums:
                raise ValidationError("At least one album is required", details={"field": "albums"})

        def mutate(items, index):
            item = items[index]
            meta = dict(item.get("meta") or {})
            if caption is not None:
                meta["caption"] = caption.strip() or None
            if alt is not None:
                meta["alt"] = alt.strip()
            if cleaned_albums is not None:
                meta["albums"] = cleaned_albums
            if location is not None:
                meta["location"] = location.strip() or None
            if featured is not None:
                meta["featured"] = bool(featured)
            if not (meta.get("alt") or "").strip():
                raise ValidationError("Alt text is required for accessibility", details={"field": "alt"})
            if not meta.get("albums"):
                raise ValidationError("At least one album is required", details={"field": "albums"})
            item["meta"] = meta

        return await self._edit_item(ContentKind.PHOTO.value, item_id, lock_token, mutate, "update")

    async def delete_photo(self, item_id: str, lock_token: str) -> CollectionSnapshot:
        return await self._edit_item(ContentKind.PHOTO.value, item_id, lock_token, lambda items, i: items.pop(i), "delete")

    async def replace_collection(self, kind: str, items: List[Dict[str, Any]], lock_token: Optional[str]) -> str:
        """Full-array write exactly as sent by the client."""
        path = self.collection_path(kind)
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ValidationError(f"{kind} collection must be an array of objects")
        new_token = await self.gateway.write_collection(
            path, items, lock_token=lock_token, message=f"Update {kind} collection via web app"
        )
        log_event("info", "library.collection_replaced", content_kind=kind, path=path, extra={"count": len(items)})
        return new_token
