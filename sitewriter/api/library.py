"""
Direct access to published content in the site repository.

Every mutating call needs the sha the client loaded; a stale sha comes back as
409 conflict and nothing is written.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from sitewriter.api.deps import get_library
from sitewriter.core.errors import NotFoundError
from sitewriter.features.library.service import ContentLibrary

router = APIRouter(prefix="/api/github", tags=["library"])

_COLLECTIONS = {"stories": "story", "photos": "photo"}


def _kind(collection: str) -> str:
    kind = _COLLECTIONS.get(collection)
    if kind is None:
        raise NotFoundError(f"Unknown collection: {collection}")
    return kind


class NoteEdit(BaseModel):
    path: str
    sha: str = ""
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    location: Optional[str] = None


class CollectionWrite(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    sha: Optional[str] = None


class ItemEdit(BaseModel):
    sha: str = ""
    caption: Optional[str] = None
    alt: Optional[str] = None
    tags: Optional[List[str]] = None
    albums: Optional[List[str]] = None
    location: Optional[str] = None
    featured: Optional[bool] = None


@router.get("/notes")
async def list_notes(library: ContentLibrary = Depends(get_library)):
    return await library.list_notes()


@router.put("/notes")
async def edit_note(payload: NoteEdit, library: ContentLibrary = Depends(get_library)):
    sha = await library.update_note(
        payload.path,
        payload.sha,
        content=payload.content,
        tags=payload.tags,
        location=payload.location,
    )
    return {"success": True, "sha": sha}


@router.delete("/notes")
async def delete_note(
    path: str = Query(...),
    sha: str = Query(""),
    library: ContentLibrary = Depends(get_library),
):
    await library.delete_note(path, sha)
    return {"success": True}


@router.get("/posts")
async def list_posts(library: ContentLibrary = Depends(get_library)):
    return await library.list_posts()


@router.get("/{collection}")
async def read_collection(collection: str, library: ContentLibrary = Depends(get_library)):
    snapshot = await library.read_collection(_kind(collection))
    return {"items": snapshot.items, "sha": snapshot.lock_token}


@router.put("/{collection}")
async def replace_collection(collection: str, payload: CollectionWrite, library: ContentLibrary = Depends(get_library)):
    sha = await library.replace_collection(_kind(collection), payload.items, payload.sha)
    return {"success": True, "sha": sha}


@router.patch("/{collection}/{item_id}")
async def edit_item(collection: str, item_id: str, payload: ItemEdit, library: ContentLibrary = Depends(get_library)):
    kind = _kind(collection)
    if kind == "story":
        snapshot = await library.update_story(
            item_id, payload.sha, caption=payload.caption, alt=payload.alt, tags=payload.tags
        )
    else:
        snapshot = await library.update_photo(
            item_id,
            payload.sha,
            caption=payload.caption,
            alt=payload.alt,
            albums=payload.albums,
            location=payload.location,
            featured=payload.featured,
        )
    return {"items": snapshot.items, "sha": snapshot.lock_token}


@router.delete("/{collection}/{item_id}")
async def delete_item(
    collection: str,
    item_id: str,
    sha: str = Query(""),
    library: ContentLibrary = Depends(get_library),
):
    kind = _kind(collection)
    if kind == "story":
        snapshot = await library.delete_story(item_id, sha)
    else:
        snapshot = await library.delete_photo(item_id, sha)
    return {"items": snapshot.items, "sha": snapshot.lock_token}
