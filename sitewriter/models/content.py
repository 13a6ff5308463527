"""
Remote document and media asset models.

A ContentDocument is identified by its path and guarded by a lock token (the
remote blob sha). FileDocuments hold one item; CollectionDocuments hold a JSON
array whose single token guards the whole array.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    NOTE = "note"
    POST = "post"
    STORY = "story"
    PHOTO = "photo"


class FileSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    body: str
    lock_token: str = Field(description="Remote sha captured at read time")


class CollectionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    items: List[Dict[str, Any]] = Field(default_factory=list)
    lock_token: Optional[str] = Field(default=None, description="None when the file does not exist yet")


class DirectoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    sha: str
    type: str = "file"
    url: Optional[str] = None


class MediaAsset(BaseModel):
    """Result of a successful CDN upload."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    uploaded_at: datetime
    filename: str
    public_url: str
    thumbnail_url: Optional[str] = None
    is_video: bool = False


class MediaFile(BaseModel):
    """An uploaded file as received from a client."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
