"""
Publish request models.

Requests are deliberately permissive: required-field checks happen in the
orchestrator so they surface as validation_error (400) before any network call.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from sitewriter.models.content import MediaFile


class NotePublishRequest(BaseModel):
    content: str = ""
    tags: List[str] = Field(default_factory=list)
    language: Optional[str] = Field(default=None, description="Defaults to 'en'")
    location: Optional[str] = None
    published_at: Optional[datetime] = Field(default=None, description="Defaults to now (UTC)")
    draft_id: Optional[str] = Field(default=None, description="Draft to delete once the publish is accepted")


class PostPublishRequest(BaseModel):
    title: str = ""
    content: str = ""
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD, defaults to today")
    layout: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    feature: Optional[int] = None
    draft_id: Optional[str] = None


class StoryPublishRequest(BaseModel):
    file: Optional[MediaFile] = None
    alt: str = ""
    caption: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    draft_id: Optional[str] = None


class PhotoPublishRequest(BaseModel):
    file: Optional[MediaFile] = None
    alt: str = ""
    caption: Optional[str] = None
    albums: List[str] = Field(default_factory=list)
    featured: bool = False
    location: Optional[str] = None
    datetime: Optional[str] = None
    ratio: Optional[float] = Field(default=None, description="Derived from the image when absent")
    orientation: Optional[str] = None
    draft_id: Optional[str] = None


class ReindexRequest(BaseModel):
    """An already-built collection item whose indexing step failed."""

    item: Dict[str, Any]


class PhotoDetails(BaseModel):
    """Per-photo fields for a batch upload; the file travels separately."""

    alt: str = ""
    caption: Optional[str] = None
    albums: List[str] = Field(default_factory=list)
    featured: bool = False
    location: Optional[str] = None
    datetime: Optional[str] = None
