"""
Draft models.

A draft is never published itself; publishing copies its fields into a
publish request.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DraftType(str, Enum):
    NOTE = "NOTE"
    POST = "POST"
    STORY = "STORY"


class Draft(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="UUID")
    user_id: str
    type: DraftType
    title: Optional[str] = None
    content: str = ""
    tags: List[str] = Field(default_factory=list)
    language: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DraftCreate(BaseModel):
    type: DraftType
    title: Optional[str] = None
    content: str = ""
    tags: List[str] = Field(default_factory=list)
    language: Optional[str] = None
    location: Optional[str] = None


class DraftUpdate(BaseModel):
    """Partial update; omitted fields stay as they are."""

    type: Optional[DraftType] = None
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    language: Optional[str] = None
    location: Optional[str] = None
