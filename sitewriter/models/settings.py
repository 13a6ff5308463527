from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    theme: str = Field(default="system", description="light | dark | system")
    note_tags: List[str] = Field(default_factory=list)
    hidden_story_feeds: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class SettingsUpdate(BaseModel):
    """Only provided fields are written."""

    theme: Optional[str] = None
    note_tags: Optional[List[str]] = None
    hidden_story_feeds: Optional[List[str]] = None
