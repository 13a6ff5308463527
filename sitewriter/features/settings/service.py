"""Per-user settings, created lazily with defaults on first read."""

from datetime import datetime, timezone

from sqlalchemy import insert, select, update

from sitewriter.core.config import settings as app_settings
from sitewriter.core.context import THEMES
from sitewriter.core.database import get_db_session, user_settings
from sitewriter.core.errors import ValidationError
from sitewriter.models.settings import SettingsUpdate, UserSettings


def _row_to_settings(row) -> UserSettings:
    return UserSettings(
        user_id=row.user_id,
        theme=row.theme,
        note_tags=list(row.note_tags or []),
        hidden_story_feeds=list(row.hidden_story_feeds or []),
        updated_at=row.updated_at,
    )


def _insert_defaults(session, user_id: str, **overrides) -> None:
    now = datetime.now(timezone.utc)
    values = {
        "user_id": user_id,
        "theme": app_settings.DEFAULT_THEME,
        "note_tags": [],
        "hidden_story_feeds": [],
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    session.execute(insert(user_settings).values(**values))


def get_settings(user_id: str) -> UserSettings:
    with get_db_session() as session:
        row = session.execute(select(user_settings).where(user_settings.c.user_id == user_id)).first()
        if row is None:
            _insert_defaults(session, user_id)
            row = session.execute(select(user_settings).where(user_settings.c.user_id == user_id)).first()
        return _row_to_settings(row)


def update_settings(user_id: str, payload: SettingsUpdate) -> UserSettings:
    """Upsert; only fields present in the payload are written."""
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "theme" in changes and changes["theme"] not in THEMES:
        raise ValidationError(f"Unknown theme: {changes['theme']}", details={"allowed": list(THEMES)})

    with get_db_session() as session:
        exists = session.execute(
            select(user_settings.c.user_id).where(user_settings.c.user_id == user_id)
        ).first()
        if exists is None:
            _insert_defaults(session, user_id, **changes)
        elif changes:
            session.execute(
                update(user_settings)
                .where(user_settings.c.user_id == user_id)
                .values(updated_at=datetime.now(timezone.utc), **changes)
            )
    return get_settings(user_id)
