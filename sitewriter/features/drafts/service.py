"""
Draft persistence.

- list_drafts(user_id)
- get_draft(user_id, draft_id)
- create_draft / update_draft / delete_draft
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import delete, insert, select, update

from sitewriter.core.database import drafts, get_db_session
from sitewriter.core.errors import NotFoundError
from sitewriter.models.draft import Draft, DraftCreate, DraftType, DraftUpdate


def _row_to_draft(row) -> Draft:
    return Draft(
        id=row.id,
        user_id=row.user_id,
        type=DraftType(row.type),
        title=row.title,
        content=row.content or "",
        tags=list(row.tags or []),
        language=row.language,
        location=row.location,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def list_drafts(user_id: str, draft_type: Optional[DraftType] = None) -> List[Draft]:
    """Newest-updated first."""
    query = select(drafts).where(drafts.c.user_id == user_id)
    if draft_type is not None:
        query = query.where(drafts.c.type == draft_type.value)
    query = query.order_by(drafts.c.updated_at.desc(), drafts.c.created_at.desc())
    with get_db_session() as session:
        return [_row_to_draft(row) for row in session.execute(query).fetchall()]


def get_draft(user_id: str, draft_id: str) -> Draft:
    with get_db_session() as session:
        row = session.execute(
            select(drafts).where(drafts.c.id == draft_id, drafts.c.user_id == user_id)
        ).first()
    if row is None:
        raise NotFoundError("Draft not found")
    return _row_to_draft(row)


def create_draft(user_id: str, payload: DraftCreate) -> Draft:
    now = datetime.now(timezone.utc)
    draft_id = str(uuid4())
    with get_db_session() as session:
        session.execute(
            insert(drafts).values(
                id=draft_id,
                user_id=user_id,
                type=payload.type.value,
                title=payload.title,
                content=payload.content,
                tags=list(payload.tags),
                language=payload.language,
                location=payload.location,
                created_at=now,
                updated_at=now,
            )
        )
    return get_draft(user_id, draft_id)


def update_draft(user_id: str, draft_id: str, payload: DraftUpdate) -> Draft:
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("type") is None:
        changes.pop("type", None)
    else:
        changes["type"] = DraftType(changes["type"]).value
    changes["updated_at"] = datetime.now(timezone.utc)

    with get_db_session() as session:
        result = session.execute(
            update(drafts)
            .where(drafts.c.id == draft_id, drafts.c.user_id == user_id)
            .values(**changes)
        )
        if result.rowcount == 0:
            raise NotFoundError("Draft not found")
    return get_draft(user_id, draft_id)


def delete_draft(user_id: str, draft_id: str) -> bool:
    """Delete a draft. Returns False when there was nothing to delete."""
    with get_db_session() as session:
        result = session.execute(
            delete(drafts).where(drafts.c.id == draft_id, drafts.c.user_id == user_id)
        )
        return result.rowcount > 0
