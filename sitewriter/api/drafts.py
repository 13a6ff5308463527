"""Draft CRUD. Drafts are local only; publishing copies their fields."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from sitewriter.core.auth import get_current_user_id
from sitewriter.core.errors import NotFoundError, ValidationError
from sitewriter.features.drafts import service
from sitewriter.models.draft import DraftCreate, DraftType, DraftUpdate

router = APIRouter(prefix="/api/drafts", tags=["drafts"])


def _parse_type(value: Optional[str]) -> Optional[DraftType]:
    if value is None:
        return None
    try:
        return DraftType(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown draft type: {value}")


@router.get("")
def list_drafts(
    type: Optional[str] = Query(None, description="NOTE | POST | STORY"),
    user_id: str = Depends(get_current_user_id),
):
    return [d.model_dump(mode="json") for d in service.list_drafts(user_id, _parse_type(type))]


@router.post("", status_code=201)
def create_draft(payload: DraftCreate, user_id: str = Depends(get_current_user_id)):
    return service.create_draft(user_id, payload).model_dump(mode="json")


@router.get("/{draft_id}")
def get_draft(draft_id: str, user_id: str = Depends(get_current_user_id)):
    return service.get_draft(user_id, draft_id).model_dump(mode="json")


@router.put("/{draft_id}")
def update_draft(draft_id: str, payload: DraftUpdate, user_id: str = Depends(get_current_user_id)):
    return service.update_draft(user_id, draft_id, payload).model_dump(mode="json")


@router.delete("/{draft_id}", status_code=204)
def delete_draft(draft_id: str, user_id: str = Depends(get_current_user_id)):
    if not service.delete_draft(user_id, draft_id):
        raise NotFoundError("Draft not found")
    return Response(status_code=204)
