from fastapi import APIRouter, Depends

from sitewriter.core.auth import get_current_user_id
from sitewriter.core.context import AppContext, get_app_context
from sitewriter.features.settings import service
from sitewriter.models.settings import SettingsUpdate

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _settings_payload(current) -> dict:
    return {
        "theme": current.theme,
        "note_tags": current.note_tags,
        "hidden_story_feeds": current.hidden_story_feeds,
    }


@router.get("")
def read_settings(user_id: str = Depends(get_current_user_id)):
    return _settings_payload(service.get_settings(user_id))


@router.put("")
def write_settings(
    payload: SettingsUpdate,
    user_id: str = Depends(get_current_user_id),
    context: AppContext = Depends(get_app_context),
):
    updated = service.update_settings(user_id, payload)
    if payload.theme is not None:
        context.set_theme(updated.theme)
    return _settings_payload(updated)
