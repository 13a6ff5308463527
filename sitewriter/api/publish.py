"""
Publish endpoints.

Success means "accepted for processing": the site workflow runs after the
response, so these return 202.
"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError as SchemaError

from sitewriter.api.deps import get_media_orchestrator, get_workflow_orchestrator
from sitewriter.core.errors import ValidationError
from sitewriter.core.tracing import start_span
from sitewriter.features.publish.orchestrator import PublishOrchestrator
from sitewriter.features.uploads.batch import BatchUploadCoordinator
from sitewriter.models.content import MediaFile
from sitewriter.models.publish import (
    NotePublishRequest,
    PhotoDetails,
    PhotoPublishRequest,
    PostPublishRequest,
    ReindexRequest,
    StoryPublishRequest,
)

router = APIRouter(prefix="/api/publish", tags=["publish"])


async def _media_file(upload: Optional[UploadFile]) -> Optional[MediaFile]:
    if upload is None:
        return None
    data = await upload.read()
    return MediaFile(
        filename=upload.filename or "upload",
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


def _list_field(raw: Optional[str], field: str) -> List[str]:
    """Accept a JSON array or a comma-separated string."""
    if raw is None or not raw.strip():
        return []
    text = raw.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
        except ValueError:
            raise ValidationError(f"Invalid {field} format", details={"field": field})
        if not isinstance(values, list):
            raise ValidationError(f"Invalid {field} format", details={"field": field})
        return [str(v) for v in values]
    return [part.strip() for part in text.split(",") if part.strip()]


def _optional_float(raw: Optional[str], field: str) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{field} must be a number", details={"field": field})


@router.post("/note", status_code=202)
async def publish_note(payload: NotePublishRequest, orchestrator: PublishOrchestrator = Depends(get_workflow_orchestrator)):
    result = await orchestrator.publish_note(payload)
    return result.raise_for_error().to_dict()


@router.post("/post", status_code=202)
async def publish_post(payload: PostPublishRequest, orchestrator: PublishOrchestrator = Depends(get_workflow_orchestrator)):
    result = await orchestrator.publish_post(payload)
    return result.raise_for_error().to_dict()


@router.post("/story", status_code=202)
async def publish_story(
    file: Optional[UploadFile] = File(None),
    alt: str = Form(""),
    caption: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    draft_id: Optional[str] = Form(None),
    orchestrator: PublishOrchestrator = Depends(get_media_orchestrator),
):
    request = StoryPublishRequest(
        file=await _media_file(file),
        alt=alt,
        caption=caption,
        tags=_list_field(tags, "tags"),
        draft_id=draft_id,
    )
    result = await orchestrator.publish_story(request)
    return result.raise_for_error().to_dict()


@router.post("/photo", status_code=202)
async def publish_photo(
    file: Optional[UploadFile] = File(None),
    alt: str = Form(""),
    caption: Optional[str] = Form(None),
    albums: Optional[str] = Form(None),
    featured: bool = Form(False),
    location: Optional[str] = Form(None),
    datetime: Optional[str] = Form(None),
    ratio: Optional[str] = Form(None),
    orientation: Optional[str] = Form(None),
    draft_id: Optional[str] = Form(None),
    orchestrator: PublishOrchestrator = Depends(get_media_orchestrator),
):
    request = PhotoPublishRequest(
        file=await _media_file(file),
        alt=alt,
        caption=caption,
        albums=_list_field(albums, "albums"),
        featured=featured,
        location=location,
        datetime=datetime or None,
        ratio=_optional_float(ratio, "ratio"),
        orientation=orientation or None,
        draft_id=draft_id,
    )
    result = await orchestrator.publish_photo(request)
    return result.raise_for_error().to_dict()


@router.post("/photos/batch")
async def publish_photo_batch(
    files: List[UploadFile] = File(...),
    items: str = Form("[]", description="JSON array of per-file details, aligned with files"),
    orchestrator: PublishOrchestrator = Depends(get_media_orchestrator),
):
    try:
        raw_details = json.loads(items)
    except ValueError:
        raise ValidationError("items must be a JSON array", details={"field": "items"})
    if not isinstance(raw_details, list):
        raise ValidationError("items must be a JSON array", details={"field": "items"})
    try:
        details = [PhotoDetails.model_validate(d) for d in raw_details]
    except SchemaError as exc:
        raise ValidationError("items contains an invalid entry", details={"field": "items", "errors": exc.errors(include_url=False, include_context=False)})

    media_files = [await _media_file(f) for f in files]
    coordinator = BatchUploadCoordinator(orchestrator.publish_photo)
    with start_span("publish.photo_batch", {"files": len(media_files)}):
        state = coordinator.prepare(media_files, details)
        await coordinator.run(state)
    return state.to_dict()


@router.post("/reindex/{kind}", status_code=202)
async def reindex(kind: str, payload: ReindexRequest, orchestrator: PublishOrchestrator = Depends(get_workflow_orchestrator)):
    result = await orchestrator.retry_indexing(kind, payload.item)
    return result.raise_for_error().to_dict()
