"""
Publish pipelines for notes, posts, stories and photos.

Notes and posts are a single workflow dispatch. Stories and photos are two
phases: upload to the CDN, then dispatch a workflow that appends the built
item to the site's JSON collection. A failure in the second phase leaves an
uploaded-but-unlisted asset behind, which is reported as a partial failure
carrying everything needed to retry only the indexing step.

Procedures never raise for pipeline failures; they return a tagged
PublishResult so batch callers can inspect outcomes. HTTP handlers call
raise_for_error().
"""

import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sitewriter.core.config import Settings, settings as default_settings
from sitewriter.core.errors import AppError, DispatchError, IndexingError, UploadError, ValidationError
from sitewriter.core.logging import log_event
from sitewriter.core.metrics import publish_attempts_total
from sitewriter.core.tracing import start_span
from sitewriter.features.publish import validators
from sitewriter.features.publish.items import (
    build_photo_item,
    build_story_item,
    check_item_shape,
    encode_item,
    iso_millis,
)
from sitewriter.features.publish.state import PublishAttempt, PublishState
from sitewriter.features.uploads.dimensions import derive_ratio, ratio_and_orientation
from sitewriter.models.content import ContentKind, MediaAsset
from sitewriter.models.publish import (
    NotePublishRequest,
    PhotoPublishRequest,
    PostPublishRequest,
    StoryPublishRequest,
)
from sitewriter.services.github_gateway import RemoteDocumentGateway
from sitewriter.services.media_client import MediaUploadClient

logger = logging.getLogger("sitewriter")

DraftCleanup = Callable[[str], Any]


@dataclass
class PublishResult:
    kind: str
    state: PublishState
    accepted: bool = False
    asset: Optional[MediaAsset] = None
    item: Optional[Dict[str, Any]] = None
    error: Optional[AppError] = None
    draft_deleted: Optional[bool] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.state is PublishState.SUCCEEDED

    def raise_for_error(self) -> "PublishResult":
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "state": self.state.value,
            "accepted": self.accepted,
            "asset": self.asset.model_dump(mode="json") if self.asset else None,
            "item": self.item,
            "draft_deleted": self.draft_deleted,
        }


def _clean_list(values) -> list:
    return [v.strip() for v in values or [] if v and v.strip()]


class PublishOrchestrator:
    def __init__(
        self,
        gateway: RemoteDocumentGateway,
        media: Optional[MediaUploadClient],
        settings: Optional[Settings] = None,
        cleanup: Optional[DraftCleanup] = None,
    ):
        self.gateway = gateway
        self.media = media
        self.settings = settings or default_settings
        self.cleanup = cleanup

    # Outcome helpers ---------------------------------------------------
    def _fail(self, attempt: PublishAttempt, state: PublishState, error: AppError, **extra) -> PublishResult:
        attempt.advance(state)
        publish_attempts_total.inc(labels={"kind": attempt.kind, "state": state.value})
        log_event(
            "warning",
            "publish.failed",
            content_kind=attempt.kind,
            event_type=state.value,
            error_code=error.code,
            extra={"error_message": error.message},
        )
        return PublishResult(kind=attempt.kind, state=state, error=error, **extra)

    async def _succeed(self, attempt: PublishAttempt, draft_id: Optional[str], **extra) -> PublishResult:
        attempt.advance(PublishState.SUCCEEDED)
        publish_attempts_total.inc(labels={"kind": attempt.kind, "state": PublishState.SUCCEEDED.value})
        log_event("info", "publish.accepted", content_kind=attempt.kind, event_type="succeeded")
        result = PublishResult(kind=attempt.kind, state=PublishState.SUCCEEDED, accepted=True, **extra)
        if draft_id:
            result.draft_deleted = await self._cleanup_draft(draft_id)
        return result

    async def _cleanup_draft(self, draft_id: str) -> bool:
        if self.cleanup is None:
            return False
        try:
            outcome = self.cleanup(draft_id)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            logger.warning("publish.draft_cleanup_failed", extra={"path": draft_id, "error_code": type(exc).__name__})
            return False
        return outcome is not False

    async def _dispatch(self, attempt: PublishAttempt, workflow_id: str, inputs: Dict[str, str], draft_id: Optional[str]) -> PublishResult:
        attempt.advance(PublishState.DISPATCHING)
        try:
            await self.gateway.dispatch_workflow(workflow_id, inputs)
        except DispatchError as exc:
            return self._fail(attempt, PublishState.FAILED_DISPATCH, exc)
        return await self._succeed(attempt, draft_id)

    async def _index(
        self,
        attempt: PublishAttempt,
        collection_path: str,
        item: Dict[str, Any],
        asset: Optional[MediaAsset],
        draft_id: Optional[str],
    ) -> PublishResult:
        attempt.advance(PublishState.INDEXING)
        inputs = {"filepath": collection_path, "filedata": encode_item(item)}
        try:
            await self.gateway.dispatch_workflow(self.settings.MEDIA_WORKFLOW, inputs)
        except DispatchError as exc:
            error = IndexingError(
                f"Uploaded {item.get('id')} but could not add it to {collection_path}: {exc.message}",
                details={"asset_id": item.get("id"), "collection": collection_path, "item": item},
            )
            return self._fail(attempt, PublishState.FAILED_INDEXING, error, asset=asset, item=item)
        return await self._succeed(attempt, draft_id, asset=asset, item=item)

    # Notes and posts ---------------------------------------------------
    def note_inputs(self, request: NotePublishRequest) -> Dict[str, str]:
        content = validators.require_text(request.content, "content")
        tags = _clean_list(request.tags)
        when = request.published_at or datetime.now(timezone.utc)
        inputs = {
            "content": content,
            "tags": ",".join(tags) if tags else "note",
            "lang": (request.language or "").strip() or "en",
            "datetime": iso_millis(when),
        }
        if request.location and request.location.strip():
            inputs["location"] = request.location.strip()
        return inputs

    def post_inputs(self, request: PostPublishRequest) -> Dict[str, str]:
        title = validators.require_text(request.title, "title")
        content = validators.require_text(request.content, "content")
        inputs = {
            "title": title.strip(),
            "content": content,
            "date": validators.validate_post_date(request.date),
            "layout": (request.layout or "").strip() or "default",
        }
        tags = _clean_list(request.tags)
        if tags:
            inputs["tags"] = ",".join(tags)
        if request.feature is not None:
            inputs["feature"] = str(request.feature)
        return inputs

    async def publish_note(self, request: NotePublishRequest) -> PublishResult:
        attempt = PublishAttempt(ContentKind.NOTE.value)
        with start_span("publish.note"):
            attempt.advance(PublishState.VALIDATING)
            try:
                inputs = self.note_inputs(request)
            except ValidationError as exc:
                return self._fail(attempt, PublishState.FAILED_VALIDATION, exc)
            return await self._dispatch(attempt, self.settings.NOTES_WORKFLOW, inputs, request.draft_id)

    async def publish_post(self, request: PostPublishRequest) -> PublishResult:
        attempt = PublishAttempt(ContentKind.POST.value)
        with start_span("publish.post"):
            attempt.advance(PublishState.VALIDATING)
            try:
                inputs = self.post_inputs(request)
            except ValidationError as exc:
                return self._fail(attempt, PublishState.FAILED_VALIDATION, exc)
            return await self._dispatch(attempt, self.settings.POSTS_WORKFLOW, inputs, request.draft_id)

    # Stories and photos ------------------------------------------------
    def _require_media(self) -> MediaUploadClient:
        if self.media is None:
            raise UploadError("Media storage is not configured")
        return self.media

    async def publish_story(self, request: StoryPublishRequest) -> PublishResult:
        attempt = PublishAttempt(ContentKind.STORY.value)
        with start_span("publish.story"):
            attempt.advance(PublishState.VALIDATING)
            try:
                media_file = validators.validate_media_file(
                    request.file, allow_video=True, max_bytes=self.settings.MAX_UPLOAD_BYTES
                )
                alt = validators.require_text(request.alt, "alt").strip()
                tags = validators.require_non_empty_list(request.tags, "tags", "At least one tag is required")
            except ValidationError as exc:
                return self._fail(attempt, PublishState.FAILED_VALIDATION, exc)

            caption = (request.caption or "").strip() or None
            attempt.advance(PublishState.UPLOADING)
            try:
                media = self._require_media()
                if media_file.content_type.lower().startswith("video/"):
                    asset = await media.upload_video(media_file.data, media_file.content_type, media_file.filename)
                else:
                    asset = await media.upload_image(
                        media_file.data,
                        media_file.content_type,
                        media_file.filename,
                        metadata={"caption": caption, "alt": alt, "tags": tags},
                    )
            except UploadError as exc:
                return self._fail(attempt, PublishState.FAILED_UPLOAD, exc)

            item = build_story_item(asset, alt=alt, caption=caption, tags=tags)
            return await self._index(attempt, self.settings.STORIES_PATH, item, asset, request.draft_id)

    async def publish_photo(self, request: PhotoPublishRequest) -> PublishResult:
        attempt = PublishAttempt(ContentKind.PHOTO.value)
        with start_span("publish.photo"):
            attempt.advance(PublishState.VALIDATING)
            try:
                media_file = validators.validate_media_file(
                    request.file, allow_video=False, max_bytes=self.settings.MAX_UPLOAD_BYTES
                )
                alt = validators.require_text(request.alt, "alt").strip()
                albums = validators.require_non_empty_list(request.albums, "albums", "At least one album is required")
                if request.ratio is not None and request.ratio > 0:
                    ratio = request.ratio
                    orientation = (
                        validators.validate_orientation(request.orientation)
                        if request.orientation
                        else ratio_and_orientation(ratio, 1)[1]
                    )
                else:
                    ratio, orientation = derive_ratio(media_file.data)
            except ValidationError as exc:
                return self._fail(attempt, PublishState.FAILED_VALIDATION, exc)

            caption = (request.caption or "").strip() or None
            location = (request.location or "").strip() or None
            attempt.advance(PublishState.UPLOADING)
            try:
                asset = await self._require_media().upload_image(
                    media_file.data,
                    media_file.content_type,
                    media_file.filename,
                    metadata={
                        "caption": caption,
                        "alt": alt,
                        "albums": albums,
                        "location": location,
                        "featured": request.featured,
                        "datetime": request.datetime or None,
                        "ratio": ratio,
                        "orientation": orientation,
                    },
                )
            except UploadError as exc:
                return self._fail(attempt, PublishState.FAILED_UPLOAD, exc)

            item = build_photo_item(
                asset,
                ratio=ratio,
                orientation=orientation,
                alt=alt,
                caption=caption,
                albums=albums,
                featured=request.featured,
                location=location,
                taken_at=request.datetime,
            )
            return await self._index(attempt, self.settings.PHOTOS_PATH, item, asset, request.draft_id)

    async def retry_indexing(self, kind: str, item: Dict[str, Any]) -> PublishResult:
        """Re-dispatch an already uploaded asset's item without uploading again."""
        attempt = PublishAttempt(kind)
        with start_span("publish.reindex", {"content_kind": kind}):
            attempt.advance(PublishState.VALIDATING)
            try:
                if kind == ContentKind.STORY.value:
                    path = self.settings.STORIES_PATH
                elif kind == ContentKind.PHOTO.value:
                    path = self.settings.PHOTOS_PATH
                else:
                    raise ValidationError(f"Cannot re-index {kind}; only story and photo items are indexed")
                check_item_shape(item)
            except ValidationError as exc:
                return self._fail(attempt, PublishState.FAILED_VALIDATION, exc)
            return await self._index(attempt, path, item, None, None)
