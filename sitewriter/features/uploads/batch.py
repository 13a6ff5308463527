"""
Batch photo uploads in bounded groups.

Groups run strictly one after another; items inside a group run
concurrently. A failing item never cancels its siblings or later groups.
Counters and per-item status change only in `_apply`, after a group has
fully settled, so `completed + failed == total` once `run` returns.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from sitewriter.core.config import settings
from sitewriter.core.errors import ValidationError
from sitewriter.core.metrics import uploads_in_flight
from sitewriter.features.uploads.dimensions import derive_ratio
from sitewriter.models.content import MediaFile
from sitewriter.models.publish import PhotoDetails, PhotoPublishRequest

logger = logging.getLogger("sitewriter")


class ItemStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class UploadItem:
    index: int
    source: MediaFile
    details: PhotoDetails
    ratio: float
    orientation: str
    status: ItemStatus = ItemStatus.PENDING
    error: Optional[str] = None
    result: Any = None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "filename": self.source.filename,
            "ratio": self.ratio,
            "orientation": self.orientation,
            "status": self.status.value,
            "error": self.error,
            "item": getattr(self.result, "item", None),
        }


@dataclass
class UploadBatchState:
    items: List[UploadItem] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)
    completed: int = 0
    failed: int = 0
    current_batch: int = 0

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def finished(self) -> bool:
        return self.completed + self.failed == self.total

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "current_batch": self.current_batch,
            "items": [item.to_dict() for item in self.items],
            "skipped": list(self.skipped),
        }


UploadFn = Callable[[PhotoPublishRequest], Awaitable[Any]]
ProgressFn = Callable[[UploadBatchState], Any]


def _partition(items: Sequence[UploadItem], size: int) -> List[List[UploadItem]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchUploadCoordinator:
    def __init__(
        self,
        upload: UploadFn,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressFn] = None,
        max_bytes: Optional[int] = None,
    ):
        size = batch_size if batch_size is not None else settings.UPLOAD_BATCH_SIZE
        if size < 1:
            raise ValueError("batch_size must be at least 1")
        self.upload = upload
        self.batch_size = size
        self.on_progress = on_progress
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    def prepare(self, files: Sequence[MediaFile], details: Sequence[PhotoDetails]) -> UploadBatchState:
        """Select uploadable files and derive ratio/orientation for each."""
        state = UploadBatchState()
        for position, media in enumerate(files):
            reason = None
            if not (media.content_type or "").lower().startswith("image/"):
                reason = "not an image"
            elif media.size > self.max_bytes:
                reason = "file too large"
            if reason is None:
                try:
                    ratio, orientation = derive_ratio(media.data)
                except ValidationError:
                    reason = "unreadable image"
            if reason is not None:
                logger.warning("uploads.skipped", extra={"path": media.filename, "error_code": reason})
                state.skipped.append({"filename": media.filename, "reason": reason})
                continue

            item_details = details[position] if position < len(details) else PhotoDetails()
            state.items.append(UploadItem(
                index=len(state.items),
                source=media,
                details=item_details,
                ratio=ratio,
                orientation=orientation,
            ))
        return state

    def _request_for(self, item: UploadItem) -> PhotoPublishRequest:
        d = item.details
        return PhotoPublishRequest(
            file=item.source,
            alt=d.alt,
            caption=d.caption,
            albums=d.albums,
            featured=d.featured,
            location=d.location,
            datetime=d.datetime,
            ratio=item.ratio,
            orientation=item.orientation,
        )

    def _apply(self, state: UploadBatchState, item: UploadItem, outcome: Any) -> None:
        """The only place where per-item status and counters change after upload."""
        if isinstance(outcome, BaseException):
            item.status, item.error = ItemStatus.ERROR, str(outcome) or type(outcome).__name__
            state.failed += 1
            return
        error = getattr(outcome, "error", None)
        item.result = outcome
        if error is not None:
            item.status, item.error = ItemStatus.ERROR, getattr(error, "message", str(error))
            state.failed += 1
        else:
            item.status = ItemStatus.SUCCESS
            state.completed += 1

    async def _notify(self, state: UploadBatchState) -> None:
        if self.on_progress is None:
            return
        outcome = self.on_progress(state)
        if inspect.isawaitable(outcome):
            await outcome

    async def run(self, state: UploadBatchState) -> UploadBatchState:
        for number, group in enumerate(_partition(state.items, self.batch_size), start=1):
            state.current_batch = number
            for item in group:
                item.status = ItemStatus.UPLOADING
            await self._notify(state)

            uploads_in_flight.inc(amount=len(group))
            try:
                outcomes = await asyncio.gather(
                    *(self.upload(self._request_for(item)) for item in group),
                    return_exceptions=True,
                )
            finally:
                uploads_in_flight.dec(amount=len(group))

            for item, outcome in zip(group, outcomes):
                self._apply(state, item, outcome)
            logger.info(
                "uploads.batch_settled",
                extra={"event_type": f"batch {number}", "path": f"{state.completed}/{state.failed}/{state.total}"},
            )
            await self._notify(state)
        return state
