from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sitewriter.api.deps import get_gateway, get_status_service
from sitewriter.features.feeds.service import list_story_feeds
from sitewriter.features.status.service import StatusService
from sitewriter.services.github_gateway import RemoteDocumentGateway

router = APIRouter(tags=["status"])


class StatusUpdate(BaseModel):
    status_text: Optional[str] = None
    date: Optional[datetime] = None


@router.get("/api/status")
async def read_status(status: StatusService = Depends(get_status_service)):
    return await status.read()


@router.post("/api/status")
async def write_status(payload: StatusUpdate, status: StatusService = Depends(get_status_service)):
    sha = await status.write(payload.status_text, payload.date)
    return {"success": True, "message": "Status updated successfully", "sha": sha}


@router.get("/api/story-feeds")
async def story_feeds(gateway: RemoteDocumentGateway = Depends(get_gateway)):
    return await list_story_feeds(gateway)
