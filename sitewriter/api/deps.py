"""
Request-scoped collaborators for the routers.

Transports are their own dependencies so tests can swap in
httpx.MockTransport through app.dependency_overrides.
"""

from typing import Optional

import httpx
from fastapi import Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from sitewriter.core.auth import Session, get_session
from sitewriter.core.config import settings
from sitewriter.core.errors import ConfigurationError
from sitewriter.features.dashboard.service import DashboardService
from sitewriter.features.drafts.service import delete_draft
from sitewriter.features.library.service import ContentLibrary
from sitewriter.features.publish.orchestrator import PublishOrchestrator
from sitewriter.features.status.service import StatusService
from sitewriter.services.github_gateway import RemoteDocumentGateway
from sitewriter.services.media_client import MediaUploadClient


def get_github_transport() -> Optional[httpx.AsyncBaseTransport]:
    return None


def get_media_transport() -> Optional[httpx.AsyncBaseTransport]:
    return None


def get_gateway(
    session: Session = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_github_transport),
) -> RemoteDocumentGateway:
    if not settings.GITHUB_OWNER or not settings.GITHUB_REPO:
        raise ConfigurationError("GitHub configuration missing")
    if not session.access_token:
        raise HTTPException(status_code=401, detail="Session carries no GitHub access token")
    return RemoteDocumentGateway(
        session.access_token,
        settings.GITHUB_OWNER,
        settings.GITHUB_REPO,
        transport=transport,
    )


def get_resources_gateway(gateway: RemoteDocumentGateway = Depends(get_gateway)) -> RemoteDocumentGateway:
    if not settings.GITHUB_RESOURCES_REPO:
        raise ConfigurationError("GitHub resources repository is not configured")
    return gateway.for_repo(settings.GITHUB_RESOURCES_REPO)


def get_media_client(
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_media_transport),
) -> MediaUploadClient:
    if not settings.CLOUDFLARE_ACCOUNT_ID or not settings.CLOUDFLARE_API_TOKEN:
        raise ConfigurationError("Cloudflare configuration missing")
    return MediaUploadClient(
        settings.CLOUDFLARE_ACCOUNT_ID,
        settings.CLOUDFLARE_API_TOKEN,
        settings.CLOUDFLARE_DELIVERY_HASH,
        transport=transport,
    )


def get_library(gateway: RemoteDocumentGateway = Depends(get_gateway)) -> ContentLibrary:
    return ContentLibrary(gateway)


def get_dashboard(library: ContentLibrary = Depends(get_library)) -> DashboardService:
    return DashboardService(library)


def get_status_service(gateway: RemoteDocumentGateway = Depends(get_resources_gateway)) -> StatusService:
    return StatusService(gateway)


def _publish_orchestrator(session: Session, gateway: RemoteDocumentGateway, media: Optional[MediaUploadClient]) -> PublishOrchestrator:
    async def cleanup(draft_id: str) -> bool:
        # Draft storage is synchronous SQLAlchemy; keep it off the event loop
        return await run_in_threadpool(delete_draft, session.user_id, draft_id)

    return PublishOrchestrator(gateway, media, cleanup=cleanup)


def get_workflow_orchestrator(
    session: Session = Depends(get_session),
    gateway: RemoteDocumentGateway = Depends(get_gateway),
) -> PublishOrchestrator:
    """Notes, posts and re-indexing never touch the CDN."""
    return _publish_orchestrator(session, gateway, None)


def get_media_orchestrator(
    session: Session = Depends(get_session),
    gateway: RemoteDocumentGateway = Depends(get_gateway),
    media: MediaUploadClient = Depends(get_media_client),
) -> PublishOrchestrator:
    return _publish_orchestrator(session, gateway, media)
