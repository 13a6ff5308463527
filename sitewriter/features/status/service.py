"""
Status line stored as `status.txt` in the resources repository.

The file holds two lines: an ISO-8601 timestamp with offset, then the text.
"""

import logging
from datetime import datetime
from typing import Optional

from sitewriter.core.config import Settings, settings as default_settings
from sitewriter.core.errors import NotFoundError, ValidationError
from sitewriter.core.logging import log_event
from sitewriter.services.github_gateway import RemoteDocumentGateway

logger = logging.getLogger("sitewriter")


def format_status_date(value: Optional[datetime] = None) -> str:
    when = value or datetime.now().astimezone()
    if when.tzinfo is None:
        when = when.astimezone()
    return when.replace(microsecond=0).isoformat()


def commit_message(text: str) -> str:
    suffix = "..." if len(text) > 50 else ""
    return f"Update status: {text[:50]}{suffix}"


class StatusService:
    def __init__(self, gateway: RemoteDocumentGateway, settings: Optional[Settings] = None):
        self.gateway = gateway
        self.settings = settings or default_settings

    async def read(self) -> dict:
        try:
            snapshot = await self.gateway.read_file(self.settings.STATUS_PATH)
        except NotFoundError:
            raise NotFoundError("Status not found")
        date, _, text = snapshot.body.partition("\n")
        return {"date": date, "status_text": text, "raw": snapshot.body, "sha": snapshot.lock_token}

    async def write(self, status_text: Optional[str], date: Optional[datetime] = None) -> str:
        """Replace the status line. An empty string clears it; None is rejected."""
        if status_text is None:
            raise ValidationError("Status text is required", details={"field": "status_text"})

        body = f"{format_status_date(date)}\n{status_text}"
        path = self.settings.STATUS_PATH
        try:
            current: Optional[str] = (await self.gateway.read_file(path)).lock_token
        except NotFoundError:
            current = None

        new_token = await self.gateway.write_file(path, body, lock_token=current, message=commit_message(status_text))
        log_event("info", "status.updated", path=path, extra={"length": len(status_text)})
        return new_token
