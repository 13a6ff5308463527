"""
Liveness and readiness probes.

No secrets, hostnames or stack traces are returned.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from sitewriter.core.config import settings
from sitewriter.core.database import missing_tables

logger = logging.getLogger("sitewriter")

router = APIRouter(tags=["health"])


def _not_ready(detail: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"status": "error", "detail": detail})


@router.get("/healthz")
def healthz():
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Ready once the local database answers and the site repository is configured."""
    try:
        missing = missing_tables()
    except SQLAlchemyError as e:
        logger.error("[readyz] database check failed: %s", e)
        return _not_ready("database unreachable")

    if missing:
        detail = f"missing tables: {', '.join(sorted(missing))}"
        logger.warning("[readyz] %s", detail)
        return _not_ready(detail)

    if not settings.GITHUB_OWNER or not settings.GITHUB_REPO:
        return _not_ready("GitHub configuration missing")

    return {"status": "ok"}
