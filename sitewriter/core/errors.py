"""Error taxonomy and normalized error responses.

Every failure carries a `partial` flag so callers can tell "nothing happened"
from "something happened and stopped halfway" (an uploaded asset that never
got indexed).
"""

import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from sitewriter.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500
    partial = False

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id
        self.details = details or {}


class ValidationError(AppError, ValueError):
    """Client-detected problem; raised before any network call."""
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    """Stale lock token: the remote copy rotated since it was loaded."""
    code = "conflict"
    status_code = 409

    def __init__(self, message: str = "The item changed since you loaded it", **kwargs):
        super().__init__(message, **kwargs)


class RemoteError(AppError):
    """Remote document store unreachable or returned an unexpected response."""
    code = "remote_error"
    status_code = 502


class UploadError(AppError):
    """Media store rejected the upload or was unreachable."""
    code = "upload_failed"
    status_code = 502


class DispatchError(AppError):
    """Workflow trigger unreachable or rejected."""
    code = "dispatch_failed"
    status_code = 502


class IndexingError(AppError):
    """Upload succeeded, but the step that catalogs the asset failed."""
    code = "indexing_failed"
    status_code = 502
    partial = True


class ConfigurationError(AppError):
    code = "configuration_error"
    status_code = 500


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, partial: bool = False, details: Optional[dict] = None) -> dict:
    error = {"code": code, "message": message, "request_id": request_id, "partial": partial}
    if details:
        error["details"] = details
    return {"error": error, "detail": message}


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.partial, exc.details)
    logger = logging.getLogger("sitewriter")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    if exc.status_code == 404:
        code = "not_found"
    elif exc.status_code == 401:
        code = "unauthorized"
    else:
        code = "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("sitewriter")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("sitewriter")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
