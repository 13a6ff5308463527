import logging

from starlette.middleware.base import BaseHTTPMiddleware

from sitewriter.core.metrics import http_requests_total, normalize_path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count HTTP requests by method, normalized path and status."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        try:
            http_requests_total.inc(labels={
                "method": request.method.upper(),
                "path": normalize_path(request.url.path),
                "status": str(response.status_code),
            })
        except Exception:
            logging.getLogger("sitewriter").debug("metrics.record_failed", exc_info=True)
        return response
