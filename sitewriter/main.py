import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load env from sitewriter/.env
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

# Import after dotenv is loaded
from sitewriter.core.config import settings, validate_config  # noqa: E402
from sitewriter.core.context import AppContext  # noqa: E402
from sitewriter.core.database import create_all_tables  # noqa: E402
from sitewriter.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from sitewriter.core.logging import configure_logging  # noqa: E402
from sitewriter.core.middleware.metrics import MetricsMiddleware  # noqa: E402
from sitewriter.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from sitewriter.core.middleware.tracing import TracingMiddleware  # noqa: E402
from sitewriter.core.tracing import setup_tracing  # noqa: E402
from sitewriter.core.validation import validate_env  # noqa: E402
from sitewriter.api import (  # noqa: E402
    dashboard,
    drafts,
    health,
    library,
    metrics,
    publish,
    settings as settings_api,
    status,
)

configure_logging(settings.ENV)
validate_env()
validate_config(strict=settings.CONFIG_STRICT)
setup_tracing(enabled=settings.OTEL_ENABLED, exporter_name=settings.OTEL_EXPORTER)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("sitewriter")
    logger.info("Starting SiteWriter backend...")
    app.state.startup_time = time.time()
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping SiteWriter backend...")


app = FastAPI(title="SiteWriter", lifespan=lifespan)

# One theme context per process; set here so it exists without the lifespan too
app.state.app_context = AppContext(settings.DEFAULT_THEME)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(TracingMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(publish.router)
app.include_router(library.router)
app.include_router(drafts.router)
app.include_router(settings_api.router)
app.include_router(dashboard.router)
app.include_router(status.router)
