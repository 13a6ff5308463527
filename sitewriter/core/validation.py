"""
Startup checks for the process environment.

`validate_env` gathers every problem it finds and raises them together so a
broken deploy shows the full list at once. Tests set SKIP_ENV_VALIDATION=1.
"""

import os
from typing import List, Optional
from urllib.parse import urlparse

from sitewriter.core.config import settings

# A production deploy cannot publish without all of these
PRODUCTION_KEYS = (
    "DATABASE_URL",
    "SESSION_SECRET",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_API_TOKEN",
    "CLOUDFLARE_DELIVERY_HASH",
)


class EnvValidationError(RuntimeError):
    pass


def _database_url_ok(url: str) -> bool:
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return True
    return bool(parsed.scheme and parsed.netloc)


def _problems(cfg, mode: str) -> List[str]:
    found: List[str] = []
    db_url = getattr(cfg, "DATABASE_URL", None)
    test_db_url = getattr(cfg, "TEST_DATABASE_URL", None)

    if db_url and not _database_url_ok(db_url):
        found.append("DATABASE_URL must be a valid URL (e.g. sqlite:///./sitewriter.db)")

    if mode == "production":
        found.extend(f"{key} is required in production" for key in PRODUCTION_KEYS if not getattr(cfg, key, None))
        if test_db_url:
            found.append("TEST_DATABASE_URL must not be set in production")
        # Remote tokens come from the session in production
        if getattr(cfg, "GITHUB_TOKEN", None):
            found.append("GITHUB_TOKEN fallback must not be set in production")
    elif mode != "test" and test_db_url:
        found.append("TEST_DATABASE_URL is only allowed in test mode")

    for key in ("MAX_UPLOAD_BYTES", "UPLOAD_BATCH_SIZE"):
        if (getattr(cfg, key, 0) or 0) <= 0:
            found.append(f"{key} must be positive")
    return found


def validate_env(env: Optional[str] = None, settings_obj=None) -> bool:
    """Check the environment for `env` (defaults to the configured ENV).

    Returns True, or raises EnvValidationError listing every problem.
    """
    if os.getenv("SKIP_ENV_VALIDATION") == "1":
        return True

    cfg = settings_obj or settings
    mode = (env or getattr(cfg, "ENV", None) or "development").lower()
    found = _problems(cfg, mode)
    if found:
        raise EnvValidationError("; ".join(found))
    return True
