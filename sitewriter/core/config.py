import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Local state (drafts + settings)
    DATABASE_URL: Optional[str] = "sqlite:///./sitewriter.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Session provider
    SESSION_SECRET: Optional[str] = None

    # Remote document store (GitHub)
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_OWNER: Optional[str] = None
    GITHUB_REPO: Optional[str] = None
    GITHUB_RESOURCES_REPO: Optional[str] = None
    GITHUB_BRANCH: str = "main"
    GITHUB_TOKEN: Optional[str] = None  # dev fallback when the session carries no token

    # Workflows that append to the site repo out-of-band
    NOTES_WORKFLOW: str = "notes.yml"
    POSTS_WORKFLOW: str = "posts.yml"
    MEDIA_WORKFLOW: str = "cf2.yml"

    # Content layout inside the site repo
    NOTES_DIR: str = "_notes"
    POSTS_DIR: str = "_posts"
    STORIES_PATH: str = "_data/stories.json"
    PHOTOS_PATH: str = "_data/photos.json"
    FEEDS_DIR: str = "feeds"
    STATUS_PATH: str = "status.txt"

    # Media CDN (Cloudflare Images / Stream)
    CLOUDFLARE_API_URL: str = "https://api.cloudflare.com/client/v4"
    CLOUDFLARE_ACCOUNT_ID: Optional[str] = None
    CLOUDFLARE_API_TOKEN: Optional[str] = None
    CLOUDFLARE_DELIVERY_HASH: Optional[str] = None
    IMAGE_DELIVERY_HOST: str = "imagedelivery.net"

    # Uploads
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024
    UPLOAD_BATCH_SIZE: int = 3

    # UI
    DEFAULT_THEME: str = "system"
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Observability / Tracing
    OTEL_ENABLED: bool = False
    OTEL_EXPORTER: str = "console"  # console | memory

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("sitewriter")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "GITHUB_OWNER",
        "GITHUB_REPO",
        "CLOUDFLARE_ACCOUNT_ID",
        "CLOUDFLARE_API_TOKEN",
        "CLOUDFLARE_DELIVERY_HASH",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
