"""
Local SQL storage for drafts and per-user settings.

Published notes, posts, stories and photos never live here; the site
repository is their system of record. SQLite (including in-memory) runs on a
single shared connection, anything else on a small QueuePool.
"""
import logging
import os
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime, Index, MetaData, String, Table, Text, create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from sitewriter.core.config import settings

logger = logging.getLogger("sitewriter")

metadata = MetaData()

drafts = Table(
    "drafts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(100), nullable=False),
    Column("type", String(10), nullable=False),  # NOTE | POST | STORY
    Column("title", Text, nullable=True),
    Column("content", Text, nullable=False),
    Column("tags", JSON, nullable=True),
    Column("language", String(10), nullable=True),
    Column("location", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("idx_drafts_user_updated", "user_id", "updated_at"),
)

# Created lazily on a user's first settings read
user_settings = Table(
    "user_settings",
    metadata,
    Column("user_id", String(100), primary_key=True),
    Column("theme", String(20), nullable=False, server_default="system"),
    Column("note_tags", JSON, nullable=False),
    Column("hidden_story_feeds", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _resolve_url(database_url: Optional[str]) -> str:
    url = database_url or os.getenv("TEST_DATABASE_URL") or settings.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL is not configured")
    return url


def init_engine(database_url: Optional[str] = None) -> Engine:
    global _engine, _session_factory

    url = _resolve_url(database_url)
    if url.startswith("sqlite"):
        _engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        _engine = create_engine(url, poolclass=QueuePool, pool_size=5, max_overflow=10, pool_recycle=3600)
    _session_factory = sessionmaker(bind=_engine, autoflush=False)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


@contextmanager
def get_db_session():
    """Session that commits when the block exits cleanly and rolls back otherwise."""
    if _session_factory is None:
        init_engine()
    session: Session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables() -> None:
    metadata.create_all(bind=get_engine())


def drop_all_tables() -> None:
    metadata.drop_all(bind=get_engine())


def missing_tables() -> List[str]:
    """Names of local tables not yet created. Raises if the database is unreachable."""
    engine = get_engine()
    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 1")
    inspector = inspect(engine)
    return [name for name in metadata.tables if not inspector.has_table(name)]
