"""SQLAlchemy metadata and engine helpers for the pending-import tables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy import Engine
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import URL
from sqlalchemy.orm import sessionmaker

from bbimport.settings import Settings, get_settings

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
TIMESTAMP = sa.DateTime(timezone=True)

METADATA = sa.MetaData()

pending_imports = sa.Table(
    "pending_imports",
    METADATA,
    sa.Column("import_id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("entity_type", sa.Text(), nullable=False),
    sa.Column("origin_source", sa.Text(), nullable=False),
    sa.Column("origin_id", sa.Text(), nullable=False),
    sa.Column("default_name", sa.Text(), nullable=True),
    sa.Column("last_edited", sa.Text(), nullable=True),
    sa.Column("data", JSON_TYPE, nullable=False),
    # set once an editor accepts the import as a regular entity
    sa.Column("accepted_bbid", sa.String(length=36), nullable=True),
    sa.Column("imported_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    sa.Column("updated_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    sa.UniqueConstraint("origin_source", "origin_id", name="uq_pending_imports_origin"),
)
sa.Index("idx_pending_imports_entity_type", pending_imports.c.entity_type)


def _resolve_database_url(settings: Settings | None = None) -> str:
    """Return the SQLAlchemy URL considering overrides and configured storage."""

    url_override = os.getenv("BBIMPORT_DATABASE_URL")
    if url_override:
        return url_override

    resolved = settings or get_settings()
    if resolved.storage.database_url:
        return resolved.storage.database_url
    sqlite_path = Path(resolved.storage.sqlite_path)
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return URL.create("sqlite", database=sqlite_path.as_posix()).render_as_string(hide_password=False)


def build_engine(*, echo: bool = False, settings: Settings | None = None) -> Engine:
    """Instantiate a SQLAlchemy engine aligned with project settings."""

    url = _resolve_database_url(settings)
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite:///"):
        # sessions are used from worker threads
        connect_args["check_same_thread"] = False
    return sa.create_engine(url, echo=echo, future=True, pool_pre_ping=True, connect_args=connect_args)


def session_factory(*, settings: Settings | None = None, create_tables: bool = True) -> sessionmaker:
    """Return a configured sessionmaker bound to the active engine."""

    engine = build_engine(settings=settings)
    if create_tables:
        METADATA.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
