"""SQLAlchemy tables for the local node cache."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Engine, Index, Integer, String, Text, UniqueConstraint, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class NodeRow(Base):
    """One cached node. ``raw_payload`` is the JSON record the Node is rebuilt from."""

    __tablename__ = "nodes"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    checksum: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    status: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created: Mapped[str | None] = mapped_column(String, nullable=True)
    modified: Mapped[str | None] = mapped_column(String, nullable=True)
    raw_payload: Mapped[str] = mapped_column(Text, nullable=False)


class EdgeRow(Base):
    """Parent/child membership derived from a node's ``parents`` list."""

    __tablename__ = "edges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    child_id: Mapped[str] = mapped_column(String, nullable=False)
    parent_id: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("child_id", "parent_id", name="uq_edges_child_parent"),
        Index("ix_edges_child_id", "child_id"),
        Index("ix_edges_parent_id", "parent_id"),
    )


class AccountConfigRow(Base):
    __tablename__ = "account_config"

    email: Mapped[str] = mapped_column(String, primary_key=True)
    checkpoint: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_authorized: Mapped[int | None] = mapped_column(Integer, nullable=True)
    metadata_url: Mapped[str | None] = mapped_column(String, nullable=True)
    content_url: Mapped[str | None] = mapped_column(String, nullable=True)


def create_cache_engine(url: str) -> Engine:
    """Create an engine for ``url`` and make sure every cache table exists.

    Args:
        url: SQLAlchemy database URL, e.g. ``sqlite:///cache/user@example.com.db``.

    Returns:
        Engine bound to a database holding the ``nodes``, ``edges`` and
        ``account_config`` tables.
    """
    engine = create_engine(url)
    Base.metadata.create_all(engine)
    logger.info("[create_cache_engine] cache schema ready; url:%s", engine.url)
    return engine


def sqlite_cache_url(cache_dir: str, email: str) -> str:
    """Return the SQLite URL of the per-account cache file, creating ``cache_dir``."""
    directory = Path(cache_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{directory / f'{email}.db'}"
