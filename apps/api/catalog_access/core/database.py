from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_access.core.config import get_settings


class Base(DeclarativeBase):
    pass


def build_session_factory(database_url: str | None = None) -> sessionmaker[Session]:
    """Session factory for the catalog database, in-memory SQLite shares one connection."""

    url = database_url or get_settings().database_url
    engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite") and ":memory:" in url:
        engine_kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    engine = create_engine(url, **engine_kwargs)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
