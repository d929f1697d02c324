"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from flatshare_chat.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def build_engine(url: str, *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create an engine, enabling cross-thread use for SQLite connections."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
    return create_engine(url, pool_pre_ping=True, echo=echo, **kwargs)


# Ensure model modules are imported so that metadata is populated when create_all runs.
import flatshare_chat.models  # noqa: E402,F401

engine = build_engine(settings.database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=bind or engine)


def dispose_engine() -> None:
    """Release pooled connections at process shutdown."""
    engine.dispose()
