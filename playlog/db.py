from __future__ import annotations

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from playlog.config import settings


def make_engine_url() -> str:
    if settings.database_url:
        return settings.database_url
    # Default to local SQLite file for tests/dev without DB configured
    return "sqlite:///./test.db"


# Create engine and session factory
_engine = create_engine(
    make_engine_url(),
    future=True,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False}
    if "sqlite" in (make_engine_url())
    else {},
)

SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    pass


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def upsert(db: Session, model):
    """Return a dialect-specific INSERT for ``model`` supporting ON CONFLICT.

    Both PostgreSQL and SQLite expose ``on_conflict_do_update`` /
    ``on_conflict_do_nothing`` with the same signature.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported for dialect {dialect!r}")
