"""SQLAlchemy engine, sessions and migrations for the ``sql`` ticket store.

Nothing here connects at import time: with the ``supabase`` backend
``DATABASE_URL`` is the project's HTTPS URL and no engine is ever built.
"""
from __future__ import annotations

import sqlite3
from functools import lru_cache
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ticket_notifier.config import get_settings


MIGRATIONS_ROOT = Path(__file__).resolve().parent.parent


class Base(DeclarativeBase):
    """Declarative base for the purchase tables."""


@event.listens_for(Engine, "connect")
def enforce_sqlite_foreign_keys(dbapi_conn, connection_record):
    """Payments and tickets rely on FK checks, which SQLite leaves off by default."""
    if not isinstance(dbapi_conn, sqlite3.Connection):
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache()
def get_engine() -> Engine:
    """Engine for ``DATABASE_URL``, created on first use."""

    settings = get_settings()
    if settings.ticket_store_backend != "sql":
        raise RuntimeError(
            f"No SQL engine for TICKET_STORE_BACKEND={settings.ticket_store_backend}"
        )
    return create_engine(settings.database_url, echo=settings.debug, future=True)


@lru_cache()
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)


def run_migrations(target_revision: str = "head") -> None:
    """Bring the purchase tables up to ``target_revision`` with Alembic."""

    cfg = Config(str(MIGRATIONS_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(MIGRATIONS_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", get_settings().database_url)
    command.upgrade(cfg, target_revision)
