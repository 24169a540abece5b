from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from items_service.config import Settings


def build_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        # SQLite uses its own pool classes; sizing arguments do not apply.
        return create_engine(url, pool_pre_ping=True, connect_args={"check_same_thread": False})

    # psycopg3 driver uses `postgresql+psycopg://...`
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )


def build_admin_engine(settings: Settings) -> Engine:
    """Engine on the server's maintenance database, used to create the app database."""

    url = make_url(settings.database_url).set(database=settings.db_admin_database)
    return create_engine(url, isolation_level="AUTOCOMMIT", pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
