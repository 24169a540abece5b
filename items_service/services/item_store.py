from __future__ import annotations

import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog
from sqlalchemy import inspect, select, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from items_service.config import Settings
from items_service.db.models import NAME_MAX_LENGTH, Base, ItemRecord
from items_service.db.session import build_admin_engine, build_engine, build_session_factory
from items_service.errors import BootstrapFailure, NotFound, StoreUnavailable, ValidationError
from items_service.models.schemas import Item

logger = structlog.get_logger(__name__)


def _to_item(record: ItemRecord) -> Item:
    return Item(id=record.id, name=record.name, description=record.description or "")


def _validate_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise ValidationError("name", "Item name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError("name", f"Item name must be at most {NAME_MAX_LENGTH} characters")
    return name


class ItemStore:
    """CRUD access to the `items` table.

    `bootstrap()` must succeed before any other operation is accepted. Each
    operation checks a connection out of the engine pool and returns it before
    the call ends.
    """

    def __init__(self, settings: Settings, engine: Engine | None = None) -> None:
        self._settings = settings
        self._engine = engine or build_engine(settings)
        self._session_factory: sessionmaker[Session] = build_session_factory(self._engine)
        self._bootstrap_lock = threading.Lock()
        self._ready = False

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def ready(self) -> bool:
        return self._ready

    def bootstrap(self) -> None:
        """Ensure the database and the `items` table exist. Safe to call repeatedly."""

        with self._bootstrap_lock:
            try:
                self._ensure_database()
                Base.metadata.create_all(self._engine, checkfirst=True)
                tables = sorted(inspect(self._engine).get_table_names())
            except Exception as exc:
                logger.error("store.bootstrap_failed", error=str(exc))
                raise BootstrapFailure(f"Item store bootstrap failed: {exc}") from exc
            self._ready = True
        logger.info("store.bootstrapped", tables=tables)

    def _ensure_database(self) -> None:
        url = make_url(self._settings.database_url)
        backend = url.get_backend_name()

        if backend == "sqlite":
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            return

        if backend != "postgresql":
            return

        admin_engine = build_admin_engine(self._settings)
        try:
            with admin_engine.connect() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": url.database},
                ).scalar_one_or_none()
                if exists is None:
                    logger.info("store.database_create", database=url.database)
                    quoted = admin_engine.dialect.identifier_preparer.quote(url.database)
                    conn.execute(text(f"CREATE DATABASE {quoted}"))
        finally:
            admin_engine.dispose()

    def dispose(self) -> None:
        self._ready = False
        self._engine.dispose()

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        if not self._ready:
            raise StoreUnavailable(f"{operation}: item store is not bootstrapped")
        try:
            with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Database error while {operation}: {exc}") from exc

    def list(self) -> list[Item]:
        with self._session("fetching items") as db:
            records = db.execute(select(ItemRecord).order_by(ItemRecord.name.asc())).scalars().all()
            return [_to_item(r) for r in records]

    def create(self, name: str | None, description: str | None = None) -> Item:
        name = _validate_name(name)
        with self._session("creating item") as db:
            record = ItemRecord(id=str(uuid.uuid4()), name=name, description=description or "")
            db.add(record)
            db.commit()
            return _to_item(record)

    def get(self, item_id: str) -> Item:
        with self._session("fetching item") as db:
            record = db.get(ItemRecord, item_id)
            if record is None:
                raise NotFound(item_id)
            return _to_item(record)

    def update(self, item_id: str, name: str | None, description: str | None = None) -> Item:
        name = _validate_name(name)
        with self._session("updating item") as db:
            record = db.get(ItemRecord, item_id)
            if record is None:
                raise NotFound(item_id)
            record.name = name
            record.description = description or ""
            db.commit()
            return _to_item(record)

    def delete(self, item_id: str) -> Item:
        with self._session("deleting item") as db:
            record = db.get(ItemRecord, item_id)
            if record is None:
                raise NotFound(item_id)
            previous = _to_item(record)
            db.delete(record)
            db.commit()
            return previous
