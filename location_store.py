"""
Durable, bounded set of saved city labels backed by SQLAlchemy.

The store is constructed explicitly and must be opened before use:

    store = LocationStore("sqlite:///weather.db").open()
    store.save("Halifax, Nova Scotia, Canada")
    store.close()
"""
import logging
import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from errors import CapacityExceeded, DuplicateLabel, EmptyLabel, LabelError
from models import Base, SavedLocation, SaveResult

logger = logging.getLogger(__name__)

MAX_SAVED_LOCATIONS = 5


class LocationStore:
    def __init__(self, database_url: str, capacity: int = MAX_SAVED_LOCATIONS):
        self.database_url = database_url
        self.capacity = capacity
        self._engine = None
        self._session_factory = None
        # Single writer: the capacity and duplicate checks must see the row count the insert commits against.
        self._write_lock = threading.Lock()

    def open(self) -> "LocationStore":
        if self._engine is not None:
            return self
        self._engine = create_engine(self.database_url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(bind=self._engine, autoflush=False, expire_on_commit=False)
        logger.info("Location store opened: %s", self.database_url.split("?")[0])
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Location store closed")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        """Commits on success, rolls back on error."""
        if self._session_factory is None:
            raise RuntimeError("Location store is not open. Call open() first.")
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Most recently saved first.
    def list(self) -> list[str]:
        with self._session() as session:
            rows = session.execute(
                select(SavedLocation.label).order_by(SavedLocation.id.desc())
            ).scalars().all()
        return list(rows)

    def count(self) -> int:
        with self._session() as session:
            return session.execute(select(func.count(SavedLocation.id))).scalar_one()

    def can_save(self) -> bool:
        return self.count() < self.capacity

    def save(self, label: str) -> SaveResult:
        trimmed = (label or "").strip()
        try:
            with self._write_lock:
                self._insert(trimmed)
        except LabelError as e:
            logger.info("Save rejected for %r: %s", trimmed, e.kind)
            return SaveResult(ok=False, message=e.message, reason=e.kind)
        logger.info("Saved location %r", trimmed)
        return SaveResult(ok=True, message="Saved!")

    def _insert(self, label: str) -> None:
        if not label:
            raise EmptyLabel()
        try:
            with self._session() as session:
                existing = session.execute(select(func.count(SavedLocation.id))).scalar_one()
                if existing >= self.capacity:
                    raise CapacityExceeded(f"You already saved {self.capacity} cities.")
                taken = session.execute(
                    select(SavedLocation.id).where(SavedLocation.label == label)
                ).first()
                if taken is not None:
                    raise DuplicateLabel()
                session.add(SavedLocation(label=label))
        except IntegrityError:
            # Another process committed the same label between our check and insert.
            raise DuplicateLabel()

    def remove(self, label: str) -> None:
        trimmed = (label or "").strip()
        with self._write_lock, self._session() as session:
            deleted = session.execute(
                delete(SavedLocation).where(SavedLocation.label == trimmed)
            ).rowcount
        if deleted:
            logger.info("Removed location %r", trimmed)
        else:
            logger.debug("Remove of absent location %r ignored", trimmed)
