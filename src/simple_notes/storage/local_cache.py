"""Fast local key/value cache backed by SQLite.

Holds a JSON snapshot of the note store that is rewritten synchronously on
every mutation, so a crash between an edit and the next successful disk
mirror loses nothing. On startup it is read first; the disk mirror, when
present and decodable, overrides it.
"""
import datetime
import logging
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from simple_notes.config import CACHE_KEY, config
from simple_notes.exceptions import DecodeError, ValidationError
from simple_notes.models.schema import NoteStore
from simple_notes.storage import codec

logger = logging.getLogger(__name__)

Base = declarative_base()


class CacheEntry(Base):
    """One cached value."""
    __tablename__ = "cache_entries"
    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<CacheEntry(key='{self.key}', size={len(self.value or '')})>"


def create_cache_engine(db_url: Optional[str] = None) -> Engine:
    """Create the cache engine and its table.

    WAL journaling keeps a crash mid-write from corrupting earlier entries.
    """
    engine = create_engine(db_url or config.get_cache_url())

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


class LocalCache:
    """Key/value cache with helpers for the note store snapshot.

    Args:
        db_url: SQLAlchemy URL. Defaults to the configured cache file.
        engine: Pre-built engine; takes precedence over ``db_url``.
    """

    def __init__(
        self,
        db_url: Optional[str] = None,
        engine: Optional[Engine] = None,
    ) -> None:
        self.engine = engine or create_cache_engine(db_url)
        self.session_factory = sessionmaker(bind=self.engine)

    def get(self, key: str) -> Optional[str]:
        with self.session_factory() as session:
            entry = session.get(CacheEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as session:
            session.merge(
                CacheEntry(key=key, value=value, updated_at=datetime.datetime.now())
            )
            session.commit()

    def delete(self, key: str) -> None:
        with self.session_factory() as session:
            entry = session.get(CacheEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()

    def save_store(self, store: NoteStore) -> bool:
        """Cache a snapshot of the store. Best effort, never raises.

        Returns:
            True if the snapshot was written.
        """
        try:
            self.set(CACHE_KEY, codec.encode(store).decode("utf-8"))
            return True
        except (SQLAlchemyError, ValidationError) as e:
            logger.error(f"Failed to write local cache: {e}")
            return False

    def load_store(self) -> Optional[NoteStore]:
        """Read the cached store snapshot. Best effort, never raises.

        Returns:
            The cached store, or None if absent, unreadable or corrupt.
        """
        try:
            saved = self.get(CACHE_KEY)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read local cache: {e}")
            return None
        if not saved:
            return None
        try:
            store = codec.decode(saved.encode("utf-8"))
        except DecodeError as e:
            logger.error(f"Failed to load cached data: {e}")
            return None
        logger.info("Loaded data from local cache")
        return store

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
