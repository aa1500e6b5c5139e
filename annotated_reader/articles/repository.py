from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .storage import LocalArticleStorage

logger = logging.getLogger(__name__)

Base = declarative_base()

SNAPSHOT_ROW_ID = "app"


class SnapshotModel(Base):
    __tablename__ = "snapshots"
    id = Column(String, primary_key=True)
    payload = Column(Text)
    updated_at = Column(DateTime)


class SnapshotRepository:
    """
    Abstract persistence boundary for the application snapshot. The payload
    is an opaque JSON string; (de)serialization belongs to the caller.
    """

    def load(self) -> Optional[str]:
        raise NotImplementedError

    def save(self, payload: str) -> None:
        raise NotImplementedError


class InMemorySnapshotRepository(SnapshotRepository):
    """
    Keeps the payload in memory and records every write. Used in tests and
    throwaway runs.
    """

    def __init__(self, payload: Optional[str] = None):
        self.payload = payload
        self.writes = []

    def load(self) -> Optional[str]:
        return self.payload

    def save(self, payload: str) -> None:
        self.payload = payload
        self.writes.append(payload)


class JsonFileSnapshotRepository(SnapshotRepository):
    """
    Stores the payload as `data.json` under the storage root. Writes go to a
    temporary file first and are renamed into place.
    """

    def __init__(self, storage: LocalArticleStorage):
        self.storage = storage

    def load(self) -> Optional[str]:
        path = self.storage.paths.data_file_path()
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def save(self, payload: str) -> None:
        self.storage.ensure_root()
        target = self.storage.paths.data_file_path()
        tmp = target.with_name(f".{target.name}.tmp")
        tmp.write_text(payload, encoding="utf-8")
        os.replace(tmp, target)
        logger.debug("Wrote snapshot to %s (%d bytes)", target, len(payload))


class SqlAlchemySnapshotRepository(SnapshotRepository):
    """
    SQL-backed snapshot store using SQLAlchemy. Works with SQLite/Postgres URLs.
    The whole snapshot lives in a single row.
    """

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url, future=True)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def _session(self) -> Session:
        return self.SessionLocal()

    def load(self) -> Optional[str]:
        with self._session() as session:
            model = session.get(SnapshotModel, SNAPSHOT_ROW_ID)
            if not model:
                return None
            return model.payload

    def save(self, payload: str) -> None:
        with self._session() as session:
            model = SnapshotModel(
                id=SNAPSHOT_ROW_ID,
                payload=payload,
                updated_at=datetime.utcnow(),
            )
            session.merge(model)
            session.commit()
