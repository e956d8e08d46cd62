"""Persistence boundary for generated documents.

The pipeline only ever creates documents; it never reads them back,
updates or deletes them.
"""

import itertools
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GeneratedDocument(Base):
    """A finished documentation run."""
    __tablename__ = 'generated_documents'

    id = Column(Integer, primary_key=True)
    url = Column(String(2048), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    user_id = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


@dataclass
class StoredDocument:
    id: int
    url: str
    title: str
    user_id: Optional[str]
    created_at: datetime


class DocumentStore:
    """Interface: persist a finished document and return its identifier."""

    def create_document(self, url: str, title: str, content: Dict[str, Any],
                        user_id: Optional[str] = None) -> StoredDocument:
        raise NotImplementedError


class SQLDocumentStore(DocumentStore):
    """SQLAlchemy-backed store; SQLite by default."""

    def __init__(self, database_url: str = 'sqlite:///sitescribe.db', engine=None):
        connect_args = {'check_same_thread': False} if database_url.startswith('sqlite') else {}
        self.engine = engine or create_engine(database_url, connect_args=connect_args)
        self.Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    def create_document(self, url: str, title: str, content: Dict[str, Any],
                        user_id: Optional[str] = None) -> StoredDocument:
        with self.Session() as session:
            row = GeneratedDocument(
                url=url,
                title=title[:500],
                content=json.dumps(content, ensure_ascii=False, default=str),
                user_id=user_id,
            )
            session.add(row)
            session.commit()
            logger.info(f"Stored document {row.id} for {url}")
            return StoredDocument(id=row.id, url=row.url, title=row.title,
                                  user_id=row.user_id, created_at=row.created_at)


class InMemoryDocumentStore(DocumentStore):
    """Process-local store for tests and one-off CLI runs."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self.documents: List[Dict[str, Any]] = []

    def create_document(self, url: str, title: str, content: Dict[str, Any],
                        user_id: Optional[str] = None) -> StoredDocument:
        with self._lock:
            doc = StoredDocument(id=next(self._ids), url=url, title=title,
                                 user_id=user_id, created_at=_utcnow())
            self.documents.append({'document': doc, 'content': content})
        return doc
