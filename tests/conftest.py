"""Shared fixtures: in-memory database, temp blob store, fake index."""
import threading
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bulletin.database import Base, enable_sqlite_foreign_keys
from bulletin.models import Announcement, Attachment
from bulletin.services.blob_store import LocalBlobStore
from bulletin.services.index_client import IndexOutcome, IndexResult, config_missing


class FakeIndexClient:
    """
    In-memory stand-in for IndexClient. `documents` is what the index holds;
    `calls` records (method, document_id) in order.
    """

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.documents: dict[str, tuple[str, str]] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.fail_next: dict[str, IndexOutcome] = {}
        self.failing_deletes: set[str] = set()
        self._seq = 0
        self._lock = threading.Lock()

    def _take_failure(self, method: str) -> IndexResult | None:
        outcome = self.fail_next.pop(method, None)
        if outcome is None:
            return None
        return IndexResult(outcome, error=f"{method} failed ({outcome.value})")

    def create(self, title, text):
        self.calls.append(("create", None))
        if not self.configured:
            return config_missing()
        failed = self._take_failure("create")
        if failed:
            return failed
        with self._lock:
            self._seq += 1
            document_id = f"doc-{self._seq}"
        self.documents[document_id] = (title, text)
        return IndexResult(IndexOutcome.OK, document_id=document_id)

    def update(self, document_id, title, text):
        self.calls.append(("update", document_id))
        if not self.configured:
            return config_missing()
        failed = self._take_failure("update")
        if failed:
            return failed
        if document_id not in self.documents:
            return IndexResult(IndexOutcome.NOT_FOUND, status_code=404, error="update failed (404)")
        self.documents[document_id] = (title, text)
        return IndexResult(IndexOutcome.OK, document_id=document_id)

    def delete(self, document_id):
        self.calls.append(("delete", document_id))
        if not self.configured:
            return config_missing()
        if document_id in self.failing_deletes:
            return IndexResult(IndexOutcome.TRANSIENT, error="delete timed out")
        self.documents.pop(document_id, None)
        return IndexResult(IndexOutcome.OK, document_id=document_id)

    def list_document_ids(self, page_size=100):
        self.calls.append(("list", None))
        if not self.configured:
            return config_missing()
        return IndexResult(IndexOutcome.OK, document_ids=list(self.documents))

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "storage")


@pytest.fixture
def index():
    return FakeIndexClient()


@pytest.fixture
def make_announcement(db):
    def _make(**fields) -> Announcement:
        values = {
            "title": "Merit Scholarship",
            "category": "Scholarship",
            "summary": "<p>Up to <b>50,000</b> per year</p>",
            "application_end_date": date(2026, 12, 31),
            "is_active": True,
        }
        values.update(fields)
        item = Announcement(**values)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make


@pytest.fixture
def add_attachment(db, blob_store):
    """Store a real blob and its row at the given display order."""

    def _add(announcement: Announcement, file_name: str, data: bytes = b"content", order: int = 0) -> Attachment:
        stored = blob_store.put(data, file_name)
        att = Attachment(
            announcement_id=announcement.id,
            file_name=file_name,
            stored_file_path=stored.path,
            file_size=stored.size,
            mime_type=stored.mime_type,
            display_order=order,
        )
        db.add(att)
        db.commit()
        db.refresh(att)
        return att

    return _add
