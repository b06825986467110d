"""
Pytest configuration and shared fixtures for DocShelf tests

Provides:
- In-memory SQLite engine and session per test
- In-memory storage backend with failure switches
- PDF collaborator stub
- Users, collections and documents factories
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from io import BytesIO
from typing import Generator, List, Optional
from uuid import uuid4, UUID
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from docshelf.database import Base
from docshelf.models import User, Collection, Document, DocumentTag
from docshelf.services.pdf_service import PDFError, PDFService
from docshelf.storage.base import StorageBackend

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
MB = 1024 * 1024
PDF_BYTES = b"%PDF-1.4\n% test fixture\n"


class MemoryStorage(StorageBackend):
    """Dict-backed storage backend; flip the fail_* switches to simulate outages"""

    def __init__(self):
        self.files = {}
        self.fail_save = False
        self.fail_delete = False
        self.fail_url_for = set()
        self.deleted: List[str] = []

    def save(self, file, user_id, filename, content_type=None, folder="documents"):
        if self.fail_save:
            raise ConnectionError("storage unavailable")
        path = self.build_path(user_id, folder, filename)
        self.files[path] = file if isinstance(file, bytes) else file.read()
        return path

    def get_url(self, storage_path, user_id, expires_in=3600):
        if storage_path in self.fail_url_for or not self.owns(storage_path, user_id):
            raise PermissionError("cannot sign")
        return f"https://storage.test/{storage_path}?expires={expires_in}"

    def read(self, storage_path, user_id):
        if storage_path not in self.files:
            raise FileNotFoundError(storage_path)
        return self.files[storage_path]

    def delete(self, storage_path, user_id):
        if self.fail_delete:
            raise ConnectionError("storage unavailable")
        self.deleted.append(storage_path)
        self.files.pop(storage_path, None)

    def exists(self, storage_path, user_id):
        return storage_path in self.files


class StubPDFService(PDFService):
    """PDFService with canned answers; `invalid=True` makes every read fail"""

    def __init__(self, pages: int = 3, text: str = "", invalid: bool = False):
        self.pages = pages
        self.text = text
        self.invalid = invalid

    def page_count(self, content):
        if self.invalid:
            raise PDFError("broken")
        return self.pages

    def extract_text(self, content):
        if self.invalid:
            raise PDFError("broken")
        return self.text

    def render_thumbnail(self, content, width=300):
        if self.invalid:
            raise PDFError("broken")
        return b"\x89PNG thumbnail"


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def pdf_service() -> StubPDFService:
    return StubPDFService()


@pytest.fixture
def real_pdf_bytes() -> bytes:
    """A one-page blank PDF written by pdfium itself"""
    import pypdfium2 as pdfium

    pdf = pdfium.PdfDocument.new()
    pdf.new_page(200, 300)
    buffer = BytesIO()
    pdf.save(buffer)
    pdf.close()
    return buffer.getvalue()


def _make_user(db_session, email: str) -> User:
    user = User(
        id=uuid4(),
        email=email,
        name=email.split("@")[0],
        hashed_password="$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/LewY5GyWuL7l2JhSa",
        is_active=True
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_user(db_session) -> User:
    return _make_user(db_session, "reader@example.com")


@pytest.fixture
def other_user(db_session) -> User:
    return _make_user(db_session, "someone.else@example.com")


@pytest.fixture
def make_collection(db_session, test_user):
    """Factory: make_collection("Name", parent=None, order=0, user=None)"""

    def _make(name: str, parent: Optional[Collection] = None, order: int = 0, user: Optional[User] = None):
        collection = Collection(
            id=uuid4(),
            user_id=(user or test_user).id,
            name=name,
            parent_id=parent.id if parent else None,
            order=order,
        )
        db_session.add(collection)
        db_session.commit()
        db_session.refresh(collection)
        return collection

    return _make


@pytest.fixture
def make_document(db_session, test_user):
    """
    Factory for stored documents

    make_document("name.pdf", size=..., pages=..., tags=[...], collection=...,
                  created_at=..., deleted=False, user=None, opened_at=None)
    """
    counter = {"n": 0}

    def _make(
        original_name: str = "document.pdf",
        size: int = MB,
        pages: int = 10,
        tags: Optional[List[str]] = None,
        collection: Optional[Collection] = None,
        created_at: Optional[datetime] = None,
        deleted: bool = False,
        user: Optional[User] = None,
        opened_at: Optional[datetime] = None,
        filename: Optional[str] = None,
    ) -> Document:
        counter["n"] += 1
        owner = user or test_user
        stored_name = filename or f"17000000000{counter['n']:02d}-abc.pdf"
        document = Document(
            id=uuid4(),
            user_id=owner.id,
            collection_id=collection.id if collection else None,
            filename=stored_name,
            original_name=original_name,
            storage_path=f"users/{owner.id}/documents/{stored_name}",
            file_size=size,
            page_count=pages,
            is_deleted=deleted,
            open_count=1 if opened_at else 0,
            last_opened_at=opened_at,
            created_at=created_at or BASE_TIME + timedelta(minutes=counter["n"]),
        )
        for tag in tags or []:
            document.tag_rows.append(DocumentTag(name=tag))
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make


@pytest.fixture
def llm_service():
    """LLM collaborator double; set `complete` side effects per test"""
    from unittest.mock import AsyncMock, Mock

    service = Mock()
    service.complete = AsyncMock(return_value="Stub reply")
    return service


@pytest.fixture
def dispatched() -> List[UUID]:
    """Document ids handed to the enrichment queue during a test"""
    return []


@pytest.fixture
def dispatched_ocr() -> List[UUID]:
    """Document ids handed to the OCR queue during a test"""
    return []


@pytest.fixture
def client(db_session, test_user, storage, pdf_service, llm_service, dispatched, dispatched_ocr):
    """TestClient with database, auth and collaborators overridden"""
    from fastapi.testclient import TestClient
    from docshelf.main import app
    from docshelf.api.deps import (
        get_current_user,
        get_db,
        get_enrichment_dispatcher,
        get_llm_service,
        get_ocr_dispatcher,
        get_pdf_service,
        get_storage,
    )

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: test_user
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_pdf_service] = lambda: pdf_service
    app.dependency_overrides[get_llm_service] = lambda: llm_service
    app.dependency_overrides[get_enrichment_dispatcher] = lambda: dispatched.append
    app.dependency_overrides[get_ocr_dispatcher] = lambda: dispatched_ocr.append

    yield TestClient(app)

    app.dependency_overrides.clear()
