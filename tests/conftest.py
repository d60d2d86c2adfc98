"""
Pytest configuration and shared fixtures for Recap tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing the app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_BUCKET"] = "uploads"
os.environ["EXTERNAL_HOSTNAME"] = "localhost"
os.environ["SESSION_SECRET"] = "test_secret_key_for_testing_must_be_at_least_32_characters_long"

from recap.database import Base, enable_sqlite_foreign_keys  # noqa: E402
from recap.main import app as fastapi_app  # noqa: E402
from recap.models import (  # noqa: E402
    DocumentText,
    Folder,
    KeyPoint,
    Summary,
    Transcription,
    Upload,
    UploadFolder,
)
from recap.store.objects import LocalObjectStore  # noqa: E402
from recap.store.records import RecordStore  # noqa: E402

OWNER = "user-1"
OTHER_OWNER = "user-2"
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _make_session(foreign_keys: bool):
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if foreign_keys:
        enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return engine, TestingSessionLocal()


@pytest.fixture(scope="function")
def db_session():
    """Fresh in-memory database with foreign keys (and so ON DELETE CASCADE) enabled."""
    engine, session = _make_session(foreign_keys=True)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session_no_fk():
    """In-memory database where SQLite ignores foreign keys, i.e. no cascade support."""
    engine, session = _make_session(foreign_keys=False)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db_session) -> RecordStore:
    return RecordStore(db_session)


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "storage")


def _at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


class RowFactory:
    """Inserts rows directly; ``minutes`` offsets ``created_at`` from BASE_TIME."""

    def __init__(self, session):
        self.session = session

    def _add(self, row):
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def upload(
        self,
        owner: str = OWNER,
        file_type: str = "audio",
        file_name: Optional[str] = None,
        minutes: int = 0,
        **kwargs,
    ) -> Upload:
        file_name = file_name or ("talk.mp3" if file_type == "audio" else "notes.pdf")
        kwargs.setdefault(
            "file_url",
            f"https://project.supabase.co/storage/v1/object/public/uploads/{owner}/{file_name}",
        )
        kwargs.setdefault("file_size", 2048)
        kwargs.setdefault("status", "completed")
        return self._add(
            Upload(user_id=owner, file_name=file_name, file_type=file_type, created_at=_at(minutes), **kwargs)
        )

    def transcription(self, upload: Upload, text: str, minutes: int = 0, **kwargs) -> Transcription:
        return self._add(
            Transcription(upload_id=upload.id, transcription_text=text, created_at=_at(minutes), **kwargs)
        )

    def document_text(self, upload: Upload, text: str, minutes: int = 0) -> DocumentText:
        return self._add(DocumentText(upload_id=upload.id, extracted_text=text, created_at=_at(minutes)))

    def summary(self, upload: Upload, text: str, minutes: int = 0) -> Summary:
        return self._add(Summary(upload_id=upload.id, summary_text=text, created_at=_at(minutes)))

    def key_point(self, upload: Upload, text: str, importance: int, minutes: int = 0) -> KeyPoint:
        return self._add(
            KeyPoint(upload_id=upload.id, point_text=text, importance_level=importance, created_at=_at(minutes))
        )

    def folder(self, owner: str = OWNER, name: str = "Lectures", minutes: int = 0, **kwargs) -> Folder:
        return self._add(Folder(user_id=owner, name=name, created_at=_at(minutes), **kwargs))

    def link(self, upload: Upload, folder: Folder) -> UploadFolder:
        return self._add(UploadFolder(upload_id=upload.id, folder_id=folder.id))


@pytest.fixture
def make(db_session) -> RowFactory:
    """``make.upload(...)``, ``make.folder(...)``, ``make.link(u, f)`` and friends."""
    return RowFactory(db_session)


@pytest.fixture
def make_no_fk(db_session_no_fk) -> RowFactory:
    return RowFactory(db_session_no_fk)


@pytest.fixture(scope="function")
def client(db_session, object_store) -> TestClient:
    """Test client signed in as OWNER, with a fresh database and local object store."""
    from recap.auth import get_owner_id
    from recap.database import get_db
    from recap.store.objects import get_object_store

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_object_store] = lambda: object_store
    fastapi_app.dependency_overrides[get_owner_id] = lambda: OWNER

    # Use base_url to satisfy TrustedHostMiddleware
    with TestClient(fastapi_app, base_url="http://localhost") as test_client:
        yield test_client

    fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def anonymous_client(db_session) -> TestClient:
    """Test client without a session user."""
    from recap.database import get_db

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db

    with TestClient(fastapi_app, base_url="http://localhost") as test_client:
        yield test_client

    fastapi_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_playback_coordinator():
    """The coordinator is process-wide; never let one test see another's instance."""
    from recap.playback import coordinator

    coordinator.reset_coordinator()
    yield
    coordinator.reset_coordinator()


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual functions/methods")
    config.addinivalue_line("markers", "integration: Integration tests for API endpoints and workflows")
    config.addinivalue_line("markers", "requires_db: Tests requiring database")
