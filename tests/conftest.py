# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EVENT_ID", "test-event")
os.environ.setdefault("CRON_SECRET", "cron-test-secret")

from event_gift.api.v1 import dependencies as api_dependencies
from event_gift.core.settings import Settings, settings
from event_gift.db.session import Base
from event_gift.db.session import get_db as app_get_session
from event_gift.db.time import utcnow
from event_gift.main import app as fastapi_app
from event_gift.models import AdminUser, EventSettings, Gallery, MediaItem, Post
from event_gift.models.admin_user import ROLE_CLIENT, ROLE_MASTER
from event_gift.models.post import KIND_BLESSING, STATUS_APPROVED
from event_gift.services.admin_access import create_admin_token
from event_gift.services.drive import BackupUploadError, UploadedFile, drive_preview_url
from event_gift.services.event_settings import get_event_settings
from event_gift.services.moderation import (
    Classification,
    ModerationProviderError,
    SoftModerationGate,
)
from event_gift.services.storage import StorageError

TEST_DB_URL = "sqlite://"
DEVICE_A = "device-aaaa"
DEVICE_B = "device-bbbb"


class FakeModerationProvider:
    """Flags any text containing one of ``flag_words``; can be told to fail."""

    name = "fake"

    def __init__(self, flag_words: tuple[str, ...] = ("hate",), fail: bool = False) -> None:
        self.flag_words = flag_words
        self.fail = fail
        self.calls: list[str] = []

    async def classify(self, text: str) -> Classification:
        self.calls.append(text)
        if self.fail:
            raise ModerationProviderError("provider unavailable")
        flagged = any(word in text.lower() for word in self.flag_words)
        return Classification(flagged=flagged, raw={"results": [{"flagged": flagged}]})


class InMemoryStorage:
    """Object storage double keeping blobs in a dict."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.fail_remove = False

    def read(self, path: str) -> bytes:
        try:
            return self.objects[path]
        except KeyError as exc:
            raise StorageError(f"missing object {path}") from exc

    def remove(self, path: str) -> None:
        if self.fail_remove:
            raise StorageError("storage offline")
        self.objects.pop(path, None)
        self.removed.append(path)


class FakeUploader:
    """Backup uploader double recording every upload."""

    def __init__(self, fail_names: tuple[str, ...] = ()) -> None:
        self.fail_names = fail_names
        self.uploads: list[tuple[str, str, bytes]] = []

    def upload(self, data: bytes, filename: str, mime_type: str) -> UploadedFile:
        if filename in self.fail_names:
            raise BackupUploadError(f"quota exceeded for {filename}")
        self.uploads.append((filename, mime_type, data))
        file_id = f"drive-{len(self.uploads)}"
        return UploadedFile(file_id=file_id, preview_url=drive_preview_url(file_id))


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def moderation_provider() -> FakeModerationProvider:
    return FakeModerationProvider()


@pytest.fixture()
def moderation_gate(moderation_provider: FakeModerationProvider) -> SoftModerationGate:
    return SoftModerationGate(moderation_provider)


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture(autouse=True)
def override_external_services(
    app: FastAPI,
    moderation_gate: SoftModerationGate,
    storage: InMemoryStorage,
    uploader: FakeUploader,
) -> Iterator[None]:
    """Keep every request away from the network and the real filesystem."""
    overrides: dict[Callable[..., Any], Callable[[], Any]] = {
        api_dependencies.get_moderation_gate_dep: lambda: moderation_gate,
        api_dependencies.get_storage_dep: lambda: storage,
        api_dependencies.get_backup_uploader_dep: lambda: uploader,
    }
    for dependency, override in overrides.items():
        app.dependency_overrides[dependency] = override

    try:
        yield
    finally:
        for dependency in list(overrides):
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide the Settings instance the application is running with."""
    return settings


@pytest.fixture()
def event_id() -> str:
    return settings.event_id


@pytest.fixture()
def event_settings(db_session: Session, event_id: str) -> EventSettings:
    """Settings row for the test event, created with defaults."""
    return get_event_settings(db_session, event_id)


@pytest.fixture()
def device_headers() -> dict[str, str]:
    return {"X-Device-Id": DEVICE_A}


@pytest.fixture()
def other_device_headers() -> dict[str, str]:
    return {"X-Device-Id": DEVICE_B}


@pytest.fixture()
def make_post(db_session: Session, event_id: str) -> Callable[..., Post]:
    """Factory persisting a post with sensible defaults."""

    def _make_post(**overrides: Any) -> Post:
        now = utcnow()
        values: dict[str, Any] = {
            "event_id": event_id,
            "kind": KIND_BLESSING,
            "author_name": "Dana",
            "text": "Mazal tov!",
            "status": STATUS_APPROVED,
            "device_id": DEVICE_A,
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        post = Post(**values)
        db_session.add(post)
        db_session.flush()
        db_session.refresh(post)
        return post

    return _make_post


@pytest.fixture()
def make_media_item(db_session: Session, event_id: str) -> Callable[..., MediaItem]:
    """Factory persisting a media item created ``age`` ago."""
    counter = iter(range(1, 10_000))

    def _make_media_item(
        *,
        age: timedelta = timedelta(0),
        now: datetime | None = None,
        **overrides: Any,
    ) -> MediaItem:
        created = (now or utcnow()) - age
        values: dict[str, Any] = {
            "event_id": event_id,
            "kind": "gallery",
            "storage_path": f"uploads/photo-{next(counter)}.jpg",
            "mime_type": "image/jpeg",
            "created_at": created,
        }
        values.update(overrides)
        item = MediaItem(**values)
        db_session.add(item)
        db_session.flush()
        db_session.refresh(item)
        return item

    return _make_media_item


@pytest.fixture()
def make_gallery(db_session: Session, event_id: str) -> Callable[..., Gallery]:
    """Factory persisting a gallery that accepts uploads pending review."""

    def _make_gallery(**overrides: Any) -> Gallery:
        values: dict[str, Any] = {
            "event_id": event_id,
            "title": "Dance floor",
            "upload_enabled": True,
            "require_approval": True,
            "auto_approve_until": None,
        }
        values.update(overrides)
        gallery = Gallery(**values)
        db_session.add(gallery)
        db_session.flush()
        db_session.refresh(gallery)
        return gallery

    return _make_gallery


def _make_admin(
    db_session: Session,
    email: str,
    role: str,
    permissions: dict[str, bool] | None = None,
) -> AdminUser:
    admin = AdminUser(
        event_id=settings.event_id,
        email=email,
        role=role,
        is_active=True,
        permissions=permissions or {},
    )
    db_session.add(admin)
    db_session.flush()
    db_session.refresh(admin)
    return admin


@pytest.fixture()
def master_admin(db_session: Session) -> AdminUser:
    return _make_admin(db_session, "owner@example.com", ROLE_MASTER)


@pytest.fixture()
def client_admin(db_session: Session) -> AdminUser:
    """Client admin allowed to moderate posts only."""
    return _make_admin(db_session, "helper@example.com", ROLE_CLIENT, {"posts.manage": True})


@pytest.fixture()
def master_headers(master_admin: AdminUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token(master_admin.email)}"}


@pytest.fixture()
def client_admin_headers(client_admin: AdminUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token(client_admin.email)}"}
