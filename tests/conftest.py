"""Shared test fixtures for the OpenDesk test suite.

Tests run against a throwaway SQLite database whose rows are wiped before
every test. The object store is replaced by ``FakeStorage``, an in-memory
stand-in installed through the ``get_storage`` dependency override, so
MinIO is never contacted.
"""

import os
import tempfile

_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "opendesk_test.db")
if os.path.exists(_TEST_DB_PATH):
    os.remove(_TEST_DB_PATH)

# Configure the app before any opendesk import reads settings.
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_PATH}"
os.environ["LOG_FORMAT"] = "text"
os.environ["ENVIRONMENT"] = "development"

import io
from typing import Dict, Iterator, Optional

import pytest
from fastapi.testclient import TestClient

from opendesk.database import Base, SessionLocal, engine, get_db, init_schema
from opendesk.exceptions import StorageError
from opendesk.main import app
from opendesk.middleware.request_context import reset_rate_limits
from opendesk.models import User
from opendesk.services.storage_service import get_storage

init_schema()

DEFAULT_PASSWORD = "correct-horse-battery"


class FakeStorage:
    """In-memory object store with the StorageService interface."""

    def __init__(self):
        self.bucket = "test-bucket"
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.fail_presign: set = set()
        self.fail_remove: set = set()
        self.removed: list = []

    def ensure_bucket(self) -> None:
        pass

    def _presign(self, method: str, key: str) -> str:
        if key in self.fail_presign:
            raise StorageError("Failed to generate presigned URL")
        return f"http://storage.test/{self.bucket}/{key}?method={method}&X-Amz-Signature=fake"

    def presigned_put_url(self, key: str) -> str:
        return self._presign("PUT", key)

    def presigned_get_url(self, key: str) -> str:
        return self._presign("GET", key)

    def put_object(self, key: str, data, content_type: Optional[str] = None) -> None:
        payload = bytes(data) if isinstance(data, (bytes, bytearray)) else data.read()
        self.objects[key] = payload
        self.content_types[key] = content_type or "application/octet-stream"

    def get_object_stream(self, key: str) -> Iterator[bytes]:
        if key not in self.objects:
            raise StorageError("Failed to read object")
        stream = io.BytesIO(self.objects[key])
        return iter(lambda: stream.read(4), b"")

    def stat_object(self, key: str) -> int:
        if key not in self.objects:
            raise StorageError("Object not found in storage")
        return len(self.objects[key])

    def remove_object(self, key: str) -> None:
        if key in self.fail_remove:
            raise StorageError("Failed to delete object")
        self.objects.pop(key, None)
        self.removed.append(key)


@pytest.fixture(autouse=True)
def _clean_tables():
    """Delete all rows before each test.

    Runs before the test (not after) so failures leave data available for
    debugging.
    """
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    reset_rate_limits()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def client(db, storage):
    """TestClient with the database and object store dependencies overridden."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register_and_login(client: TestClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Register an account and return bearer headers for it."""
    resp = client.post("/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture()
def auth_headers(client) -> dict:
    """Headers for alice, the first account (and therefore admin)."""
    return register_and_login(client, "alice@example.com")


@pytest.fixture()
def other_headers(client, auth_headers) -> dict:
    """Headers for bob, a second non-admin account."""
    return register_and_login(client, "bob@example.com")


def make_user(db, email: str = "owner@example.com", is_admin: bool = False) -> User:
    """Insert a user row directly, skipping password hashing."""
    user = User(email=email, password_hash="unused", is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_folder(client: TestClient, headers: dict, name: str, parent_id: Optional[str] = None) -> dict:
    resp = client.post("/drive/folders", json={"name": name, "parentId": parent_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_doc(client: TestClient, headers: dict, title: str, folder_id: Optional[str] = None) -> dict:
    resp = client.post("/docs", json={"title": title, "folderId": folder_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def upload_file(
    client: TestClient,
    headers: dict,
    name: str,
    data: bytes = b"hello world",
    folder_id: Optional[str] = None,
    mime_type: str = "text/plain",
) -> dict:
    """Run the init + upload flow and return the stored file."""
    resp = client.post(
        "/drive/upload/init",
        json={"name": name, "size": len(data), "mimeType": mime_type, "folderId": folder_id},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    file_id = resp.json()["file"]["id"]
    resp = client.post(
        f"/drive/upload/{file_id}",
        files={"file": (name, data, mime_type)},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()
