# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
from datetime import UTC, datetime

import pytest
from bson import ObjectId
from gridfs.errors import NoFile

# Set test environment before any settings are loaded
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("LOG_JSON", "false")

from app.database import set_database  # noqa: E402
from app.storage import gridfs_provider  # noqa: E402
from app.storage.base import UploadedFile  # noqa: E402
from app.storage.factory import StorageFactory, reset_storage_factory  # noqa: E402
from app.storage.gridfs_provider import GridFSStorageProvider  # noqa: E402
from app.storage.local_provider import LocalStorageProvider  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: tests requiring a live storage backend")


# -----------------------------------------------------------------------------
# In-memory GridFS bucket
# -----------------------------------------------------------------------------


class FakeGridOut:
    def __init__(self, file_id: ObjectId, filename: str, data: bytes, metadata: dict | None):
        self._id = file_id
        self.filename = filename
        self.metadata = metadata
        self.length = len(data)
        self.upload_date = datetime.now(UTC)
        self._data = data

    def read(self) -> bytes:
        return self._data


class FakeGridOutCursor:
    def __init__(self, items: list):
        self._items = items

    def limit(self, n: int) -> "FakeGridOutCursor":
        return FakeGridOutCursor(self._items[:n])

    def __iter__(self):
        return iter(self._items)


class FakeGridFSBucket:
    """Dict-backed stand-in for gridfs.GridFSBucket covering the calls the provider makes."""

    def __init__(self):
        self.files: dict[ObjectId, FakeGridOut] = {}

    def upload_from_stream(self, filename: str, source: bytes, metadata: dict | None = None) -> ObjectId:
        file_id = ObjectId()
        self.files[file_id] = FakeGridOut(file_id, filename, bytes(source), metadata)
        return file_id

    def open_download_stream(self, file_id: ObjectId) -> FakeGridOut:
        if file_id not in self.files:
            raise NoFile(f"no file in gridfs collection with _id {file_id}")
        return self.files[file_id]

    def delete(self, file_id: ObjectId) -> None:
        if file_id not in self.files:
            raise NoFile(f"no file could be deleted because none matched {file_id}")
        del self.files[file_id]

    def find(self, filter: dict) -> FakeGridOutCursor:
        file_id = filter.get("_id")
        return FakeGridOutCursor([self.files[file_id]] if file_id in self.files else [])


@pytest.fixture
def fake_gridfs_bucket(monkeypatch):
    """Route every GridFSStorageProvider to one shared in-memory bucket."""
    bucket = FakeGridFSBucket()
    monkeypatch.setattr(gridfs_provider, "GridFSBucket", lambda database, bucket_name: bucket)
    return bucket


@pytest.fixture
def gridfs_storage(fake_gridfs_bucket):
    return GridFSStorageProvider(database=object(), bucket_name="test_files")


# -----------------------------------------------------------------------------
# Providers, factories, files
# -----------------------------------------------------------------------------


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorageProvider(base_path=str(tmp_path / "storage"))


@pytest.fixture
def local_factory(tmp_path):
    """Factory with only the local provider registered, as the default."""
    base_path = str(tmp_path / "storage")
    factory = StorageFactory(default_provider="local")
    factory.register_provider("local", lambda: LocalStorageProvider(base_path=base_path))
    return factory


@pytest.fixture
def sample_file():
    content = b"export const add = (a: number, b: number) => a + b;\n"
    return UploadedFile(
        filename="math.ts",
        content=content,
        content_type="text/plain",
        size=len(content),
    )


@pytest.fixture(autouse=True)
def reset_storage_state():
    """Keep module-level storage singletons from leaking between tests."""
    yield
    reset_storage_factory()
    set_database(None)
