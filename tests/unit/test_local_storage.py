"""Tests for LocalStorageProvider round-trips and path traversal protection."""

import os
import tempfile

import pytest

from app.storage.base import FileMetadata
from app.storage.exceptions import StorageFileNotFoundError
from app.storage.local_provider import LocalStorageProvider


class TestPathTraversal:
    """Verify _get_path rejects path traversal attempts."""

    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.provider = LocalStorageProvider(base_path=self.tmpdir)

    def test_traversal_with_dotdot(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_path("../../../etc/passwd")

    def test_normal_id_succeeds(self):
        path = self.provider._get_path("a3b8f2d4e1c9")
        assert str(path).startswith(self.tmpdir)
        assert path.parent.name == "a3"

    def test_exists_is_false_for_traversal(self):
        assert self.provider.exists("../../../etc/passwd") is False

    def test_metadata_sidecar_is_not_a_file_id(self, sample_file):
        result = self.provider.upload(sample_file)
        assert self.provider.exists(f"{result.file_id}.meta.json") is False


class TestLocalRoundTrip:
    def test_upload_then_retrieve(self, local_storage, sample_file):
        result = local_storage.upload(sample_file, FileMetadata(user_id="u1"))

        assert result.provider == "local"
        assert result.filename == "math.ts"
        assert result.size == sample_file.size
        assert len(result.file_id) == 32

        retrieved = local_storage.retrieve(result.file_id)
        assert retrieved.buffer == sample_file.content
        assert retrieved.content == sample_file.content.decode("utf-8")
        assert retrieved.from_cache is False

    def test_delete_then_exists_is_false(self, local_storage, sample_file):
        result = local_storage.upload(sample_file)
        assert local_storage.exists(result.file_id) is True

        deleted = local_storage.delete(result.file_id)

        assert deleted.success is True
        assert deleted.message
        assert local_storage.exists(result.file_id) is False

    def test_retrieve_missing_raises_not_found(self, local_storage):
        with pytest.raises(StorageFileNotFoundError) as exc_info:
            local_storage.retrieve("0" * 32)
        assert exc_info.value.provider == "local"
        assert exc_info.value.operation == "retrieve"

    def test_delete_missing_raises(self, local_storage):
        with pytest.raises(StorageFileNotFoundError):
            local_storage.delete("0" * 32)

    def test_metadata_is_stamped_and_caller_fields_kept(self, local_storage, sample_file):
        metadata = FileMetadata(user_id="u1", language="typescript", extra={"ticket": "ABC-1"})
        result = local_storage.upload(sample_file, metadata)

        meta = local_storage.get_metadata(result.file_id)

        assert meta is not None
        assert meta.filename == "math.ts"
        assert meta.size == sample_file.size
        assert meta.metadata.user_id == "u1"
        assert meta.metadata.language == "typescript"
        assert meta.metadata.mime_type == "text/plain"
        assert meta.metadata.extra["ticket"] == "ABC-1"
        assert meta.metadata.extra["original_size"] == sample_file.size
        assert meta.uploaded_at is not None

    def test_get_metadata_missing_returns_none(self, local_storage):
        assert local_storage.get_metadata("does-not-exist") is None
