"""
Unit tests for storage error wrapping.
"""

import pytest

from app.storage.error_handling import storage_operation, with_error_handling
from app.storage.exceptions import StorageError, StorageFileNotFoundError


class TestWithErrorHandling:
    def test_success_passes_result_through(self):
        wrapped = with_error_handling(lambda x: x * 2, "gridfs", "upload")
        assert wrapped(21) == 42

    def test_failure_is_wrapped_with_context(self):
        def boom():
            raise ConnectionError("socket closed")

        wrapped = with_error_handling(boom, "gridfs", "upload")

        with pytest.raises(StorageError) as exc_info:
            wrapped()

        err = exc_info.value
        assert str(err) == "upload failed in gridfs: socket closed"
        assert err.provider == "gridfs"
        assert err.operation == "upload"
        assert isinstance(err.cause, ConnectionError)
        assert err.__cause__ is err.cause

    def test_storage_errors_are_not_rewrapped(self):
        def missing():
            raise StorageFileNotFoundError("abc", "s3")

        wrapped = with_error_handling(missing, "s3", "retrieve")

        with pytest.raises(StorageFileNotFoundError) as exc_info:
            wrapped()
        assert str(exc_info.value) == "File not found in s3: abc"

    @pytest.mark.asyncio
    async def test_async_functions_stay_async(self):
        async def fail():
            raise ValueError("bad bytes")

        wrapped = with_error_handling(fail, "supabase", "retrieve")

        with pytest.raises(StorageError, match="retrieve failed in supabase: bad bytes"):
            await wrapped()

    @pytest.mark.asyncio
    async def test_async_success(self):
        async def ok():
            return "done"

        assert await with_error_handling(ok, "supabase", "delete")() == "done"


class TestStorageOperationDecorator:
    def test_reads_provider_name_from_instance(self):
        class Broken:
            name = "local"

            @storage_operation("delete")
            def delete(self, file_id):
                raise OSError(f"read-only filesystem: {file_id}")

        with pytest.raises(StorageError) as exc_info:
            Broken().delete("abc")

        assert exc_info.value.provider == "local"
        assert exc_info.value.operation == "delete"
        assert str(exc_info.value) == "delete failed in local: read-only filesystem: abc"

    def test_to_dict_flattens_for_serialization(self):
        err = StorageError("upload failed in s3: denied", provider="s3", operation="upload")
        assert err.to_dict() == {
            "detail": "upload failed in s3: denied",
            "provider": "s3",
            "operation": "upload",
        }
