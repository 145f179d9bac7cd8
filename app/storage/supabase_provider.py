"""
Supabase Storage provider implementation using supabase-py.

File ids are object paths of the form {user_id}/{epoch_ms}-{filename}.
Supabase has no per-object metadata endpoint, so get_metadata() rebuilds
size and timestamp from a listing of the parent folder.
"""

import logging
from datetime import datetime

from storage3.exceptions import StorageApiError
from supabase import Client, create_client

from app.storage.base import (
    DeleteResult,
    FileMetadata,
    MetadataResult,
    RetrievalResult,
    StorageProvider,
    UploadedFile,
    UploadResult,
    build_object_path,
    build_stored_metadata,
    decode_content,
    serialize_metadata,
)
from app.storage.error_handling import storage_operation
from app.storage.exceptions import StorageFileNotFoundError

logger = logging.getLogger(__name__)


def _is_not_found(exc: StorageApiError) -> bool:
    status = str(getattr(exc, "status", ""))
    if status == "404":
        return True
    # Supabase reports missing objects as 400 with a "not found" message
    return status == "400" and "not found" in str(exc).lower()


def _split_path(file_id: str) -> tuple[str, str]:
    folder, _, file_name = file_id.rpartition("/")
    return folder, file_name


class SupabaseStorageProvider(StorageProvider):
    """
    Supabase Storage provider.

    Configuration:
    - SUPABASE_URL: project URL (provider is registered only when set)
    - SUPABASE_KEY: API key
    - SUPABASE_BUCKET: bucket name (default: code-files)
    """

    def __init__(
        self,
        url: str,
        key: str | None = None,
        bucket: str = "code-files",
        client: Client | None = None,
    ):
        """
        Initialize Supabase provider.

        Args:
            url: Supabase project URL
            key: Supabase API key
            bucket: Storage bucket name
            client: Pre-built client (useful for testing)
        """
        self._bucket_name = bucket
        self._client = client or create_client(url, key or "")

    @property
    def name(self) -> str:
        return "supabase"

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _bucket(self):
        return self._client.storage.from_(self._bucket_name)

    @storage_operation("upload")
    def upload(self, file: UploadedFile, metadata: FileMetadata | None = None) -> UploadResult:
        path = build_object_path(metadata, file.filename)
        stored_metadata = serialize_metadata(build_stored_metadata(file, metadata))

        response = self._bucket().upload(
            path,
            file.content,
            file_options={
                "content-type": file.content_type,
                "metadata": stored_metadata,
            },
        )

        file_id = getattr(response, "path", None) or path
        logger.debug(f"Uploaded to Supabase: {file_id} ({file.size} bytes)")

        return UploadResult(
            file_id=file_id,
            filename=file.filename,
            size=file.size,
            url=self._bucket().get_public_url(file_id),
            provider=self.name,
        )

    @storage_operation("retrieve")
    def retrieve(self, file_id: str) -> RetrievalResult:
        try:
            buffer = self._bucket().download(file_id)
        except StorageApiError as e:
            if _is_not_found(e):
                raise StorageFileNotFoundError(file_id, self.name, "retrieve") from e
            raise

        return RetrievalResult(
            content=decode_content(buffer),
            buffer=buffer,
            provider=self.name,
        )

    @storage_operation("delete")
    def delete(self, file_id: str) -> DeleteResult:
        self._bucket().remove([file_id])
        logger.debug(f"Deleted from Supabase: {file_id}")
        return DeleteResult(success=True, message="File deleted from Supabase")

    def _find_entry(self, file_id: str) -> dict | None:
        folder, file_name = _split_path(file_id)
        if not file_name:
            return None

        entries = self._bucket().list(folder, {"search": file_name})
        for entry in entries or []:
            if entry.get("name") == file_name:
                return entry
        return None

    @storage_operation("exists")
    def exists(self, file_id: str) -> bool:
        try:
            return self._find_entry(file_id) is not None
        except StorageApiError as e:
            logger.warning(f"Supabase exists lookup failed for {file_id}: {e}")
            return False

    def get_metadata(self, file_id: str) -> MetadataResult | None:
        try:
            entry = self._find_entry(file_id)
        except Exception as e:
            logger.warning(f"Supabase metadata lookup failed for {file_id}: {e}")
            return None

        if entry is None:
            return None

        object_metadata = entry.get("metadata") or {}
        uploaded_at = None
        if entry.get("created_at"):
            try:
                uploaded_at = datetime.fromisoformat(entry["created_at"].replace("Z", "+00:00"))
            except ValueError:
                uploaded_at = None

        return MetadataResult(
            file_id=file_id,
            filename=entry.get("name"),
            size=int(object_metadata.get("size") or 0),
            uploaded_at=uploaded_at,
            provider=self.name,
        )
