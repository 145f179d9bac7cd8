"""
Local filesystem storage provider for development and testing.

Each file is stored as raw bytes next to a JSON metadata sidecar.
NOT for production use.
"""

import json
import logging
import uuid
from pathlib import Path

from app.storage.base import (
    DeleteResult,
    FileMetadata,
    MetadataResult,
    RetrievalResult,
    StorageProvider,
    UploadedFile,
    UploadResult,
    build_stored_metadata,
    decode_content,
    serialize_metadata,
)
from app.storage.error_handling import storage_operation
from app.storage.exceptions import StorageFileNotFoundError

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """
    Local filesystem storage provider.

    File ids are random 32-hex strings. Layout:
        {base_path}/{file_id[:2]}/{file_id}
        {base_path}/{file_id[:2]}/{file_id}.meta.json

    Configuration:
    - LOCAL_STORAGE_PATH: Base directory (provider is registered only when set)
    """

    def __init__(self, base_path: str):
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._metadata_suffix = ".meta.json"

    @property
    def name(self) -> str:
        return "local"

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _get_path(self, file_id: str) -> Path:
        """Get filesystem path for a file id, with path traversal protection."""
        resolved = (self._base_path / file_id[:2] / file_id).resolve()
        if not resolved.is_relative_to(self._base_path.resolve()):
            raise ValueError("Path traversal detected")
        return resolved

    def _get_metadata_path(self, file_id: str) -> Path:
        path = self._get_path(file_id)
        return path.with_name(f"{path.name}{self._metadata_suffix}")

    @storage_operation("upload")
    def upload(self, file: UploadedFile, metadata: FileMetadata | None = None) -> UploadResult:
        file_id = uuid.uuid4().hex
        file_path = self._get_path(file_id)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_path.write_bytes(file.content)

        meta_dict = {
            "filename": file.filename,
            "size": len(file.content),
            "metadata": serialize_metadata(build_stored_metadata(file, metadata)),
        }
        self._get_metadata_path(file_id).write_text(json.dumps(meta_dict, indent=2))

        logger.debug(f"Uploaded to local: {file_id} ({file.filename})")
        return UploadResult(
            file_id=file_id,
            filename=file.filename,
            size=len(file.content),
            provider=self.name,
        )

    @storage_operation("retrieve")
    def retrieve(self, file_id: str) -> RetrievalResult:
        if not self.exists(file_id):
            raise StorageFileNotFoundError(file_id, self.name, "retrieve")

        buffer = self._get_path(file_id).read_bytes()
        return RetrievalResult(
            content=decode_content(buffer),
            buffer=buffer,
            provider=self.name,
        )

    @storage_operation("delete")
    def delete(self, file_id: str) -> DeleteResult:
        if not self.exists(file_id):
            raise StorageFileNotFoundError(file_id, self.name, "delete")

        self._get_path(file_id).unlink()
        meta_path = self._get_metadata_path(file_id)
        if meta_path.exists():
            meta_path.unlink()

        return DeleteResult(success=True, message="File deleted from local storage")

    def exists(self, file_id: str) -> bool:
        if not file_id or file_id.endswith(self._metadata_suffix):
            return False
        try:
            return self._get_path(file_id).is_file()
        except (ValueError, OSError):
            return False

    def get_metadata(self, file_id: str) -> MetadataResult | None:
        if not self.exists(file_id):
            return None

        meta_path = self._get_metadata_path(file_id)
        if not meta_path.exists():
            return None

        try:
            meta_dict = json.loads(meta_path.read_text())
            metadata = FileMetadata.from_dict(meta_dict.get("metadata"))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load metadata for {file_id}: {e}")
            return None

        return MetadataResult(
            file_id=file_id,
            filename=meta_dict.get("filename"),
            size=meta_dict.get("size"),
            uploaded_at=metadata.uploaded_at,
            metadata=metadata,
            provider=self.name,
        )

