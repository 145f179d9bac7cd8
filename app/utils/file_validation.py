"""
Upload validation helpers.

Extension allow-list, size ceiling and metadata defaults. Everything here
runs before a file reaches the storage service.
"""

from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Any

from app.storage.base import FileMetadata, FileType, Purpose

DEFAULT_ALLOWED_EXTENSIONS = (".js", ".py", ".ts", ".jsx", ".tsx", ".vue", ".svelte")
DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MiB


def file_extension(filename: str) -> str:
    """Lowercase extension including the dot, or '' if there is none."""
    return PurePath(filename).suffix.lower()


def is_valid_file_type(filename: str, allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS) -> bool:
    return file_extension(filename) in set(allowed_extensions)


def validate_file_size(size: int, max_size: int = DEFAULT_MAX_FILE_SIZE) -> bool:
    return size <= max_size


def sanitize_metadata(metadata: FileMetadata | Mapping[str, Any] | None) -> FileMetadata:
    """
    Fill in defaults for omitted metadata fields.

    Caller-supplied values are never overwritten. Defaults:
    user_id="anonymous", file_type=code, language="javascript",
    purpose=review, uploaded_at=now (UTC).
    """
    if metadata is None:
        metadata = FileMetadata()
    elif not isinstance(metadata, FileMetadata):
        metadata = FileMetadata.from_dict(metadata)

    return replace(
        metadata,
        user_id=_default(metadata.user_id, "anonymous"),
        file_type=_default(metadata.file_type, FileType.CODE),
        language=_default(metadata.language, "javascript"),
        purpose=_default(metadata.purpose, Purpose.REVIEW),
        uploaded_at=_default(metadata.uploaded_at, datetime.now(UTC)),
        extra=dict(metadata.extra),
    )


def _default(value: Any, default: Any) -> Any:
    return default if value is None else value
