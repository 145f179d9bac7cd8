"""
Storage provider interface for uploaded source-code files.

Design principles:
- Every backend exposes the same five operations
- File identifiers are opaque and only meaningful to the issuing provider
- Every result carries the name of the provider that produced it
- exists() and get_metadata() are best-effort: missing files give False/None
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class FileType(str, Enum):
    """File-type category of an upload."""
    CODE = "code"
    DOCUMENT = "document"
    OTHER = "other"


class Purpose(str, Enum):
    """Why the file was uploaded."""
    REVIEW = "review"
    REFACTOR = "refactor"
    HISTORY = "history"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class UploadedFile:
    """A file received from the upload layer, fully buffered."""
    filename: str
    content: bytes
    content_type: str
    size: int


@dataclass
class FileMetadata:
    """
    Caller-supplied metadata with a fixed set of recognized fields.

    Unrecognized keys are kept in ``extra`` and round-trip opaquely.
    """
    user_id: str | None = None
    file_type: FileType | None = None
    language: str | None = None
    purpose: Purpose | None = None
    mime_type: str | None = None
    uploaded_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    RECOGNIZED_KEYS = ("user_id", "file_type", "language", "purpose", "mime_type", "uploaded_at")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "FileMetadata":
        """Build from a flat mapping, as stored by a backend or sent by a client."""
        data = dict(data or {})
        file_type = data.pop("file_type", None)
        purpose = data.pop("purpose", None)
        uploaded_at = data.pop("uploaded_at", None)
        if isinstance(uploaded_at, str):
            uploaded_at = _parse_datetime(uploaded_at)

        return cls(
            user_id=data.pop("user_id", None),
            file_type=FileType(file_type) if file_type else None,
            language=data.pop("language", None),
            purpose=Purpose(purpose) if purpose else None,
            mime_type=data.pop("mime_type", None),
            uploaded_at=uploaded_at,
            extra=data,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a mapping; unset fields are omitted, extra keys never shadow recognized ones."""
        out: dict[str, Any] = dict(self.extra)
        for key in self.RECOGNIZED_KEYS:
            value = getattr(self, key)
            if value is None:
                out.pop(key, None)
                continue
            if isinstance(value, Enum):
                value = value.value
            out[key] = value
        return out


@dataclass
class UploadResult:
    file_id: str
    filename: str
    size: int
    provider: str
    url: str | None = None


@dataclass
class RetrievalResult:
    content: str  # UTF-8 decoded
    buffer: bytes  # Raw bytes, use for binary fidelity
    provider: str
    from_cache: bool = False  # No cache layer exists yet


@dataclass
class DeleteResult:
    success: bool
    message: str | None = None
    provider: str | None = None


@dataclass
class MetadataResult:
    file_id: str
    provider: str
    filename: str | None = None
    size: int | None = None
    uploaded_at: datetime | None = None
    metadata: FileMetadata | None = None


@dataclass
class HealthCheckResult:
    provider: str
    status: HealthStatus
    timestamp: datetime
    error: str | None = None
    latency_ms: float | None = None


def _parse_datetime(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def decode_content(buffer: bytes) -> str:
    """Decode stored bytes as UTF-8 text."""
    return buffer.decode("utf-8", errors="replace")


def build_stored_metadata(file: UploadedFile, metadata: FileMetadata | None) -> dict[str, Any]:
    """
    Merge caller metadata with the server-stamped fields.

    Caller keys win everywhere except uploaded_at, mime_type and
    original_size, which always reflect this upload.
    """
    stored = (metadata or FileMetadata()).to_dict()
    stored.update({
        "uploaded_at": datetime.now(UTC),
        "mime_type": file.content_type,
        "original_size": file.size,
    })
    return stored


def serialize_metadata(stored: Mapping[str, Any], as_strings: bool = False) -> dict[str, Any]:
    """
    JSON-safe copy of stored metadata.

    Datetimes become ISO-8601 strings. With as_strings=True every value is
    stringified (S3 user metadata only accepts strings).
    """
    out: dict[str, Any] = {}
    for key, value in stored.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        if as_strings and not isinstance(value, str):
            value = str(value)
        out[key] = value
    return out


def build_object_path(metadata: FileMetadata | None, filename: str, timestamp: datetime | None = None) -> str:
    """
    Object-storage key for an upload.

    Format: {user_id}/{epoch_ms}-{filename}
    """
    ts = timestamp or datetime.now(UTC)
    user_id = (metadata.user_id if metadata else None) or "anonymous"
    return f"{user_id}/{int(ts.timestamp() * 1000)}-{filename}"


class StorageProvider(ABC):
    """
    Abstract interface for file storage backends.

    Implementations must:
    - Tag stored metadata with upload time, MIME type and original size
    - Raise StorageFileNotFoundError from retrieve() for unknown ids
    - Raise (never return success=False) from delete() on failure
    - Return False / None from exists() / get_metadata() instead of raising
      for missing or malformed ids
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'gridfs', 'supabase')."""
        pass

    @abstractmethod
    def upload(self, file: UploadedFile, metadata: FileMetadata | None = None) -> UploadResult:
        """
        Store file bytes and metadata.

        Returns:
            UploadResult with the backend-issued identifier
        """
        pass

    @abstractmethod
    def retrieve(self, file_id: str) -> RetrievalResult:
        """
        Fetch full content by identifier.

        Raises:
            StorageFileNotFoundError: If the identifier is absent
            StorageError: On transport failure
        """
        pass

    @abstractmethod
    def delete(self, file_id: str) -> DeleteResult:
        """Remove the stored artifact. Raises StorageError on failure."""
        pass

    @abstractmethod
    def exists(self, file_id: str) -> bool:
        """Check if a file exists. Never raises for missing/malformed ids."""
        pass

    @abstractmethod
    def get_metadata(self, file_id: str) -> MetadataResult | None:
        """
        Get metadata without downloading content.

        Returns:
            MetadataResult, or None if not found or not reconstructable
        """
        pass
