# app/schemas/files.py
"""
File storage API schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.storage.base import HealthStatus, MetadataResult


class UploadedFileResponse(BaseModel):
    """One stored file."""

    model_config = ConfigDict(from_attributes=True)

    file_id: str = Field(..., description="Provider-issued identifier")
    filename: str
    size: int
    url: str | None = None
    provider: str


class UploadResponse(BaseModel):
    """Result of a multi-file upload."""

    files: list[UploadedFileResponse]
    total: int


class FileContentResponse(BaseModel):
    """Retrieved file as text."""

    file_id: str
    content: str
    size: int
    provider: str
    from_cache: bool = False


class BatchRetrieveRequest(BaseModel):
    """Retrieve several files from one provider."""

    file_ids: list[str] = Field(..., min_length=1, max_length=100)
    provider: str | None = Field(None, description="Provider name (default: configured provider)")
    include_errors: bool = Field(False, description="Report ids that failed instead of dropping them")


class BatchRetrieveError(BaseModel):
    file_id: str
    error: str


class BatchRetrieveResponse(BaseModel):
    files: list[FileContentResponse]
    total: int
    errors: list[BatchRetrieveError] | None = None


class DeleteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    message: str | None = None
    provider: str | None = None


class ExistsResponse(BaseModel):
    file_id: str
    exists: bool
    provider: str


class FileMetadataResponse(BaseModel):
    """Stored metadata for one file."""

    file_id: str
    filename: str | None = None
    size: int | None = None
    uploaded_at: datetime | None = None
    metadata: dict[str, Any] | None = None
    provider: str

    @classmethod
    def from_result(cls, result: MetadataResult) -> "FileMetadataResponse":
        return cls(
            file_id=result.file_id,
            filename=result.filename,
            size=result.size,
            uploaded_at=result.uploaded_at,
            metadata=result.metadata.to_dict() if result.metadata else None,
            provider=result.provider,
        )


class HealthCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider: str
    status: HealthStatus
    timestamp: datetime
    error: str | None = None
    latency_ms: float | None = None


class ProviderListResponse(BaseModel):
    providers: list[str]
    default_provider: str


class SwitchProviderRequest(BaseModel):
    provider: str = Field(..., min_length=1)


class SwitchProviderResponse(BaseModel):
    switched: bool
    provider: str
