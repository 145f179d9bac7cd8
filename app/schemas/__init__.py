# app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.files import (
    BatchRetrieveError,
    BatchRetrieveRequest,
    BatchRetrieveResponse,
    DeleteResponse,
    ExistsResponse,
    FileContentResponse,
    FileMetadataResponse,
    HealthCheckResponse,
    ProviderListResponse,
    SwitchProviderRequest,
    SwitchProviderResponse,
    UploadedFileResponse,
    UploadResponse,
)

__all__ = [
    "UploadedFileResponse",
    "UploadResponse",
    "FileContentResponse",
    "BatchRetrieveRequest",
    "BatchRetrieveError",
    "BatchRetrieveResponse",
    "DeleteResponse",
    "ExistsResponse",
    "FileMetadataResponse",
    "HealthCheckResponse",
    "ProviderListResponse",
    "SwitchProviderRequest",
    "SwitchProviderResponse",
]
