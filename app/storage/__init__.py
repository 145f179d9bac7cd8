# app/storage/__init__.py
"""
Storage provider abstraction for uploaded code files.

Backends (GridFS, Supabase Storage, S3, local filesystem) implement one
interface; the factory picks one at runtime from configuration.
Concrete providers are imported from their own modules so that a missing
optional client library only matters when that backend is configured.
"""

from app.storage.base import (
    DeleteResult,
    FileMetadata,
    FileType,
    HealthCheckResult,
    HealthStatus,
    MetadataResult,
    Purpose,
    RetrievalResult,
    StorageProvider,
    UploadedFile,
    UploadResult,
)
from app.storage.error_handling import storage_operation, with_error_handling
from app.storage.exceptions import (
    ProviderNotFoundError,
    StorageConfigurationError,
    StorageError,
    StorageFileNotFoundError,
)
from app.storage.factory import (
    StorageFactory,
    create_storage_factory,
    get_storage_factory,
    reset_storage_factory,
    set_storage_factory,
)

__all__ = [
    "StorageProvider",
    "UploadedFile",
    "FileMetadata",
    "FileType",
    "Purpose",
    "UploadResult",
    "RetrievalResult",
    "DeleteResult",
    "MetadataResult",
    "HealthCheckResult",
    "HealthStatus",
    "StorageError",
    "StorageFileNotFoundError",
    "ProviderNotFoundError",
    "StorageConfigurationError",
    "with_error_handling",
    "storage_operation",
    "StorageFactory",
    "create_storage_factory",
    "get_storage_factory",
    "set_storage_factory",
    "reset_storage_factory",
]
