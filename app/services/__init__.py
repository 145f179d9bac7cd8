# app/services/__init__.py
"""
Business logic services.
"""

from app.services.file_storage import (
    BatchRetrievalItem,
    FileStorageService,
    get_file_storage_service,
)

__all__ = [
    "FileStorageService",
    "BatchRetrievalItem",
    "get_file_storage_service",
]
