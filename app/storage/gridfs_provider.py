"""
GridFS storage provider implementation using pymongo.

Files live in a GridFS bucket of the process-wide MongoDB database
(see app.database). File ids are stringified ObjectIds.
"""

import logging

from bson import ObjectId
from bson.errors import InvalidId
from gridfs import GridFSBucket
from gridfs.errors import NoFile
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

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
)
from app.storage.error_handling import storage_operation
from app.storage.exceptions import StorageFileNotFoundError

logger = logging.getLogger(__name__)


def _to_object_id(file_id: str) -> ObjectId | None:
    try:
        return ObjectId(file_id)
    except (InvalidId, TypeError):
        return None


class GridFSStorageProvider(StorageProvider):
    """
    MongoDB GridFS storage provider.

    Configuration:
    - MONGODB_URI: connection string (provider is registered only when set)
    - GRIDFS_BUCKET_NAME: bucket name (default: code_files)
    """

    def __init__(self, database: Database | None = None, bucket_name: str = "code_files"):
        """
        Initialize GridFS provider.

        Args:
            database: Connected database (default: app.database.get_database())
            bucket_name: GridFS bucket name

        Raises:
            StorageConfigurationError: If MongoDB is not connected
        """
        if database is None:
            from app.database import get_database
            database = get_database()

        self._bucket_name = bucket_name
        self._bucket = GridFSBucket(database, bucket_name=bucket_name)

    @property
    def name(self) -> str:
        return "gridfs"

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    @storage_operation("upload")
    def upload(self, file: UploadedFile, metadata: FileMetadata | None = None) -> UploadResult:
        """Stream the buffered file into GridFS."""
        stored_metadata = build_stored_metadata(file, metadata)

        file_id = self._bucket.upload_from_stream(
            file.filename,
            file.content,
            metadata=stored_metadata,
        )

        logger.debug(f"Uploaded to GridFS: {file_id} ({file.filename}, {len(file.content)} bytes)")
        return UploadResult(
            file_id=str(file_id),
            filename=file.filename,
            size=len(file.content),
            provider=self.name,
        )

    @storage_operation("retrieve")
    def retrieve(self, file_id: str) -> RetrievalResult:
        oid = _to_object_id(file_id)
        if oid is None:
            raise StorageFileNotFoundError(file_id, self.name, "retrieve")

        try:
            grid_out = self._bucket.open_download_stream(oid)
        except NoFile:
            raise StorageFileNotFoundError(file_id, self.name, "retrieve")

        buffer = grid_out.read()
        return RetrievalResult(
            content=decode_content(buffer),
            buffer=buffer,
            provider=self.name,
        )

    @storage_operation("delete")
    def delete(self, file_id: str) -> DeleteResult:
        oid = _to_object_id(file_id)
        if oid is None:
            raise StorageFileNotFoundError(file_id, self.name, "delete")

        try:
            self._bucket.delete(oid)
        except NoFile:
            raise StorageFileNotFoundError(file_id, self.name, "delete")

        logger.debug(f"Deleted from GridFS: {file_id}")
        return DeleteResult(success=True, message="File deleted successfully")

    @storage_operation("exists")
    def exists(self, file_id: str) -> bool:
        """Check if a file exists. Connection failures propagate for health probing."""
        # Malformed ids still hit the server so outages surface; a string _id never matches
        oid = _to_object_id(file_id)
        query_id = oid if oid is not None else file_id

        try:
            for _ in self._bucket.find({"_id": query_id}).limit(1):
                return True
            return False
        except ConnectionFailure:
            raise
        except PyMongoError as e:
            logger.warning(f"GridFS exists lookup failed for {file_id}: {e}")
            return False

    def get_metadata(self, file_id: str) -> MetadataResult | None:
        oid = _to_object_id(file_id)
        if oid is None:
            return None

        try:
            grid_out = next(iter(self._bucket.find({"_id": oid}).limit(1)), None)
        except PyMongoError as e:
            logger.warning(f"GridFS metadata lookup failed for {file_id}: {e}")
            return None

        if grid_out is None:
            return None

        try:
            metadata = FileMetadata.from_dict(grid_out.metadata) if grid_out.metadata else None
        except ValueError as e:
            logger.warning(f"Stored metadata for {file_id} is not readable: {e}")
            metadata = None

        return MetadataResult(
            file_id=str(grid_out._id),
            filename=grid_out.filename,
            size=grid_out.length,
            uploaded_at=grid_out.upload_date,
            metadata=metadata,
            provider=self.name,
        )
