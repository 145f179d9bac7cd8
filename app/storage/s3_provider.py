"""
S3 storage provider implementation using boto3.

Supports:
- AWS S3
- S3-compatible services (MinIO, DigitalOcean Spaces, etc.)

File ids are object keys of the form {user_id}/{epoch_ms}-{filename}.
"""

import logging
from datetime import datetime

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

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

_NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


class S3StorageProvider(StorageProvider):
    """
    S3/S3-compatible storage provider.

    Configuration:
    - S3_BUCKET: Bucket name (provider is registered only when set)
    - S3_ENDPOINT_URL: Custom endpoint for S3-compatible services
    - S3_REGION: AWS region (default: us-east-1)
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: credentials (or boto3 defaults)
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        region: str = "us-east-1",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client=None,
    ):
        """
        Initialize S3 provider.

        Args:
            bucket: S3 bucket name
            endpoint_url: Custom endpoint for S3-compatible services
            region: AWS region
            access_key_id: Explicit credentials; boto3's chain is used when omitted
            secret_access_key: Explicit credentials
            client: Pre-built boto3 client (useful for testing)
        """
        self._bucket = bucket
        self._endpoint_url = endpoint_url
        self._region = region

        if client is None:
            config = Config(
                retries={"max_attempts": 3, "mode": "adaptive"},
                connect_timeout=5,
                read_timeout=30,
            )
            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                config=config,
            )
        self._client = client

    @property
    def name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    def _object_url(self, key: str) -> str:
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    @storage_operation("upload")
    def upload(self, file: UploadedFile, metadata: FileMetadata | None = None) -> UploadResult:
        key = build_object_path(metadata, file.filename)
        s3_metadata = serialize_metadata(build_stored_metadata(file, metadata), as_strings=True)

        self._client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=file.content,
            ContentType=file.content_type,
            Metadata=s3_metadata,
        )

        logger.debug(f"Uploaded to S3: {key} ({file.size} bytes)")
        return UploadResult(
            file_id=key,
            filename=file.filename,
            size=file.size,
            url=self._object_url(key),
            provider=self.name,
        )

    @storage_operation("retrieve")
    def retrieve(self, file_id: str) -> RetrievalResult:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=file_id)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise StorageFileNotFoundError(file_id, self.name, "retrieve") from e
            raise

        buffer = response["Body"].read()
        return RetrievalResult(
            content=decode_content(buffer),
            buffer=buffer,
            provider=self.name,
        )

    @storage_operation("delete")
    def delete(self, file_id: str) -> DeleteResult:
        self._client.delete_object(Bucket=self._bucket, Key=file_id)
        logger.debug(f"Deleted from S3: {file_id}")
        return DeleteResult(success=True, message="File deleted from S3")

    @storage_operation("exists")
    def exists(self, file_id: str) -> bool:
        """Check if object exists. Connection errors propagate for health probing."""
        try:
            self._client.head_object(Bucket=self._bucket, Key=file_id)
            return True
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            logger.warning(f"S3 exists lookup failed for {file_id}: {e}")
            return False

    def get_metadata(self, file_id: str) -> MetadataResult | None:
        try:
            response = self._client.head_object(Bucket=self._bucket, Key=file_id)
        except (ClientError, BotoCoreError) as e:
            logger.debug(f"S3 metadata lookup failed for {file_id}: {e}")
            return None

        s3_metadata = dict(response.get("Metadata", {}))
        try:
            metadata = FileMetadata.from_dict(s3_metadata)
        except ValueError as e:
            logger.warning(f"Stored metadata for {file_id} is not readable: {e}")
            metadata = None

        uploaded_at = response.get("LastModified")
        if not isinstance(uploaded_at, datetime):
            uploaded_at = metadata.uploaded_at if metadata else None

        return MetadataResult(
            file_id=file_id,
            filename=file_id.rpartition("/")[2].split("-", 1)[-1],
            size=response.get("ContentLength"),
            uploaded_at=uploaded_at,
            metadata=metadata,
            provider=self.name,
        )
