"""
File storage service.

The façade request handlers use for every storage operation. It resolves a
provider per call through the StorageFactory, runs the blocking provider
call in a worker thread, and makes sure every failure surfaces as a
StorageError that still names the provider and operation.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from app.logging_config import log_storage_operation
from app.storage.base import (
    DeleteResult,
    FileMetadata,
    HealthCheckResult,
    MetadataResult,
    RetrievalResult,
    StorageProvider,
    UploadedFile,
    UploadResult,
)
from app.storage.error_handling import with_error_handling
from app.storage.factory import StorageFactory, get_storage_factory

logger = logging.getLogger(__name__)


@dataclass
class BatchRetrievalItem:
    """Outcome of one id in a bulk retrieval."""
    file_id: str
    result: RetrievalResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class FileStorageService:
    """
    Uniform entry point for file storage.

    Usage:
        service = FileStorageService(get_storage_factory())
        result = await service.upload_file(uploaded, metadata)
        content = await service.retrieve_file(result.file_id)
    """

    def __init__(self, factory: StorageFactory):
        self._factory = factory

    @property
    def factory(self) -> StorageFactory:
        return self._factory

    async def _call(self, provider: StorageProvider, operation: str, *args, file_id: str | None = None):
        """Run one provider operation off the event loop with error wrapping and logging."""
        method = with_error_handling(getattr(provider, operation), provider.name, operation)
        with log_storage_operation(provider.name, operation, file_id) as metrics:
            result = await asyncio.to_thread(method, *args)
            if isinstance(result, UploadResult):
                metrics["size_bytes"] = result.size
            elif isinstance(result, RetrievalResult):
                metrics["size_bytes"] = len(result.buffer)
        return result

    async def upload_file(
        self,
        file: UploadedFile,
        metadata: FileMetadata | None = None,
        provider_name: str | None = None,
    ) -> UploadResult:
        provider = self._factory.get_provider(provider_name)
        result = await self._call(provider, "upload", file, metadata or FileMetadata())
        result.provider = provider.name
        return result

    async def upload_files(
        self,
        files: Sequence[UploadedFile],
        metadata: FileMetadata | None = None,
        provider_name: str | None = None,
    ) -> list[UploadResult]:
        """
        Upload several files to one provider, all or nothing.

        Files are stored in order. If one fails, the files already stored by
        this call are deleted before the error is re-raised.
        """
        provider = self._factory.get_provider(provider_name)
        metadata = metadata or FileMetadata()

        results: list[UploadResult] = []
        try:
            for file in files:
                result = await self._call(provider, "upload", file, metadata)
                result.provider = provider.name
                results.append(result)
        except Exception:
            await self._rollback_uploads(provider, results)
            raise
        return results

    async def _rollback_uploads(self, provider: StorageProvider, uploaded: Sequence[UploadResult]) -> None:
        for result in uploaded:
            try:
                await self._call(provider, "delete", result.file_id, file_id=result.file_id)
            except Exception as e:
                logger.warning(
                    f"Could not roll back upload {result.file_id} in {provider.name}: {e}",
                    extra={"event": "storage_upload_rollback_failed", "provider": provider.name, "file_id": result.file_id},
                )

    async def _retrieve(self, provider: StorageProvider, file_id: str) -> RetrievalResult:
        result = await self._call(provider, "retrieve", file_id, file_id=file_id)
        result.provider = provider.name
        result.from_cache = False
        return result

    async def retrieve_file(self, file_id: str, provider_name: str | None = None) -> RetrievalResult:
        provider = self._factory.get_provider(provider_name)
        return await self._retrieve(provider, file_id)

    async def delete_file(self, file_id: str, provider_name: str | None = None) -> DeleteResult:
        provider = self._factory.get_provider(provider_name)
        result = await self._call(provider, "delete", file_id, file_id=file_id)
        result.provider = provider.name
        return result

    async def file_exists(self, file_id: str, provider_name: str | None = None) -> bool:
        provider = self._factory.get_provider(provider_name)
        return await self._call(provider, "exists", file_id, file_id=file_id)

    async def get_file_metadata(self, file_id: str, provider_name: str | None = None) -> MetadataResult | None:
        provider = self._factory.get_provider(provider_name)
        return await self._call(provider, "get_metadata", file_id, file_id=file_id)

    async def retrieve_multiple_files_detailed(
        self,
        file_ids: Sequence[str],
        provider_name: str | None = None,
    ) -> list[BatchRetrievalItem]:
        """
        Retrieve every id concurrently from one provider and report each outcome.

        Waits for all retrievals to settle; nothing is cancelled early.
        """
        provider = self._factory.get_provider(provider_name)
        outcomes = await asyncio.gather(
            *(self._retrieve(provider, file_id) for file_id in file_ids),
            return_exceptions=True,
        )

        items = []
        for file_id, outcome in zip(file_ids, outcomes):
            if isinstance(outcome, Exception):
                items.append(BatchRetrievalItem(file_id=file_id, error=str(outcome)))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                items.append(BatchRetrievalItem(file_id=file_id, result=outcome))

        failed = sum(1 for item in items if not item.ok)
        if failed:
            logger.warning(
                f"Bulk retrieval from {provider.name}: {failed}/{len(items)} failed",
                extra={
                    "event": "storage_bulk_retrieve",
                    "provider": provider.name,
                    "items_processed": len(items),
                    "items_failed": failed,
                },
            )
        return items

    async def retrieve_multiple_files(
        self,
        file_ids: Sequence[str],
        provider_name: str | None = None,
    ) -> list[RetrievalResult]:
        """
        Retrieve several files, keeping only the ones that succeeded.

        Failed ids are dropped; results keep the input order.
        """
        items = await self.retrieve_multiple_files_detailed(file_ids, provider_name)
        return [item.result for item in items if item.ok]

    def switch_provider(self, provider_name: str) -> dict:
        """
        Validate that a provider can be resolved.

        Does not change which provider later calls use; the configured
        default still applies when no provider is named.
        """
        provider = self._factory.get_provider(provider_name)
        return {"switched": True, "provider": provider.name}

    async def health_check(self, provider_name: str | None = None) -> HealthCheckResult:
        return await asyncio.to_thread(self._factory.health_check, provider_name)

    def get_active_provider(self) -> str:
        return self._factory.get_provider().name

    def list_providers(self) -> list[str]:
        return self._factory.list_providers()


def get_file_storage_service() -> FileStorageService:
    """FastAPI dependency returning a service bound to the process-wide factory."""
    return FileStorageService(get_storage_factory())
