"""
Storage provider registry.

Maps provider names to zero-argument constructors. A fresh provider is
built on every get_provider() call; connection handles (e.g. the MongoDB
client) are process-wide, so construction stays cheap.
"""

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

from app.config import Settings, get_settings
from app.storage.base import HealthCheckResult, HealthStatus, StorageProvider
from app.storage.exceptions import ProviderNotFoundError

logger = logging.getLogger(__name__)

ProviderConstructor = Callable[[], StorageProvider]

HEALTH_CHECK_ID_PREFIX = "health-check-dummy-file-id-"


class StorageFactory:
    """
    Runtime registry resolving provider names to provider instances.

    Usage:
        factory = StorageFactory(default_provider="gridfs")
        factory.register_provider("gridfs", lambda: GridFSStorageProvider())
        provider = factory.get_provider()
    """

    def __init__(self, default_provider: str):
        self._default_provider = default_provider
        self._providers: dict[str, ProviderConstructor] = {}

    @property
    def default_provider(self) -> str:
        return self._default_provider

    def register_provider(self, name: str, constructor: ProviderConstructor) -> None:
        """Register a constructor. A later registration for the same name replaces the earlier one."""
        self._providers[name] = constructor
        logger.debug(f"Storage provider registered: {name}")

    def get_provider(self, name: str | None = None) -> StorageProvider:
        """
        Construct the named provider, or the configured default.

        Raises:
            ProviderNotFoundError: If no constructor is registered for the name
            StorageConfigurationError: If the provider's backend is not ready
        """
        resolved = name or self._default_provider
        constructor = self._providers.get(resolved)
        if constructor is None:
            raise ProviderNotFoundError(resolved, self.list_providers())
        return constructor()

    def list_providers(self) -> list[str]:
        """Registered provider names, in registration order."""
        return list(self._providers)

    def health_check(self, name: str | None = None) -> HealthCheckResult:
        """
        Liveness probe: look up a file id that cannot exist and time the call.

        A provider that answers (even wrongly) without raising is healthy.
        Unknown provider names raise ProviderNotFoundError.
        """
        resolved = name or self._default_provider
        if resolved not in self._providers:
            raise ProviderNotFoundError(resolved, self.list_providers())

        start_time = time.perf_counter()
        try:
            provider = self.get_provider(resolved)
            provider.exists(f"{HEALTH_CHECK_ID_PREFIX}{int(time.time() * 1000)}")
        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                f"Storage health check failed for {resolved}: {e}",
                extra={"event": "storage_health_check", "provider": resolved, "duration_ms": int(latency_ms)},
            )
            return HealthCheckResult(
                provider=resolved,
                status=HealthStatus.UNHEALTHY,
                timestamp=datetime.now(UTC),
                error=str(e) or type(e).__name__,
                latency_ms=round(latency_ms, 2),
            )

        latency_ms = (time.perf_counter() - start_time) * 1000
        return HealthCheckResult(
            provider=provider.name,
            status=HealthStatus.HEALTHY,
            timestamp=datetime.now(UTC),
            latency_ms=round(latency_ms, 2),
        )


def create_storage_factory(settings: Settings | None = None) -> StorageFactory:
    """
    Build a factory and register every provider whose configuration is present.

    Providers without configuration are skipped; selecting them later raises
    ProviderNotFoundError.
    """
    settings = settings or get_settings()
    factory = StorageFactory(default_provider=settings.STORAGE_PROVIDER)

    if settings.MONGODB_URI:
        from app.storage.gridfs_provider import GridFSStorageProvider
        factory.register_provider(
            "gridfs",
            lambda: GridFSStorageProvider(bucket_name=settings.GRIDFS_BUCKET_NAME),
        )

    if settings.SUPABASE_URL:
        from app.storage.supabase_provider import SupabaseStorageProvider
        factory.register_provider(
            "supabase",
            lambda: SupabaseStorageProvider(
                url=settings.SUPABASE_URL,
                key=settings.SUPABASE_KEY,
                bucket=settings.SUPABASE_BUCKET,
            ),
        )

    if settings.S3_BUCKET:
        from app.storage.s3_provider import S3StorageProvider
        factory.register_provider(
            "s3",
            lambda: S3StorageProvider(
                bucket=settings.S3_BUCKET,
                endpoint_url=settings.S3_ENDPOINT_URL,
                region=settings.S3_REGION,
                access_key_id=settings.AWS_ACCESS_KEY_ID,
                secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            ),
        )

    if settings.LOCAL_STORAGE_PATH:
        from app.storage.local_provider import LocalStorageProvider
        factory.register_provider(
            "local",
            lambda: LocalStorageProvider(base_path=settings.LOCAL_STORAGE_PATH),
        )

    logger.info(
        f"Storage factory initialized: providers={factory.list_providers()} "
        f"default={factory.default_provider}"
    )
    return factory


# Global singleton instance
_storage_factory: StorageFactory | None = None


def get_storage_factory() -> StorageFactory:
    """Get or create the process-wide storage factory."""
    global _storage_factory

    if _storage_factory is None:
        _storage_factory = create_storage_factory()
    return _storage_factory


def set_storage_factory(factory: StorageFactory) -> None:
    """
    Set a custom storage factory (useful for testing).
    """
    global _storage_factory
    _storage_factory = factory


def reset_storage_factory() -> None:
    """
    Reset the storage factory singleton (for testing).
    """
    global _storage_factory
    _storage_factory = None
