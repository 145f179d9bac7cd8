"""
Storage-specific exceptions.

StorageError carries the provider and operation that failed so callers can
tell which backend served (or broke) a request.
"""


class StorageError(Exception):
    """Backend failure during a storage operation."""

    def __init__(
        self,
        message: str,
        provider: str,
        operation: str,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.operation = operation
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "provider": self.provider,
            "operation": self.operation,
        }


class StorageFileNotFoundError(StorageError):
    """Raised when a file identifier does not resolve in the provider."""

    def __init__(self, file_id: str, provider: str, operation: str = "retrieve"):
        self.file_id = file_id
        super().__init__(
            f"File not found in {provider}: {file_id}",
            provider=provider,
            operation=operation,
        )


class ProviderNotFoundError(LookupError):
    """Raised when a provider name has no registered constructor."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = list(available)
        listing = ", ".join(self.available) if self.available else "none"
        super().__init__(f"Storage provider '{name}' not found. Available: {listing}")


class StorageConfigurationError(RuntimeError):
    """Raised when a provider cannot be constructed because a dependency is missing."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)
