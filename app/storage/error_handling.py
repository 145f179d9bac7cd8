"""
Uniform error wrapping for storage operations.

Any backend-specific failure is re-raised as StorageError with the
message prefixed by "{operation} failed in {provider}: ". StorageError
instances pass through untouched so context is added exactly once.
"""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from app.storage.exceptions import StorageError

T = TypeVar("T")


def _wrap_exception(exc: Exception, provider: str, operation: str) -> StorageError:
    return StorageError(
        f"{operation} failed in {provider}: {exc}",
        provider=provider,
        operation=operation,
        cause=exc,
    )


def with_error_handling(
    func: Callable[..., T],
    provider: str,
    operation: str,
) -> Callable[..., T]:
    """
    Return an equivalent callable that raises StorageError on failure.

    Works for both coroutine functions and plain functions; the returned
    callable keeps the calling convention of the original.

    Usage:
        upload = with_error_handling(client.put, "s3", "upload")
        upload(key, body)
    """
    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except StorageError:
                raise
            except Exception as e:
                raise _wrap_exception(e, provider, operation) from e

        return async_wrapper

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return func(*args, **kwargs)
        except StorageError:
            raise
        except Exception as e:
            raise _wrap_exception(e, provider, operation) from e

    return wrapper


def storage_operation(operation: str) -> Callable:
    """
    Method decorator form of with_error_handling.

    The provider name is read from the instance's ``name`` property at call
    time.

    Usage:
        class MyProvider(StorageProvider):
            @storage_operation("upload")
            def upload(self, file, metadata=None):
                ...
    """

    def decorator(method: Callable[..., T]) -> Callable[..., T]:
        @wraps(method)
        def wrapper(self, *args: Any, **kwargs: Any) -> T:
            bound = with_error_handling(method, self.name, operation)
            return bound(self, *args, **kwargs)

        return wrapper

    return decorator
