"""Store access wrapper enforcing the store error taxonomy."""

from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from community_feed.store.errors import StoreError, StoreUnavailableError


T = TypeVar("T")


def call_store(
    log: structlog.typing.FilteringBoundLogger,
    operation: str,
    fn: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Invoke a store method, translating foreign failures.

    ``StoreError`` subclasses propagate unchanged. Any other exception is
    re-raised as ``StoreUnavailableError`` chained to the original, so
    driver-specific errors never cross the ranker boundary. No retries.

    Args:
        log: Logger bound to the calling component.
        operation: Store operation name for logs and errors.
        fn: Store method to call.
        *args: Positional arguments for ``fn``.
        **kwargs: Keyword arguments for ``fn``.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        StoreError: On any store failure.
    """
    try:
        return fn(*args, **kwargs)
    except StoreError:
        log.error("store_call_failed", op=operation)
        raise
    except Exception as e:
        log.error("store_call_failed", op=operation, error_type=type(e).__name__)
        raise StoreUnavailableError(operation) from e
