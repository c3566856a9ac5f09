"""
Retry policy for transient persistence failures.

Transient errors are retried once (``PERSISTENCE_RETRY_ATTEMPTS`` counts the
first attempt); every other exception propagates on the first failure.
"""
import functools
import logging
from typing import Any, Callable, TypeVar

from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from app.config import settings
from app.core.exceptions import TransientPersistenceException

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        "transient_persistence_retry",
        extra={
            "function": getattr(state.fn, "__qualname__", str(state.fn)),
            "attempt": state.attempt_number,
            "error": str(exc) if exc else None,
        },
    )


def retry_transient(func: F) -> F:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        retrying = Retrying(
            stop=stop_after_attempt(settings.PERSISTENCE_RETRY_ATTEMPTS),
            wait=wait_fixed(settings.PERSISTENCE_RETRY_WAIT_SECONDS),
            retry=retry_if_exception_type(TransientPersistenceException),
            before_sleep=_log_retry,
            reraise=True,
        )
        return retrying(func, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
