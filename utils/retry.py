"""Retry helpers with exponential backoff for idempotent HTTP calls."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, ParamSpec, TypeVar

import backoff
import requests

T = TypeVar("T")
P = ParamSpec("P")

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 502, 503, 504})

# Transport failures worth another attempt; HTTP errors are filtered by status.
HTTP_RETRY_EXCEPTIONS: tuple[type[Exception], ...] = (
    requests.ConnectionError,
    requests.Timeout,
    requests.HTTPError,
)


def is_retryable(exc: Exception) -> bool:
    """Return ``True`` when ``exc`` is a transient transport failure."""

    if isinstance(exc, requests.HTTPError):
        response = exc.response
        return response is not None and response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


def retry_with_backoff(
    *,
    exceptions: Iterable[type[Exception]] = HTTP_RETRY_EXCEPTIONS,
    max_tries: int = 3,
    giveup: Callable[[Exception], bool] | None = None,
    jitter: Any = backoff.full_jitter,
    logger: Any = logging.getLogger(__name__),
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Return a decorator applying exponential backoff for ``exceptions``.

    By default only failures accepted by :func:`is_retryable` are retried;
    everything else is raised on the first attempt.
    """

    exception_tuple: tuple[type[Exception], ...] = tuple(exceptions)
    resolved_giveup: Callable[[Exception], bool] = giveup or (lambda exc: not is_retryable(exc))

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        return backoff.on_exception(
            backoff.expo,
            exception_tuple,
            max_tries=max_tries,
            jitter=jitter,
            giveup=resolved_giveup,
            logger=logger,
        )(func)

    return decorator


__all__ = ["HTTP_RETRY_EXCEPTIONS", "RETRYABLE_STATUS_CODES", "is_retryable", "retry_with_backoff"]
