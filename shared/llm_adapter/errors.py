"""Typed outcomes surfaced by the completion client."""

from __future__ import annotations


class CompletionError(Exception):
    """Base class for every failure that crosses the completion client boundary."""


class RateLimited(CompletionError):
    """The backend throttled us and the retry budget is spent.

    ``retry_after_seconds`` is only set when the backend told us exactly
    how long to wait on the final attempt.
    """

    def __init__(self, retry_after_seconds: int | None = None) -> None:
        self.retry_after_seconds = retry_after_seconds
        if retry_after_seconds is None:
            message = "Rate limited by the language backend"
        else:
            message = f"Rate limited by the language backend; retry after {retry_after_seconds}s"
        super().__init__(message)


class BackendUnavailable(CompletionError):
    """A non-retriable backend failure (bad request, auth, 5xx, timeout)."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Language backend unavailable: {cause!r}")


class CacheUnavailable(CompletionError):
    """Raised by cache backends. Never reaches callers of ``complete``."""
