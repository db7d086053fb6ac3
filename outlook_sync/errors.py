"""Exception taxonomy for outlook synchronization."""

from __future__ import annotations

from typing import Optional


class OutlookSyncError(Exception):
    """Base class for every error raised by this package."""


class FetchError(OutlookSyncError):
    """A network attempt failed. Subclasses are retried by the fetcher."""


class FetchTimeoutError(FetchError):
    """The attempt did not settle before its deadline."""


class NetworkError(FetchError):
    """DNS, connection or other transport-level failure."""


class HttpStatusError(FetchError):
    """The server answered with a status outside 2xx and 304."""

    def __init__(self, status_code: int, url: Optional[str] = None) -> None:
        self.status_code = status_code
        self.url = url
        msg = f"HTTP {status_code}"
        if url:
            msg += f" for {url}"
        super().__init__(msg)


class ResponseTooLargeError(FetchError):
    """The response body exceeded the configured size limit."""


class ParseError(OutlookSyncError):
    """The envelope or its nested response could not be decoded."""


class CacheCorruptError(OutlookSyncError):
    """Persisted cache state is malformed. Handled as a cache miss."""


class CacheWriteError(OutlookSyncError):
    """The store could not persist an update."""


def classify_error(exc: BaseException) -> str:
    """Return the message shown to the user when no cached data is available."""
    if isinstance(exc, FetchTimeoutError):
        return "Network timeout. Please retry."
    if isinstance(exc, HttpStatusError):
        if exc.status_code == 403:
            return "Access denied (403). Check bucket policy & CORS."
        if exc.status_code == 404:
            return "Data not found (404)."
    return str(exc) or "Error loading data."
