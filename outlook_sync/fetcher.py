"""HTTP GET with a hard per-attempt deadline and bounded fixed-delay retry."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .config import Settings, get_settings
from .errors import (
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    NetworkError,
    ResponseTooLargeError,
)

logger = logging.getLogger(__name__)

HTTP_NOT_MODIFIED = 304
MIN_PHASE_TIMEOUT = 0.001


@dataclass(frozen=True)
class FetchResponse:
    """A settled response whose status counts as success (2xx or 304)."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    elapsed_ms: float = 0.0

    @property
    def not_modified(self) -> bool:
        return self.status_code == HTTP_NOT_MODIFIED


def is_success_status(status: int) -> bool:
    """Return True for 2xx and exactly 304."""
    return 200 <= status < 300 or status == HTTP_NOT_MODIFIED


def _normalize_headers(headers: httpx.Headers) -> Dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


class TimedFetcher:
    """Issues one GET per attempt; knows nothing about caching."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._sleep = sleep
        self._monotonic = monotonic

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
            headers={
                "user-agent": self._settings.user_agent,
                "accept": "application/json",
            },
        )

    def _remaining(self, url: str, deadline: float) -> float:
        remaining = deadline - self._monotonic()
        if remaining <= 0:
            raise FetchTimeoutError(f"Request exceeded its deadline for {url}")
        return remaining

    def _deadline_trace(
        self, url: str, deadline: float, timeouts: Dict[str, Optional[float]]
    ) -> Callable[[str, Dict[str, Any]], None]:
        """Return a trace hook that caps each network phase at the time left.

        The transport reads the per-phase timeouts from ``timeouts`` when the
        phase starts, which is right after the hook fires.
        """

        def trace(event_name: str, info: Dict[str, Any]) -> None:
            if not event_name.endswith(".started"):
                return
            remaining = max(deadline - self._monotonic(), MIN_PHASE_TIMEOUT)
            for phase in ("connect", "read", "write", "pool"):
                timeouts[phase] = remaining

        return trace

    def _read_body(self, response: httpx.Response, url: str, deadline: float) -> bytes:
        buffer = BytesIO()
        total = 0
        limit = self._settings.max_body_bytes
        # Body reads may not wait past the deadline.
        response.request.extensions["timeout"]["read"] = self._remaining(url, deadline)
        for chunk in response.iter_bytes():
            self._remaining(url, deadline)
            total += len(chunk)
            if total > limit:
                raise ResponseTooLargeError(
                    f"Response exceeded {limit} bytes for {response.url}"
                )
            buffer.write(chunk)
        return buffer.getvalue()

    def _attempt(self, url: str, headers: Mapping[str, str], timeout: float) -> FetchResponse:
        started = self._monotonic()
        deadline = started + timeout
        try:
            with self._client(timeout) as client:
                request = client.build_request("GET", url, headers=dict(headers))
                request.extensions["trace"] = self._deadline_trace(
                    url, deadline, request.extensions["timeout"]
                )
                response = client.send(request, stream=True)
                try:
                    status = response.status_code
                    if not is_success_status(status):
                        raise HttpStatusError(status, url)
                    body = b"" if status == HTTP_NOT_MODIFIED else self._read_body(response, url, deadline)
                    encoding = response.encoding or "utf-8"
                    resp_headers = _normalize_headers(response.headers)
                finally:
                    response.close()
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Request timed out for {url}: {exc}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Network error for {url}: {exc}") from exc

        if self._monotonic() > deadline:
            raise FetchTimeoutError(f"Request exceeded {timeout:.1f}s for {url}")

        elapsed_ms = (self._monotonic() - started) * 1000.0
        return FetchResponse(
            status_code=status,
            headers=resp_headers,
            text=body.decode(encoding, errors="replace"),
            elapsed_ms=elapsed_ms,
        )

    def fetch(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> FetchResponse:
        """Fetch ``url``, retrying transient failures with a fixed backoff.

        Args:
            url: The URL to fetch.
            headers: Extra request headers (e.g. conditional validators).
            timeout: Hard deadline per attempt in seconds.
            max_retries: Retries after the first attempt.

        Returns:
            FetchResponse for a 2xx or 304 answer.

        Raises:
            FetchTimeoutError, HttpStatusError, NetworkError: When the last
                allowed attempt fails.
            ResponseTooLargeError: Immediately; oversize bodies are not retried.
        """
        s = self._settings
        timeout = s.timeout_seconds if timeout is None else timeout
        retries = s.max_retries if max_retries is None else max_retries
        req_headers = dict(headers or {})

        logger.info("Fetching: %s (conditional=%s)", url, bool(req_headers))

        retrying = Retrying(
            stop=stop_after_attempt(max(0, retries) + 1),
            wait=wait_fixed(s.retry_backoff_seconds),
            retry=retry_if_exception_type(
                (FetchTimeoutError, HttpStatusError, NetworkError)
            ),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                resp = self._attempt(url, req_headers, timeout)
                logger.info(
                    "HTTP %d for %s in %.0f ms", resp.status_code, url, resp.elapsed_ms
                )
                return resp
        raise FetchError(f"No attempt made for {url}")  # pragma: no cover
