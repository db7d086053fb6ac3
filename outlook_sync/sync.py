"""One synchronization cycle: paint cached data, revalidate, persist, notify."""

from __future__ import annotations

import enum
import logging
from datetime import date, datetime
from typing import Callable, Dict, Mapping, Optional

import httpx

from .cache import ConditionalCache
from .config import Settings
from .envelope import decode_envelope
from .errors import CacheWriteError, OutlookSyncError, ParseError, classify_error
from .fetcher import FetchResponse, TimedFetcher
from .freshness import FreshnessClock, utc_now
from .models import (
    CachedDocument,
    Empty,
    OutlookDocument,
    StaleOffline,
    SyncOutcome,
    Updated,
    UpToDate,
    Validators,
)
from .presenter import Presenter

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    IDLE = "idle"
    CHECKING = "checking"


def normalize_etag(value: Optional[str]) -> Optional[str]:
    """Return ``value`` in quoted-string form.

    ``abc`` becomes ``"abc"``; ``"abc"`` and ``W/"abc"`` are kept as is;
    ``W/abc`` loses the weak prefix and becomes ``"abc"``.
    """
    if value is None:
        return None
    v = value.strip()
    if not v:
        return None
    if v.endswith('"') and (
        (v.startswith('"') and len(v) >= 2) or (v.startswith('W/"') and len(v) >= 4)
    ):
        return v
    if v.startswith("W/"):
        v = v[2:]
    return f'"{v}"'


def validators_from_headers(headers: Mapping[str, str]) -> Validators:
    return Validators(
        etag=normalize_etag(headers.get("etag")),
        last_modified=headers.get("last-modified") or None,
    )


def build_conditional_headers(validators: Optional[Validators]) -> Dict[str, str]:
    """Build If-None-Match / If-Modified-Since headers from stored validators."""
    h: Dict[str, str] = {}
    if validators is None:
        return h
    etag = normalize_etag(validators.etag)
    if etag:
        h["If-None-Match"] = etag
    if validators.last_modified:
        h["If-Modified-Since"] = validators.last_modified
    return h


def build_data_url(settings: Settings, today: Optional[date] = None) -> str:
    """Return the document URL, with a UTC-day cache-busting parameter if enabled."""
    if not settings.cache_bust:
        return settings.data_url
    day = (today or utc_now().date()).isoformat()
    return str(httpx.URL(settings.data_url).copy_merge_params({"d": day}))


class SyncOrchestrator:
    """Runs synchronization cycles against injected fetcher, cache and presenter.

    Only one cycle may be checking at a time; a call made while one is in
    flight returns None without touching the network.
    """

    def __init__(
        self,
        fetcher: TimedFetcher,
        cache: ConditionalCache,
        presenter: Presenter,
        settings: Settings,
        *,
        clock: Optional[FreshnessClock] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._presenter = presenter
        self._settings = settings
        self._clock = clock or FreshnessClock(cache, presenter, now)
        self._now = now
        self.state = SyncState.IDLE

    def _decode_cached(self, cached: Optional[CachedDocument]) -> Optional[OutlookDocument]:
        if cached is None:
            return None
        try:
            return decode_envelope(cached.raw_body)
        except ParseError as exc:
            logger.warning("Cached body is unusable: %s", exc)
            return None

    def _fetch(self, url: str, headers: Dict[str, str]) -> FetchResponse:
        return self._fetcher.fetch(
            url,
            headers=headers,
            timeout=self._settings.timeout_seconds,
            max_retries=self._settings.max_retries,
        )

    def _accept_body(self, resp: FetchResponse) -> Updated:
        doc = decode_envelope(resp.text)
        try:
            self._cache.save(resp.text, validators_from_headers(resp.headers), self._now())
        except CacheWriteError as exc:
            logger.warning("Showing fresh data without caching it: %s", exc)
        return Updated(document=doc)

    def _repair(self, url: str) -> SyncOutcome:
        """Refetch unconditionally after a 304 left nothing usable to show."""
        logger.warning("304 without a usable cached body; refetching unconditionally")
        resp = self._fetch(url, {})
        if resp.not_modified:
            return Empty(error="Server reported no changes but no cached data is available.")
        return self._accept_body(resp)

    def _resolve(self, url: str, cached: Optional[CachedDocument],
                 cached_doc: Optional[OutlookDocument]) -> SyncOutcome:
        headers = build_conditional_headers(cached.validators if cached else None)
        resp = self._fetch(url, headers)

        if resp.not_modified:
            if cached_doc is None:
                return self._repair(url)
            try:
                self._cache.touch(self._now())
            except CacheWriteError as exc:
                logger.warning("Could not record check time: %s", exc)
            logger.info("Not modified (304): %s", url)
            return UpToDate(document=cached_doc)

        return self._accept_body(resp)

    def _run(self) -> SyncOutcome:
        cached = self._cache.load()
        cached_doc = self._decode_cached(cached)
        if cached_doc is not None:
            self._presenter.show_document(cached_doc)
            self._clock.tick()
        else:
            self._presenter.show_loading()

        url = build_data_url(self._settings, self._now().date())
        try:
            outcome: SyncOutcome = self._resolve(url, cached, cached_doc)
        except OutlookSyncError as exc:
            if cached_doc is not None:
                logger.warning("Sync failed, keeping cached document: %s", exc)
                outcome = StaleOffline(document=cached_doc, error=classify_error(exc))
            else:
                logger.error("Sync failed with nothing cached: %s", exc)
                outcome = Empty(error=classify_error(exc))
        if isinstance(outcome, (Updated, UpToDate)):
            self._clock.tick()
        return outcome

    def run_cycle(self) -> Optional[SyncOutcome]:
        """Run one cycle and hand its outcome to the presenter.

        Returns:
            The cycle's outcome, or None if a cycle was already checking.
        """
        if self.state is SyncState.CHECKING:
            logger.info("Sync already in progress; not starting another")
            return None

        self.state = SyncState.CHECKING
        try:
            outcome = self._run()
            logger.info("Sync finished: %s", outcome.kind)
            self._presenter.show_outcome(outcome)
        finally:
            self.state = SyncState.IDLE
        return outcome

