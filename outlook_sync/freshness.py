"""Coarse "last checked" labels."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from .cache import ConditionalCache

if TYPE_CHECKING:
    from .presenter import Presenter

logger = logging.getLogger(__name__)

JUST_NOW = timedelta(seconds=30)
ONE_HOUR = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def freshness_label(last_checked_at: datetime, now: datetime) -> str:
    """Return "just now", "<n> min ago" or "<n> h ago" (floored)."""
    diff = now - last_checked_at
    if diff < JUST_NOW:
        return "just now"
    if diff < ONE_HOUR:
        return f"{int(diff.total_seconds() // 60)} min ago"
    return f"{int(diff.total_seconds() // 3600)} h ago"


class FreshnessClock:
    """Reads the last check time from the cache and pushes a label."""

    def __init__(
        self,
        cache: ConditionalCache,
        presenter: Optional["Presenter"] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache = cache
        self._presenter = presenter
        self._now = now

    def tick(self) -> Optional[str]:
        cached = self._cache.load()
        if cached is None:
            return None
        label = freshness_label(cached.last_checked_at, self._now())
        if self._presenter is not None:
            self._presenter.show_freshness(label)
        return label
