"""outlook-sync — conditional-GET synchronization client for the daily market outlook."""

from .cache import ConditionalCache, JsonFileStore, MemoryStore
from .config import Settings, get_settings
from .envelope import decode_envelope
from .fetcher import FetchResponse, TimedFetcher
from .freshness import FreshnessClock, freshness_label
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
from .sync import SyncOrchestrator, normalize_etag

__all__ = [
    "Settings",
    "get_settings",
    "ConditionalCache",
    "JsonFileStore",
    "MemoryStore",
    "decode_envelope",
    "FetchResponse",
    "TimedFetcher",
    "FreshnessClock",
    "freshness_label",
    "CachedDocument",
    "Validators",
    "OutlookDocument",
    "SyncOutcome",
    "Updated",
    "UpToDate",
    "StaleOffline",
    "Empty",
    "SyncOrchestrator",
    "normalize_etag",
]
