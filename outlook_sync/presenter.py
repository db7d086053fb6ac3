"""Presenter interface and a plain-text terminal implementation."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from typing import List, Optional, Protocol, TextIO

import httpx

from .envelope import HORIZONS
from .models import (
    PLACEHOLDER,
    Empty,
    OutlookDocument,
    StaleOffline,
    SyncOutcome,
    Updated,
    UpToDate,
)


class Presenter(Protocol):
    """Receives documents and status signals from the orchestrator."""

    def show_loading(self) -> None:
        ...

    def show_document(self, document: OutlookDocument) -> None:
        ...

    def show_outcome(self, outcome: SyncOutcome) -> None:
        ...

    def show_freshness(self, label: str) -> None:
        ...


def safe_href(value: object) -> Optional[str]:
    """Return a normalized http(s) URL, or None for anything else."""
    try:
        url = httpx.URL(str(value))
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    if url.scheme not in ("http", "https") or not url.host:
        return None
    return str(url)


def display_href(href: str) -> str:
    text = href.split("://", 1)[-1]
    return text[:-1] if text.endswith("/") else text


def format_utc(ts: Optional[str]) -> str:
    if not ts:
        return PLACEHOLDER
    try:
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return PLACEHOLDER
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S UTC")


class TextPresenter:
    """Writes cards and status lines to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stdout

    def _write(self, line: str = "") -> None:
        self.stream.write(line + "\n")

    def show_loading(self) -> None:
        self._write("Loading…")

    def show_freshness(self, label: str) -> None:
        self._write(f"Checked: {label}")

    def show_document(self, document: OutlookDocument) -> None:
        self._write(f"Last updated: {format_utc(document.timestamp_utc)}")
        if document.date_utc:
            self._write(f"Assessment date (UTC): {document.date_utc}")
        for h in document.horizons:
            self._write()
            self._write(f"[{h.label}] {h.decision_text}")
            self._write(f"  Score: {h.score_text}")
            for point in h.key_points or ["No key points."]:
                self._write(f"  - {point}")

        sources: List[str] = []
        for s in document.top_sources:
            href = safe_href(s)
            if href:
                sources.append(display_href(href))
        if sources:
            self._write()
            self._write("Sources:")
            for s in sources:
                self._write(f"  * {s}")

    def _show_unavailable(self) -> None:
        for label, _ in HORIZONS:
            self._write()
            self._write(f"[{label}] {PLACEHOLDER}")
            self._write(f"  Score: {PLACEHOLDER}")
            self._write("  - Data unavailable.")

    def show_outcome(self, outcome: SyncOutcome) -> None:
        if isinstance(outcome, Updated):
            self.show_document(outcome.document)
            self._write("Loaded.")
        elif isinstance(outcome, UpToDate):
            self._write("Up to date.")
        elif isinstance(outcome, StaleOffline):
            self._write(f"Offline, showing cached data ({outcome.error})")
        elif isinstance(outcome, Empty):
            self._write(f"Error: {outcome.error}")
            self._show_unavailable()
