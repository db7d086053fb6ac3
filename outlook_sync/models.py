"""Pydantic models shared across the client."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

PLACEHOLDER = "—"
MAX_KEY_POINTS = 4


class Validators(BaseModel):
    """HTTP validators stored alongside a cached body."""

    etag: Optional[str] = None
    last_modified: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.etag and not self.last_modified


class CachedDocument(BaseModel):
    """Last known-good envelope body plus the validators it was served with."""

    raw_body: str
    validators: Validators = Field(default_factory=Validators)
    last_checked_at: datetime


class HorizonView(BaseModel):
    """One forecast window, normalized for display."""

    label: str
    decision: Optional[str] = None
    score: Optional[float] = None
    key_points: List[str] = Field(default_factory=list)

    @field_validator("decision", mode="before")
    @classmethod
    def _upper_decision(cls, v: Any) -> Optional[str]:
        return v.upper() if isinstance(v, str) else None

    @field_validator("score", mode="before")
    @classmethod
    def _numeric_score(cls, v: Any) -> Optional[float]:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return float(v)

    @field_validator("key_points", mode="before")
    @classmethod
    def _first_points(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [str(p) for p in v[:MAX_KEY_POINTS]]

    @property
    def decision_text(self) -> str:
        return self.decision or PLACEHOLDER

    @property
    def score_text(self) -> str:
        return PLACEHOLDER if self.score is None else f"{self.score:.2f}"


class OutlookDocument(BaseModel):
    """Normalized outlook handed to the presenter."""

    timestamp_utc: Optional[str] = None
    date_utc: Optional[str] = None
    horizons: List[HorizonView]
    top_sources: List[str] = Field(default_factory=list)

    def horizon(self, label: str) -> Optional[HorizonView]:
        for h in self.horizons:
            if h.label == label:
                return h
        return None


# ---------------------------------------------------------------------------
# Cycle outcomes
# ---------------------------------------------------------------------------

class Updated(BaseModel):
    """A new body was downloaded and persisted."""

    kind: Literal["updated"] = "updated"
    document: OutlookDocument


class UpToDate(BaseModel):
    """The server confirmed the cached body is current (304)."""

    kind: Literal["up_to_date"] = "up_to_date"
    document: OutlookDocument


class StaleOffline(BaseModel):
    """The check failed; the cached document stays on display."""

    kind: Literal["stale_offline"] = "stale_offline"
    document: OutlookDocument
    error: str


class Empty(BaseModel):
    """The check failed and nothing usable is cached."""

    kind: Literal["empty"] = "empty"
    error: str


SyncOutcome = Union[Updated, UpToDate, StaleOffline, Empty]
