"""Persistent storage for the last known-good envelope and its validators."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

from .errors import CacheCorruptError, CacheWriteError
from .models import CachedDocument, Validators

logger = logging.getLogger(__name__)

KEY_ETAG = "etag"
KEY_BODY = "body"
KEY_CHECKED_AT = "last_checked_at"
KEY_LAST_MODIFIED = "last_modified"


class KeyValueStore(Protocol):
    """Durable scalar key space. ``update`` must apply all keys in one write."""

    def read(self) -> Dict[str, Optional[str]]:
        ...

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        ...


class MemoryStore:
    """In-process store; contents live as long as the object."""

    def __init__(self, initial: Optional[Mapping[str, Optional[str]]] = None) -> None:
        self.data: Dict[str, Optional[str]] = dict(initial or {})

    def read(self) -> Dict[str, Optional[str]]:
        return dict(self.data)

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        self.data.update(values)


def _write_json_atomic(path: Path, payload: Dict[str, Any]) -> None:
    """Write JSON atomically via tmp-file rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


class JsonFileStore:
    """Store backed by a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> Dict[str, Optional[str]]:
        """Return stored entries. Missing file reads as empty.

        Raises:
            CacheCorruptError: If the file exists but is not a JSON object.
        """
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheCorruptError(f"Unreadable cache file {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise CacheCorruptError(f"Cache file {self.path} is not a JSON object")
        return {k: (v if v is None else str(v)) for k, v in raw.items()}

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        try:
            current = self.read()
        except CacheCorruptError:
            logger.warning("Overwriting corrupt cache file: %s", self.path)
            current = {}
        current.update(values)
        _write_json_atomic(self.path, current)


class ConditionalCache:
    """Body, validators and last check time over a KeyValueStore.

    Body and validators are only ever written together; ``touch`` is the one
    operation allowed to move the check time on its own.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def _read_entry(self) -> Optional[CachedDocument]:
        entries = self._store.read()
        body = entries.get(KEY_BODY)
        if body is None:
            if entries.get(KEY_ETAG) or entries.get(KEY_LAST_MODIFIED):
                raise CacheCorruptError("Validators stored without a body")
            return None

        checked_raw = entries.get(KEY_CHECKED_AT)
        if not checked_raw:
            raise CacheCorruptError("Missing last check timestamp")
        try:
            checked_at = datetime.fromisoformat(checked_raw)
        except ValueError as exc:
            raise CacheCorruptError(f"Bad last check timestamp: {checked_raw!r}") from exc

        return CachedDocument(
            raw_body=body,
            validators=Validators(
                etag=entries.get(KEY_ETAG) or None,
                last_modified=entries.get(KEY_LAST_MODIFIED) or None,
            ),
            last_checked_at=checked_at,
        )

    def load(self) -> Optional[CachedDocument]:
        """Return the cached document, or None when absent or malformed."""
        try:
            return self._read_entry()
        except CacheCorruptError as exc:
            logger.warning("Ignoring corrupt cache: %s", exc)
            return None

    def _write(self, values: Mapping[str, Optional[str]]) -> None:
        try:
            self._store.update(values)
        except OSError as exc:
            raise CacheWriteError(f"Could not write cache: {exc}") from exc

    def save(self, raw_body: str, validators: Validators, checked_at: datetime) -> None:
        """Replace body, validators and check time in a single write.

        Raises:
            CacheWriteError: If the store fails; nothing is partially written.
        """
        self._write({
            KEY_BODY: raw_body,
            KEY_ETAG: validators.etag,
            KEY_LAST_MODIFIED: validators.last_modified,
            KEY_CHECKED_AT: checked_at.isoformat(),
        })
        logger.info(
            "Cached new body (%d chars, etag=%s)", len(raw_body), validators.etag
        )

    def touch(self, checked_at: datetime) -> None:
        """Advance only the last check time."""
        self._write({KEY_CHECKED_AT: checked_at.isoformat()})
        logger.debug("Touched cache at %s", checked_at.isoformat())
