"""Decoding of the wire envelope into a normalized OutlookDocument."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from .errors import ParseError
from .models import HorizonView, OutlookDocument

logger = logging.getLogger(__name__)

HORIZONS: Tuple[Tuple[str, str], ...] = (
    ("Short-term", "short_term"),
    ("Mid-term", "mid_term"),
    ("Long-term", "long_term"),
)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def decode_response(value: Any) -> Dict[str, Any]:
    """Return the payload object from the envelope's ``response`` field.

    The generator has shipped the payload both as a JSON-encoded string and
    as an embedded object; both are accepted.
    """
    if isinstance(value, str):
        try:
            payload = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ParseError('Invalid JSON inside "response" string') from exc
        if not isinstance(payload, dict):
            raise ParseError('"response" string does not encode an object')
        return payload
    if isinstance(value, dict):
        return value
    raise ParseError('Missing "response" payload')


def normalize_payload(payload: Dict[str, Any], timestamp_utc: Any = None) -> OutlookDocument:
    """Build an OutlookDocument from a decoded payload object."""
    horizons: List[HorizonView] = []
    for label, key in HORIZONS:
        obj = payload.get(key)
        fields = obj if isinstance(obj, dict) else {}
        horizons.append(HorizonView.model_validate({**fields, "label": label}))

    sources = payload.get("top_sources")
    return OutlookDocument(
        timestamp_utc=_optional_text(timestamp_utc),
        date_utc=_optional_text(payload.get("date_utc")),
        horizons=horizons,
        top_sources=[str(s) for s in sources] if isinstance(sources, list) else [],
    )


def decode_envelope(raw_body: str) -> OutlookDocument:
    """Parse the raw envelope text and normalize its payload.

    Raises:
        ParseError: If the body is not a JSON object or carries no usable
            ``response`` field.
    """
    try:
        top = json.loads(raw_body)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid envelope JSON: {exc.msg}") from exc
    if not isinstance(top, dict):
        raise ParseError("Envelope is not a JSON object")

    payload = decode_response(top.get("response"))
    doc = normalize_payload(payload, top.get("timestamp_utc"))
    logger.debug("Decoded envelope (date_utc=%s)", doc.date_utc)
    return doc
