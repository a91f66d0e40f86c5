"""Lenient JSON field codecs.

The backend stores lists and objects as JSON strings inside records
(``ability_scores``, ``inventory``, ``skills`` ...). Reading them never
raises: corrupt text falls back to a default so a bad row still renders.
Writing uses compact separators so payloads match what the browser
client sent byte for byte.
"""

from __future__ import annotations

import json
from typing import Any

from dnd_roster.core.logging import get_logger


logger = get_logger(__name__)


def dump_json(value: Any) -> str:
    """Encode a value the way ``JSON.stringify`` does (no spaces)."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _decode(value: Any, field: str) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        return value
    if not value.strip():
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        logger.debug("Malformed JSON field, using default", field=field, raw=value[:80])
        return None


def parse_json_list(value: Any, *, field: str = "") -> list[Any]:
    """Decode a JSON list field, returning [] for anything unusable."""
    decoded = _decode(value, field)
    if isinstance(decoded, list):
        return decoded
    if decoded is not None:
        logger.debug("JSON field is not a list, using default", field=field)
    return []


def parse_json_object(value: Any, *, field: str = "") -> dict[str, Any]:
    """Decode a JSON object field, returning {} for anything unusable."""
    decoded = _decode(value, field)
    if isinstance(decoded, dict):
        return decoded
    if decoded is not None:
        logger.debug("JSON field is not an object, using default", field=field)
    return {}


__all__ = [
    "dump_json",
    "parse_json_list",
    "parse_json_object",
]
