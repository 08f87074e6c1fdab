"""
Helpers for the JSON-LD documents written to the feed.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

ID = "@id"
TYPE = "@type"
CONTEXT = "@context"


def strip_nulls(value: Any) -> Any:
    """
    Recursively remove keys with value None from dictionaries.

    Lists are preserved, but their elements are also cleaned.
    """
    if isinstance(value, dict):
        return {k: strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_nulls(v) for v in value]
    return value


def _key_rank(name: str, value: Any) -> tuple:
    if name == ID:
        return (0, "")
    if name == TYPE:
        return (1, "")
    if name == CONTEXT:
        return (4, "")
    is_array = 1 if isinstance(value, list) else 0
    is_at = 1 if name.startswith("@") else 0
    return (2 + is_array, is_at, name.lower())


def format_json(value: Any) -> Any:
    """
    Apply the nuget.org key order recursively.

    @id, @type, then plain properties before arrays, keywords after plain
    names, case-insensitive alphabetical otherwise, @context last.
    """
    if isinstance(value, dict):
        ordered = sorted(value.items(), key=lambda kv: _key_rank(kv[0], kv[1]))
        return {k: format_json(v) for k, v in ordered}
    if isinstance(value, list):
        return [format_json(v) for v in value]
    return value


def create(entity_uri: str, types: str | Iterable[str]) -> Dict[str, Any]:
    """Start a document with @id and @type."""
    type_value: Any = types if isinstance(types, str) else list(types)
    return {ID: entity_uri, TYPE: type_value}


def get_types(json: Dict[str, Any]) -> List[str]:
    value = json.get(TYPE)
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


def copy_properties(source: Dict[str, Any], target: Dict[str, Any], names: Iterable[str], skip_empty: bool = False) -> None:
    for name in names:
        value = source.get(name)
        if value is None:
            continue
        if skip_empty and value in ("", [], {}):
            continue
        target[name] = value


def get_date_string(value: datetime) -> str:
    """Round-trip UTC date string, e.g. 2024-01-02T03:04:05.1234560Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f") + "0Z"


_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_date(value: Optional[str]) -> datetime:
    """Parse a date string written by get_date_string or any ISO-8601 variant."""
    if not value:
        raise ValueError("Missing date value")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # fromisoformat accepts at most microsecond precision
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
