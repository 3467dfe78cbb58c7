"""
Canonical JSON Serialization

Provides deterministic JSON serialization for hashing and comparison.
Based on RFC 8785 (JSON Canonicalization Scheme) principles:
- Sorted keys (lexicographic)
- No whitespace
- Consistent number formatting (Decimal as string)
- UTF-8 encoding

Used for decision fingerprints (idempotence checks), ATR references,
citation excerpt hashes and configuration pack hashes.
"""
from __future__ import annotations

import hashlib
import json
import unicodedata
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def _default_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for non-standard types.

    Handles:
    - datetime/date: ISO 8601 format
    - Decimal: string (preserves precision)
    - Enum: value
    - dataclass: dict
    - set/frozenset: sorted list
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    The output is deterministic: same input always produces same output.

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        default=_default_serializer,
        ensure_ascii=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def content_hash(obj: Any) -> str:
    """
    Compute SHA-256 hash of canonical JSON representation.

    Returns:
        Hex-encoded SHA-256 hash string (64 characters)
    """
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()


def content_hash_short(obj: Any, length: int = 12) -> str:
    """Compute truncated SHA-256 hash for display purposes."""
    return content_hash(obj)[:length]


def text_hash(text: str) -> str:
    """Compute SHA-256 hash of text content."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_excerpt(text: str) -> str:
    """
    Normalize clause wording for consistent hashing.

    Normalization:
    - Unicode normalize (NFKC)
    - Collapse whitespace (including line breaks) to single spaces
    - Strip leading/trailing whitespace
    - DO NOT lowercase (preserves legal text fidelity)

    Example:
        >>> normalize_excerpt("  Depreciation shall\\n  apply...  ")
        'Depreciation shall apply...'
    """
    text = unicodedata.normalize("NFKC", text)
    return " ".join(text.split())


def excerpt_hash(text: str) -> str:
    """Compute SHA-256 hash of a normalized clause excerpt."""
    return text_hash(normalize_excerpt(text))


def compute_config_pack_hash(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 hash of a configuration pack in canonical JSON form.

    The hash identifies which rate, depreciation, fraud and clause tables a
    quote or decision was computed against. Metadata that does not change
    behaviour (description) is excluded.

    Args:
        data: Raw pack dictionary as loaded from YAML/JSON

    Returns:
        Hex-encoded SHA-256 hash string (64 characters)
    """
    payload = {k: v for k, v in data.items() if k != "description"}
    return content_hash(payload)
