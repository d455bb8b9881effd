"""Utility functions for database operations."""

import math
from datetime import datetime, timezone
from typing import Any

PARTY_METADATA_KEYS = ("party", "partyId", "party_id", "partyAbbreviation")


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First embedding vector
        vec_b: Second embedding vector

    Returns:
        float: Cosine similarity score, 0.0 for empty or mismatched vectors
    """
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    magnitude_a = math.sqrt(sum(a * a for a in vec_a))
    magnitude_b = math.sqrt(sum(b * b for b in vec_b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def from_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp stored by this package."""
    if not value:
        return None
    return datetime.fromisoformat(value)


def record_id(record: dict[str, Any]) -> str | None:
    """Get the RavenDB id of a query result loaded as a dict."""
    return record.get("@metadata", {}).get("@id") or record.get("Id")


def matches_party(metadata: dict[str, Any], party: str) -> bool:
    """Check whether chunk metadata belongs to a party.

    The party may be given as id or abbreviation, so every party-like
    metadata key is compared.
    """
    return any(
        metadata.get(key) is not None and str(metadata.get(key)) == str(party)
        for key in PARTY_METADATA_KEYS
    )


def matches_filters(values: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Check equality/inclusion filters against a mapping.

    Args:
        values: Mapping to test (metadata or entity fields)
        filters: field -> value; a list, tuple or set value matches any member

    Returns:
        bool: True when every filter matches
    """
    for key, expected in (filters or {}).items():
        actual = values.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True
