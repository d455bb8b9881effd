"""Question -> answer cache for the chat endpoint.

Entries are keyed on the normalized question together with the retrieval
parameters that influence the answer (party filter, top_k and minimum
relevance score). Entries may carry an expiry; expired entries are treated as
misses and removed when read.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol

from ticobot.constants import (
    CHAT_CACHE_COLLECTION,
    DEFAULT_MIN_RELEVANCE_SCORE,
    DEFAULT_TOP_K,
)
from ticobot.errors import ProviderError
from ticobot.service.database.models import CacheEntry
from ticobot.service.database.utils import from_iso, to_iso, utc_now

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Storage used by AnswerCache."""

    async def get(self, entry_id: str) -> CacheEntry | None: ...

    async def put(self, entry: CacheEntry) -> None: ...

    async def delete(self, entry_ids: list[str]) -> None: ...

    async def list_entries(self) -> list[dict[str, Any]]: ...


@dataclass
class CachedAnswer:
    """A cache hit."""

    answer: str
    sources: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


def normalize_question(question: str) -> str:
    """Lowercase, trim and collapse whitespace."""
    return " ".join(question.lower().split())


def _key_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def hash_question(question: str) -> str:
    return hashlib.sha256(normalize_question(question).encode("utf-8")).hexdigest()


def hash_cache_key(
    question: str,
    party: str | None = None,
    top_k: int | None = None,
    min_relevance_score: float | None = None,
) -> str:
    """Hash the question together with the parameters that shape the answer.

    The key is ``question|party or 'all'|top_k or 5|min score or 0.1``.
    """
    key = "|".join(
        [
            normalize_question(question),
            party or "all",
            _key_number(top_k if top_k is not None else DEFAULT_TOP_K),
            _key_number(
                min_relevance_score
                if min_relevance_score is not None
                else DEFAULT_MIN_RELEVANCE_SCORE
            ),
        ]
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def is_expired(expires_at: str | None) -> bool:
    expiry = from_iso(expires_at)
    return expiry is not None and expiry < utc_now()


class AnswerCache:
    """Caches chat answers in a CacheStore."""

    def __init__(self, store: CacheStore) -> None:
        self.store = store

    @staticmethod
    def entry_id(
        question: str, party: str | None, top_k: int | None, min_score: float | None
    ) -> str:
        return f"{CHAT_CACHE_COLLECTION}/{hash_cache_key(question, party, top_k, min_score)}"

    async def get_cached(
        self,
        question: str,
        party: str | None = None,
        top_k: int | None = None,
        min_relevance_score: float | None = None,
    ) -> CachedAnswer | None:
        """Look up a cached answer.

        Args:
            question: The user's question
            party: Party filter used for retrieval
            top_k: Number of chunks used for retrieval
            min_relevance_score: Relevance threshold used for retrieval

        Returns:
            CachedAnswer | None: The cached answer, or None on a miss, an
            expired entry, or a storage error
        """
        entry_id = self.entry_id(question, party, top_k, min_relevance_score)
        logger.debug(f"🔍 Cache lookup: {entry_id[-16:]} (party={party or 'all'})")

        try:
            entry = await self.store.get(entry_id)
        except ProviderError as e:
            logger.warning(f"⚠️ Error reading answer cache: {e}")
            return None

        if entry is None or entry.question_hash != hash_question(question):
            logger.info(f"🔍 Cache MISS: {question[:60]!r}")
            return None

        if is_expired(entry.expires_at):
            logger.info(f"⌛ Cache entry expired: {question[:60]!r}")
            try:
                await self.store.delete([entry_id])
            except ProviderError as e:
                logger.warning(f"⚠️ Error deleting expired cache entry: {e}")
            return None

        logger.info(f"✅ Cache HIT: {question[:60]!r}")
        return CachedAnswer(
            answer=entry.answer,
            sources=list(entry.sources or []),
            metadata=dict(entry.metadata or {}),
        )

    async def set_cached(
        self,
        question: str,
        answer: str,
        sources: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
        party: str | None = None,
        top_k: int | None = None,
        min_relevance_score: float | None = None,
        expires_in_hours: float | None = None,
    ) -> None:
        """Store an answer, replacing any entry under the same key.

        Args:
            question: The user's question
            answer: Generated answer
            sources: Sources shown with the answer
            metadata: Extra metadata (model, tokens used, processing time...)
            party: Party filter used for retrieval
            top_k: Number of chunks used for retrieval
            min_relevance_score: Relevance threshold used for retrieval
            expires_in_hours: Lifetime of the entry; None never expires
        """
        now = utc_now()
        expires_at = now + timedelta(hours=expires_in_hours) if expires_in_hours else None
        entry = CacheEntry(
            Id=self.entry_id(question, party, top_k, min_relevance_score),
            question=question,
            question_hash=hash_question(question),
            cache_key_hash=hash_cache_key(question, party, top_k, min_relevance_score),
            party=party,
            answer=answer,
            sources=list(sources),
            metadata={**(metadata or {}), "cached_at": to_iso(now)},
            created_at=to_iso(now),
            expires_at=to_iso(expires_at),
        )

        try:
            await self.store.put(entry)
            logger.info(f"💾 Cached answer for {question[:60]!r}")
        except ProviderError as e:
            logger.warning(f"⚠️ Error storing answer cache: {e}")

    async def invalidate(self, question: str, party: str | None = None) -> None:
        """Remove the entry cached with default retrieval parameters."""
        await self.store.delete([self.entry_id(question, party, None, None)])

    async def cleanup_expired(self) -> int:
        """Delete expired entries and return how many were removed."""
        entries = await self.store.list_entries()
        expired_ids = [entry["Id"] for entry in entries if is_expired(entry.get("expires_at"))]
        await self.store.delete(expired_ids)
        logger.info(f"🧹 Removed {len(expired_ids)} expired cache entries")
        return len(expired_ids)

    async def clear(self) -> int:
        """Delete every entry and return how many were removed."""
        entries = await self.store.list_entries()
        await self.store.delete([entry["Id"] for entry in entries])
        logger.info(f"🧹 Cleared {len(entries)} cache entries")
        return len(entries)

    async def get_stats(self) -> dict[str, int]:
        """Count entries.

        Returns:
            dict: total, expired and never_expires counts
        """
        entries = await self.store.list_entries()
        return {
            "total": len(entries),
            "expired": sum(1 for entry in entries if is_expired(entry.get("expires_at"))),
            "never_expires": sum(1 for entry in entries if not entry.get("expires_at")),
        }
