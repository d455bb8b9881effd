"""RavenDB-backed vector store for document chunks."""

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from ticobot.constants import CHUNKS_COLLECTION
from ticobot.errors import ErrorKind, ProviderError, RecordNotFoundError
from ticobot.models import SearchResult, VectorDocument
from ticobot.service.database.config import RavenDBConfig
from ticobot.service.database.models import ChunkEntity
from ticobot.service.database.operations import RavenConnection, ensure_index_exists
from ticobot.service.database.utils import (
    PARTY_METADATA_KEYS,
    cosine_similarity,
    matches_filters,
    matches_party,
    record_id,
    to_iso,
    utc_now,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def split_party_filter(filters: dict[str, Any] | None) -> tuple[str | None, dict[str, Any]]:
    """Separate the party selector from the remaining metadata filters.

    Both ``party_id`` and ``partyId`` are accepted.
    """
    remaining = dict(filters or {})
    party_id = remaining.pop("party_id", None)
    party_camel = remaining.pop("partyId", None)
    return party_id or party_camel, remaining


def filtered_query(query: Any, party: str | None, metadata_filters: dict[str, Any]) -> Any:
    """Restrict a chunk query by party and metadata before vector ranking.

    The party matches any of the party-like metadata keys. A list, tuple or
    set filter value matches any member.

    Args:
        query: RavenDB document query over the Chunks collection
        party: Party id or abbreviation, or None
        metadata_filters: metadata field -> expected value

    Returns:
        The query, ready for ``vector_search``
    """
    if party:
        query = query.open_subclause()
        for position, key in enumerate(PARTY_METADATA_KEYS):
            if position:
                query = query.or_else()
            query = query.where_equals(f"metadata.{key}", str(party))
        query = query.close_subclause().and_also()

    for key, expected in metadata_filters.items():
        if isinstance(expected, (list, tuple, set, frozenset)):
            query = query.where_in(f"metadata.{key}", list(expected))
        else:
            query = query.where_equals(f"metadata.{key}", expected)
        query = query.and_also()

    return query


def result_score(result: dict[str, Any], query_embedding: list[float]) -> float:
    """Score a vector search hit, preferring the index score."""
    index_score = result.get("@metadata", {}).get("@index-score")
    if index_score is not None:
        return float(index_score)
    return cosine_similarity(query_embedding, result.get("embedding") or [])


async def run_storage(operation: str, func: Callable[..., T], *args: Any) -> T:
    """Run a blocking RavenDB call in a worker thread.

    Raises:
        ProviderError: Wrapping any client failure, prefixed with the operation
        RecordNotFoundError: Raised by func for a missing record, unchanged
    """
    try:
        return await asyncio.to_thread(func, *args)
    except (ProviderError, RecordNotFoundError):
        raise
    except Exception as e:
        logger.error(f"❌ RavenDB {operation} failed: {e}", exc_info=True)
        raise ProviderError(f"RavenDB {operation} failed: {e}", ErrorKind.VENDOR, "RavenDB") from e


class RavenVectorStore(RavenConnection):
    """Vector store keeping chunk embeddings in the Chunks collection.

    Chunks are shared with RavenDatabaseProvider: upserting a VectorDocument
    whose id names an existing chunk attaches the embedding to it.
    """

    def __init__(
        self,
        url: str | None = None,
        database: str | None = None,
        dimensions: int | None = None,
        match_threshold: float | None = None,
    ) -> None:
        """Initialize the vector store.

        Args:
            url: RavenDB server URL
            database: Database name
            dimensions: Embedding length declared on the vector index
            match_threshold: Matches must score strictly above this value
        """
        super().__init__(url, database)
        self.dimensions = dimensions
        self.match_threshold = (
            RavenDBConfig.get_match_threshold() if match_threshold is None else match_threshold
        )

    async def initialize(self) -> None:
        await run_storage("initialization", self._initialize_sync)

    def _initialize_sync(self) -> None:
        self.ensure_database()
        ensure_index_exists(self.store, self.dimensions)
        logger.info(f"✅ Vector store ready in database {self.database}")

    async def upsert(self, documents: Sequence[VectorDocument]) -> list[str]:
        """Insert or update chunk embeddings.

        Args:
            documents: Documents to store; ``documentId``, ``chunkIndex`` and
                ``pageNumber`` metadata keys fill the chunk fields

        Returns:
            list[str]: Ids of the stored documents, in input order
        """
        if not documents:
            return []
        return await run_storage("upsert", self._upsert_sync, list(documents))

    def _upsert_sync(self, documents: list[VectorDocument]) -> list[str]:
        ids = []
        with self.store.open_session() as session:
            for doc in documents:
                entity = session.load(doc.id, ChunkEntity) if doc.id else None
                if entity is None:
                    doc_id = doc.id or f"{CHUNKS_COLLECTION}/{uuid.uuid4()}"
                    entity = ChunkEntity(
                        Id=doc_id,
                        document_id=doc.metadata.get("documentId") or "",
                        chunk_index=doc.metadata.get("chunkIndex", 0),
                        page_number=doc.metadata.get("pageNumber"),
                        created_at=to_iso(utc_now()),
                    )
                    session.store(entity, doc_id)
                    session.advanced.get_metadata_for(entity)["@collection"] = CHUNKS_COLLECTION
                else:
                    doc_id = doc.id

                entity.content = doc.content
                entity.embedding = list(doc.embedding)
                entity.metadata = dict(doc.metadata)
                ids.append(doc_id)

            session.save_changes()

        logger.info(f"💾 Upserted {len(ids)} vectors")
        return ids

    async def similarity_search(
        self, query_embedding: list[float], k: int, filters: dict[str, Any] | None = None
    ) -> list[SearchResult]:
        """Find the chunks most similar to a query embedding.

        Args:
            query_embedding: Query vector
            k: Maximum number of results
            filters: Optional metadata filters; ``party_id``/``partyId`` match
                the chunk's party id or abbreviation

        Returns:
            list[SearchResult]: At most k results, highest score first, each
            scoring above the match threshold
        """
        if k <= 0:
            return []
        return await run_storage(
            "similarity search", self._similarity_search_sync, list(query_embedding), k, filters
        )

    def _similarity_search_sync(
        self, query_embedding: list[float], k: int, filters: dict[str, Any] | None
    ) -> list[SearchResult]:
        party, metadata_filters = split_party_filter(filters)

        with self.store.open_session() as session:
            query = filtered_query(
                session.query_collection(CHUNKS_COLLECTION, object_type=dict),
                party,
                metadata_filters,
            )
            rows = list(
                query.vector_search("embedding", query_embedding).order_by_score().take(k)
            )

        results = []
        for row in rows:
            metadata = row.get("metadata") or {}
            score = result_score(row, query_embedding)
            if score <= self.match_threshold:
                continue
            results.append(
                SearchResult(
                    document=VectorDocument(
                        id=record_id(row),
                        content=row.get("content", ""),
                        embedding=row.get("embedding") or [],
                        metadata=metadata,
                    ),
                    score=score,
                )
            )

        results.sort(key=lambda result: result.score, reverse=True)
        return results[:k]

    async def delete(self, ids: Sequence[str]) -> None:
        if ids:
            await run_storage("delete", self._delete_sync, list(ids))

    def _delete_sync(self, ids: list[str]) -> None:
        with self.store.open_session() as session:
            for doc_id in ids:
                session.delete(doc_id)
            session.save_changes()

    async def get_by_id(self, id: str) -> VectorDocument | None:
        return await run_storage("get by id", self._get_by_id_sync, id)

    def _get_by_id_sync(self, doc_id: str) -> VectorDocument | None:
        with self.store.open_session() as session:
            entity = session.load(doc_id, ChunkEntity)
        if entity is None:
            return None
        return VectorDocument(
            id=entity.Id or doc_id,
            content=entity.content,
            embedding=list(entity.embedding or []),
            metadata=dict(entity.metadata or {}),
        )

    async def count(self, filters: dict[str, Any] | None = None) -> int:
        """Count stored chunks, optionally restricted by metadata filters."""
        return await run_storage("count", self._count_sync, filters)

    def _count_sync(self, filters: dict[str, Any] | None) -> int:
        party, metadata_filters = split_party_filter(filters)
        with self.store.open_session() as session:
            rows = list(session.advanced.raw_query(f"from {CHUNKS_COLLECTION}", object_type=dict))

        if not party and not metadata_filters:
            return len(rows)
        return sum(
            1
            for row in rows
            if (not party or matches_party(row.get("metadata") or {}, party))
            and matches_filters(row.get("metadata") or {}, metadata_filters)
        )
