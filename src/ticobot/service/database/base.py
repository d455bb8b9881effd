"""Protocols for vector storage and document storage providers."""

from collections.abc import Sequence
from typing import Any, Protocol

from ticobot.models import Chunk, Document, QueryOptions, SearchResult, VectorDocument


class VectorStore(Protocol):
    """Protocol defining the interface for vector stores."""

    async def initialize(self) -> None:
        """Prepare the store (database and vector index)."""
        ...

    async def upsert(self, documents: Sequence[VectorDocument]) -> list[str]:
        """Insert or update documents and return their ids."""
        ...

    async def similarity_search(
        self, query_embedding: list[float], k: int, filters: dict[str, Any] | None = None
    ) -> list[SearchResult]:
        """Return at most k matches ordered by descending score.

        Filters are equality (or list inclusion) tests over metadata;
        ``party_id`` and ``partyId`` select a party by id or abbreviation.
        """
        ...

    async def delete(self, ids: Sequence[str]) -> None:
        ...

    async def get_by_id(self, id: str) -> VectorDocument | None:
        ...

    async def count(self, filters: dict[str, Any] | None = None) -> int:
        ...


class DatabaseProvider(Protocol):
    """Protocol defining the interface for document/chunk storage."""

    async def create_document(self, document: Document) -> Document:
        ...

    async def get_document_by_id(self, id: str) -> Document | None:
        ...

    async def update_document(self, id: str, updates: dict[str, Any]) -> Document:
        ...

    async def delete_document(self, id: str) -> None:
        """Delete a document together with all of its chunks."""
        ...

    async def list_documents(self, options: QueryOptions | None = None) -> list[Document]:
        ...

    async def create_chunk(self, chunk: Chunk) -> Chunk:
        ...

    async def create_chunks(self, chunks: Sequence[Chunk]) -> list[Chunk]:
        ...

    async def get_chunk_by_id(self, id: str) -> Chunk | None:
        ...

    async def get_chunks_by_document_id(
        self, document_id: str, options: QueryOptions | None = None
    ) -> list[Chunk]:
        ...

    async def delete_chunk(self, id: str) -> None:
        ...

    async def delete_chunks_by_document_id(self, document_id: str) -> int:
        ...

    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    async def health_check(self) -> bool:
        ...
