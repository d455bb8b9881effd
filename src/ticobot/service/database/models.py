"""Entities persisted in RavenDB.

All entities use eq=False and hash by identity, which RavenDB's session
entity tracking requires. Timestamps are stored as ISO-8601 strings.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class DocumentEntity:
    """A source document stored in the Documents collection."""

    Id: str | None = None
    title: str = ""
    source: str = ""
    url: str = ""
    page_count: int | None = None
    publication_date: str | None = None
    party: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    def __hash__(self) -> int:
        return id(self)


@dataclass(eq=False)
class ChunkEntity:
    """A document chunk with embedding for vector search.

    Chunks created through the database provider have no embedding until the
    vector store upserts one under the same id.

    Attributes:
        Id: RavenDB document ID
        document_id: Id of the parent DocumentEntity
        chunk_index: Position of this chunk within the document
        content: The text content of the chunk
        page_number: Source page, if known
        embedding: Vector embedding of the text
        metadata: Additional metadata (party, title, documentId, ...)
        created_at: Creation timestamp
    """

    Id: str | None = None
    document_id: str = ""
    chunk_index: int = 0
    content: str = ""
    page_number: int | None = None
    embedding: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None

    def __hash__(self) -> int:
        return id(self)


@dataclass(eq=False)
class CacheEntry:
    """A cached chat answer stored in the ChatCache collection."""

    Id: str | None = None
    question: str = ""
    question_hash: str = ""
    cache_key_hash: str = ""
    party: str | None = None
    answer: str = ""
    sources: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    expires_at: str | None = None

    def __hash__(self) -> int:
        return id(self)
