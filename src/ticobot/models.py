"""Shared request/response types used between providers, storage and the RAG layer."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Role = Literal["system", "user", "assistant"]
FinishReason = Literal["stop", "length", "content_filter", "function_call"]

FINISH_REASONS: tuple[str, ...] = ("stop", "length", "content_filter", "function_call")


@dataclass
class LLMMessage:
    """One turn in a conversation."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling configuration for a single completion call.

    Every field is optional; unset fields are left to the vendor default.
    """

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: tuple[str, ...] | None = None


@dataclass
class TokenUsage:
    """Token accounting reported by a vendor."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """Result of a non-streaming completion."""

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: FinishReason = "stop"


@dataclass
class EmbeddingResponse:
    """A single embedding vector and its usage."""

    embedding: list[float]
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class BatchEmbeddingResponse:
    """Embedding vectors for a batch of texts, in input order."""

    embeddings: list[list[float]]
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class VectorDocument:
    """A stored chunk together with its embedding."""

    content: str
    embedding: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass
class SearchResult:
    """A retrieved match and its similarity score."""

    document: VectorDocument
    score: float


@dataclass
class Document:
    """Source document (one party's government plan).

    Attributes:
        id: Storage identifier
        title: Human-readable title
        source: Origin of the document (e.g. "TSE")
        url: Download URL of the original PDF
        page_count: Number of pages, if known
        publication_date: Publication date, if known
        party: Party identifier (e.g. "PLN")
        metadata: Free-form metadata
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    id: str
    title: str
    source: str
    url: str
    page_count: int | None = None
    publication_date: datetime | None = None
    party: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Chunk:
    """A segment of a document stored independently for retrieval."""

    id: str
    document_id: str
    content: str
    chunk_index: int
    page_number: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class QueryOptions:
    """Paging, ordering and filtering for list operations."""

    limit: int | None = None
    offset: int = 0
    order_by: str | None = None
    order_direction: Literal["asc", "desc"] = "asc"
    filters: dict[str, Any] = field(default_factory=dict)
