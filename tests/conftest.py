"""Pytest configuration and shared fixtures for the test suite."""

import copy
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import requests

from ticobot.llm.base import CompletionStream
from ticobot.models import (
    BatchEmbeddingResponse,
    EmbeddingResponse,
    LLMResponse,
    SearchResult,
    TokenUsage,
    VectorDocument,
)
from ticobot.service.database.models import CacheEntry


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def ravendb_available() -> bool:
    """Check if RavenDB server is running and accessible.

    Returns:
        True if RavenDB is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:8080/databases", timeout=2)
        return response.status_code in (200, 401)  # Auth required is OK
    except requests.RequestException:
        return False


class InMemoryCacheStore:
    """CacheStore keeping entries in a dict."""

    def __init__(self) -> None:
        self.entries: dict[str, CacheEntry] = {}

    async def get(self, entry_id: str) -> CacheEntry | None:
        entry = self.entries.get(entry_id)
        return copy.deepcopy(entry) if entry else None

    async def put(self, entry: CacheEntry) -> None:
        self.entries[entry.Id] = copy.deepcopy(entry)

    async def delete(self, entry_ids: list[str]) -> None:
        for entry_id in entry_ids:
            self.entries.pop(entry_id, None)

    async def list_entries(self) -> list[dict[str, Any]]:
        return [
            {"Id": entry.Id, "expires_at": entry.expires_at, "question": entry.question}
            for entry in self.entries.values()
        ]


async def fragments(*parts: str) -> AsyncIterator[str]:
    """Async generator yielding the given text fragments."""
    for part in parts:
        yield part


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def mock_embedding():
    """Provide a simple mock embedding vector.

    Returns:
        List of floats representing an embedding vector
    """
    return [0.1, 0.2, 0.3, 0.15, -0.1, 0.05, 0.25, -0.05]


@pytest.fixture
def mock_embedder(mock_embedding):
    """Embedding provider double returning mock_embedding for every text."""
    embedder = MagicMock()
    embedder.generate_embedding = AsyncMock(
        return_value=EmbeddingResponse(
            embedding=mock_embedding, model="test-embed", usage=TokenUsage(3, 0, 3)
        )
    )

    async def generate_batch(texts):
        return BatchEmbeddingResponse(
            embeddings=[list(mock_embedding) for _ in texts], model="test-embed"
        )

    embedder.generate_batch = AsyncMock(side_effect=generate_batch)
    embedder.get_dimension.return_value = len(mock_embedding)
    embedder.get_model_name.return_value = "test-embed"
    return embedder


@pytest.fixture
def mock_llm():
    """LLM provider double answering "Respuesta de prueba"."""
    llm = MagicMock()
    llm.generate_completion = AsyncMock(
        return_value=LLMResponse(
            content="Respuesta de prueba",
            model="test-model",
            usage=TokenUsage(prompt_tokens=100, completion_tokens=20, total_tokens=120),
        )
    )
    llm.generate_streaming_completion = MagicMock(
        side_effect=lambda *args, **kwargs: CompletionStream(fragments("Respuesta ", "de prueba"))
    )
    llm.get_model_name.return_value = "test-model"
    llm.get_context_window.return_value = 32768
    return llm


@pytest.fixture
def make_search_result():
    """Factory fixture to create scored chunks.

    Returns:
        Function that creates a SearchResult with custom parameters
    """

    def _create_result(
        chunk_id: str = "Chunks/1",
        content: str = "El partido propone invertir en educación pública.",
        score: float = 0.8,
        party: str = "PLN",
        document_id: str = "Documents/pln",
        title: str = "Plan de Gobierno PLN",
        page_number: int | None = 3,
    ) -> SearchResult:
        return SearchResult(
            document=VectorDocument(
                id=chunk_id,
                content=content,
                embedding=[],
                metadata={
                    "party": party,
                    "title": title,
                    "documentId": document_id,
                    "pageNumber": page_number,
                },
            ),
            score=score,
        )

    return _create_result


@pytest.fixture
def ollama_embedder():
    """Provide an Ollama embedding provider, skip if Ollama not available.

    Raises:
        pytest.skip: If Ollama server is not running
    """
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from ticobot.embedding import OllamaEmbeddingProvider

    return OllamaEmbeddingProvider(host="http://localhost:11434", model="nomic-embed-text")


@pytest.fixture
def ravendb_store():
    """Provide RavenDB DocumentStore, skip if RavenDB not available.

    Raises:
        pytest.skip: If RavenDB server is not running
    """
    if not ravendb_available():
        pytest.skip("RavenDB server not running on localhost:8080")

    from ticobot.service.database import create_document_store

    store = create_document_store()
    yield store
    store.close()
