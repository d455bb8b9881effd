"""Ollama embedding provider implementation."""

import logging
from collections.abc import Sequence

import httpx
import ollama

from ticobot.constants import (
    DEFAULT_OLLAMA_EMBEDDING_MODEL,
    DEFAULT_OLLAMA_HOST,
    OLLAMA_EMBEDDING_DIMENSIONS,
    OLLAMA_MAX_INPUT_TOKENS,
)
from ticobot.embedding.base import DimensionGuardMixin
from ticobot.llm.ollama import ollama_error
from ticobot.models import BatchEmbeddingResponse, EmbeddingResponse, TokenUsage

logger = logging.getLogger(__name__)


class OllamaEmbeddingProvider(DimensionGuardMixin):
    """Embeddings from a local Ollama server.

    The vector length depends on the pulled model, so unless a dimension is
    configured the provider adopts the length of the first response.
    """

    provider_label = "Ollama"

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        model: str = DEFAULT_OLLAMA_EMBEDDING_MODEL,
        dimension: int | None = None,
    ) -> None:
        self.host = host
        self.model = model
        self._set_dimension(dimension or OLLAMA_EMBEDDING_DIMENSIONS, locked=dimension is not None)
        logger.info(f"🔢 Initializing OllamaEmbeddingProvider: host={host}, model={model}")
        self.client = ollama.AsyncClient(host=host)

    async def _embed(self, texts: list[str]) -> tuple[list[list[float]], TokenUsage]:
        try:
            response = await self.client.embed(model=self.model, input=texts)
        except (ollama.ResponseError, ConnectionError, httpx.HTTPError) as e:
            logger.error(f"❌ Ollama embedding error: {e}")
            raise ollama_error(e, "embedding generation", self.model) from e

        vectors = [list(vector) for vector in response["embeddings"]]
        self._check_vectors(vectors, len(texts))

        prompt_tokens = response.get("prompt_eval_count") or 0
        return vectors, TokenUsage(prompt_tokens=prompt_tokens, total_tokens=prompt_tokens)

    async def generate_embedding(self, text: str) -> EmbeddingResponse:
        vectors, usage = await self._embed([text])
        return EmbeddingResponse(embedding=vectors[0], model=self.model, usage=usage)

    async def generate_batch(self, texts: Sequence[str]) -> BatchEmbeddingResponse:
        """Generate embeddings for several texts with a single embed call."""
        if not texts:
            return BatchEmbeddingResponse(embeddings=[], model=self.model)

        vectors, usage = await self._embed(list(texts))
        logger.info(f"✅ Generated {len(vectors)} embeddings with {self.model}")
        return BatchEmbeddingResponse(embeddings=vectors, model=self.model, usage=usage)

    def get_max_input_length(self) -> int:
        return OLLAMA_MAX_INPUT_TOKENS

    def get_model_name(self) -> str:
        return self.model
