"""Embedding providers for vendors exposing an OpenAI-compatible embeddings API."""

import logging
from collections.abc import Sequence

import openai
from openai import AsyncOpenAI

from ticobot.constants import (
    DEEPSEEK_EMBEDDING_DIMENSIONS,
    DEFAULT_DEEPSEEK_BASE_URL,
    DEFAULT_DEEPSEEK_EMBEDDING_MODEL,
    DEFAULT_OPENAI_EMBEDDING_MODEL,
    OPENAI_LARGE_EMBEDDING_DIMENSIONS,
    OPENAI_MAX_INPUT_TOKENS,
    OPENAI_SMALL_EMBEDDING_DIMENSIONS,
)
from ticobot.embedding.base import DimensionGuardMixin
from ticobot.errors import ConfigurationError, ErrorKind, ProviderError
from ticobot.llm.openai_compat import classify_openai_error
from ticobot.models import BatchEmbeddingResponse, EmbeddingResponse, TokenUsage

logger = logging.getLogger(__name__)


class OpenAICompatibleEmbeddingProvider(DimensionGuardMixin):
    """Embeddings over an OpenAI-compatible endpoint."""

    provider_label = "OpenAI"
    api_key_env = "OPENAI_API_KEY"
    # Sent as ``dimensions`` so the vendor shortens its vectors to this length
    requested_dimensions: int | None = None

    def __init__(
        self,
        api_key: str | None,
        model: str,
        dimension: int,
        dimension_locked: bool = True,
        base_url: str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: Vendor API key
            model: Embedding model name
            dimension: Expected vector length
            dimension_locked: Reject vectors of any other length when True;
                adopt the first observed length when False
            base_url: Optional API base URL

        Raises:
            ConfigurationError: If api_key is missing
        """
        if not api_key:
            raise ConfigurationError(
                f"{self.api_key_env} is required for {self.provider_label} embedding provider",
                provider=self.provider_label,
            )
        self.model = model
        self.max_input_length = OPENAI_MAX_INPUT_TOKENS
        self._set_dimension(dimension, dimension_locked)
        logger.info(
            f"🔢 Initializing {type(self).__name__}: model={model}, dimension={dimension}"
        )
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def _embed(
        self, texts: list[str], operation: str
    ) -> tuple[list[list[float]], TokenUsage]:
        request = {"model": self.model, "input": texts, "encoding_format": "float"}
        if self.requested_dimensions is not None:
            request["dimensions"] = self.requested_dimensions
        try:
            response = await self.client.embeddings.create(**request)
        except openai.APIError as e:
            kind = classify_openai_error(e)
            if kind is ErrorKind.RATE_LIMITED:
                message = f"{self.provider_label} rate limit exceeded. Wait a moment and try again."
            else:
                message = f"{self.provider_label} {operation} failed: {e}"
            logger.error(f"❌ {message}")
            raise ProviderError(message, kind, self.provider_label) from e

        data = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in data]
        self._check_vectors(vectors, len(texts))

        usage = response.usage
        return vectors, TokenUsage(
            prompt_tokens=usage.prompt_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
        )

    async def generate_embedding(self, text: str) -> EmbeddingResponse:
        """Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResponse: Vector, model and usage
        """
        vectors, usage = await self._embed([text], "embedding generation")
        return EmbeddingResponse(embedding=vectors[0], model=self.model, usage=usage)

    async def generate_batch(self, texts: Sequence[str]) -> BatchEmbeddingResponse:
        """Generate embeddings for several texts with one API call.

        Args:
            texts: Texts to embed

        Returns:
            BatchEmbeddingResponse: One vector per text, in input order
        """
        if not texts:
            return BatchEmbeddingResponse(embeddings=[], model=self.model)

        vectors, usage = await self._embed(list(texts), "batch embedding generation")
        logger.info(f"✅ Generated {len(vectors)} embeddings with {self.model}")
        return BatchEmbeddingResponse(embeddings=vectors, model=self.model, usage=usage)

    def get_max_input_length(self) -> int:
        return self.max_input_length

    def get_model_name(self) -> str:
        return self.model


class OpenAIEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    """OpenAI embedding models (text-embedding-3-small / -large).

    A configured dimension is requested from text-embedding-3 models, which
    can shorten their vectors; older models always return their native length.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_OPENAI_EMBEDDING_MODEL,
        dimension: int | None = None,
    ) -> None:
        if dimension is not None and model.startswith("text-embedding-3"):
            self.requested_dimensions = dimension
        if dimension is None:
            dimension = (
                OPENAI_LARGE_EMBEDDING_DIMENSIONS
                if "large" in model
                else OPENAI_SMALL_EMBEDDING_DIMENSIONS
            )
        super().__init__(api_key, model, dimension, dimension_locked=True)


class DeepSeekEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    """DeepSeek embeddings through the OpenAI-compatible API.

    The vector length is not documented, so unless a dimension is configured
    the provider adopts the length of the first response.
    """

    provider_label = "DeepSeek"
    api_key_env = "DEEPSEEK_API_KEY"

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_DEEPSEEK_EMBEDDING_MODEL,
        base_url: str = DEFAULT_DEEPSEEK_BASE_URL,
        dimension: int | None = None,
    ) -> None:
        super().__init__(
            api_key,
            model,
            dimension or DEEPSEEK_EMBEDDING_DIMENSIONS,
            dimension_locked=dimension is not None,
            base_url=base_url,
        )
