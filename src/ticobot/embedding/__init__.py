"""Embedding provider abstraction layer for ticobot.

All providers implement the EmbeddingProvider protocol and keep the vector
dimension constant for the lifetime of an instance.
"""

from ticobot.embedding.base import DimensionGuardMixin, EmbeddingProvider
from ticobot.embedding.ollama import OllamaEmbeddingProvider
from ticobot.embedding.openai_compat import (
    DeepSeekEmbeddingProvider,
    OpenAICompatibleEmbeddingProvider,
    OpenAIEmbeddingProvider,
)

__all__ = [
    "EmbeddingProvider",
    "DimensionGuardMixin",
    "OpenAICompatibleEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "DeepSeekEmbeddingProvider",
    "OllamaEmbeddingProvider",
]
