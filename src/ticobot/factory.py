"""Provider factory: selects and caches provider instances from configuration."""

import logging
import os
from collections.abc import Callable
from typing import Any

from dotenv import load_dotenv

from ticobot.constants import (
    DEFAULT_DATABASE_PROVIDER,
    DEFAULT_DEEPSEEK_BASE_URL,
    DEFAULT_DEEPSEEK_EMBEDDING_MODEL,
    DEFAULT_DEEPSEEK_MODEL,
    DEFAULT_EMBEDDING_PROVIDER,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GROQ_MODEL,
    DEFAULT_LLM_PROVIDER,
    DEFAULT_OLLAMA_EMBEDDING_MODEL,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OPENAI_EMBEDDING_MODEL,
    DEFAULT_OPENAI_LLM_MODEL,
    DEFAULT_RAVENDB_DATABASE,
    DEFAULT_RAVENDB_URL,
    DEFAULT_VECTOR_STORE,
)
from ticobot.embedding import (
    DeepSeekEmbeddingProvider,
    EmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from ticobot.errors import ProviderNotImplementedError
from ticobot.llm import (
    DeepSeekLLMProvider,
    GeminiLLMProvider,
    GroqLLMProvider,
    LLMProvider,
    OllamaLLMProvider,
    OpenAILLMProvider,
)
from ticobot.service.cache import AnswerCache
from ticobot.service.database import (
    DatabaseProvider,
    RavenCacheStore,
    RavenDatabaseProvider,
    RavenVectorStore,
    VectorStore,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Provider names that are recognized but have no adapter yet
PLANNED_LLM_PROVIDERS = ("anthropic", "google")
PLANNED_EMBEDDING_PROVIDERS = ("cohere", "huggingface")
PLANNED_VECTOR_STORES = ("pinecone", "qdrant", "weaviate")
PLANNED_DATABASE_PROVIDERS = ("postgresql",)


class ProviderFactory:
    """Creates provider instances from configuration and caches them.

    Settings are looked up in the config dict (by environment variable name,
    in upper or lower case), then in the environment, then in
    ticobot.constants. Each getter constructs its provider on first use and
    returns the same instance afterwards until reset() is called.

    Usage:
        factory = ProviderFactory({"LLM_PROVIDER": "ollama"})
        llm = factory.get_llm_provider()
        embeddings = factory.get_embedding_provider()
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = dict(config or {})
        self._instances: dict[str, Any] = {}

    def setting(self, name: str, default: Any = None) -> Any:
        """Read a setting: config dict, then environment, then default.

        Args:
            name: Environment variable name (e.g. "LLM_PROVIDER")
            default: Value used when neither source defines the setting

        Returns:
            The configured value
        """
        for key in (name, name.lower()):
            if key in self.config and self.config[key] is not None:
                return self.config[key]
        return os.getenv(name, default)

    def _embedding_dimensions(self) -> int | None:
        value = self.setting("EMBEDDING_DIMENSIONS")
        return int(value) if value else None

    def _cached(self, kind: str, build: Callable[[], Any]) -> Any:
        if kind not in self._instances:
            self._instances[kind] = build()
        return self._instances[kind]

    @staticmethod
    def _select(
        kind: str,
        name: str,
        builders: dict[str, Callable[[], Any]],
        planned: tuple[str, ...],
    ) -> Any:
        name = name.strip().lower()
        builder = builders.get(name)
        if builder is not None:
            return builder()
        if name in planned:
            raise ProviderNotImplementedError(f"{kind} provider '{name}' is not implemented yet")
        supported = ", ".join(sorted(builders))
        raise ProviderNotImplementedError(
            f"Unknown {kind} provider '{name}'. Supported: {supported}"
        )

    def get_llm_provider(self) -> LLMProvider:
        """Get the LLM provider selected by LLM_PROVIDER (default: openai).

        Raises:
            ProviderNotImplementedError: If the provider name has no adapter
            ConfigurationError: If the selected provider's API key is missing
        """
        return self._cached("llm", self._create_llm_provider)

    def _create_llm_provider(self) -> LLMProvider:
        name = self.setting("LLM_PROVIDER", DEFAULT_LLM_PROVIDER)
        logger.info(f"🏭 Creating LLM provider: {name}")
        builders = {
            "openai": lambda: OpenAILLMProvider(
                api_key=self.setting("OPENAI_API_KEY"),
                model=self.setting("OPENAI_MODEL", DEFAULT_OPENAI_LLM_MODEL),
            ),
            "deepseek": lambda: DeepSeekLLMProvider(
                api_key=self.setting("DEEPSEEK_API_KEY"),
                model=self.setting("DEEPSEEK_MODEL", DEFAULT_DEEPSEEK_MODEL),
                base_url=self.setting("DEEPSEEK_BASE_URL", DEFAULT_DEEPSEEK_BASE_URL),
            ),
            "groq": lambda: GroqLLMProvider(
                api_key=self.setting("GROQ_API_KEY"),
                model=self.setting("GROQ_MODEL", DEFAULT_GROQ_MODEL),
            ),
            "ollama": lambda: OllamaLLMProvider(
                host=self.setting("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
                model=self.setting("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL),
            ),
            "gemini": lambda: GeminiLLMProvider(
                api_key=self.setting("GEMINI_API_KEY"),
                model=self.setting("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            ),
        }
        return self._select("LLM", name, builders, PLANNED_LLM_PROVIDERS)

    def get_embedding_provider(self) -> EmbeddingProvider:
        """Get the embedding provider selected by EMBEDDING_PROVIDER (default: openai).

        Raises:
            ProviderNotImplementedError: If the provider name has no adapter
            ConfigurationError: If the selected provider's API key is missing
        """
        return self._cached("embedding", self._create_embedding_provider)

    def _create_embedding_provider(self) -> EmbeddingProvider:
        name = self.setting("EMBEDDING_PROVIDER", DEFAULT_EMBEDDING_PROVIDER)
        dimension = self._embedding_dimensions()
        logger.info(f"🏭 Creating embedding provider: {name}")
        builders = {
            "openai": lambda: OpenAIEmbeddingProvider(
                api_key=self.setting("OPENAI_API_KEY"),
                model=self.setting("OPENAI_EMBEDDING_MODEL", DEFAULT_OPENAI_EMBEDDING_MODEL),
                dimension=dimension,
            ),
            "deepseek": lambda: DeepSeekEmbeddingProvider(
                api_key=self.setting("DEEPSEEK_API_KEY"),
                model=self.setting("DEEPSEEK_EMBEDDING_MODEL", DEFAULT_DEEPSEEK_EMBEDDING_MODEL),
                base_url=self.setting("DEEPSEEK_BASE_URL", DEFAULT_DEEPSEEK_BASE_URL),
                dimension=dimension,
            ),
            "ollama": lambda: OllamaEmbeddingProvider(
                host=self.setting("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
                model=self.setting("OLLAMA_EMBEDDING_MODEL", DEFAULT_OLLAMA_EMBEDDING_MODEL),
                dimension=dimension,
            ),
        }
        return self._select("embedding", name, builders, PLANNED_EMBEDDING_PROVIDERS)

    def get_vector_store(self) -> VectorStore:
        """Get the vector store selected by VECTOR_STORE (default: ravendb)."""
        return self._cached("vector_store", self._create_vector_store)

    def _create_vector_store(self) -> VectorStore:
        name = self.setting("VECTOR_STORE", DEFAULT_VECTOR_STORE)
        logger.info(f"🏭 Creating vector store: {name}")
        builders = {
            "ravendb": lambda: RavenVectorStore(
                url=self.setting("RAVENDB_URL", DEFAULT_RAVENDB_URL),
                database=self.setting("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE),
                dimensions=self._embedding_dimensions(),
            ),
        }
        return self._select("vector store", name, builders, PLANNED_VECTOR_STORES)

    def get_database_provider(self) -> DatabaseProvider:
        """Get the database provider selected by DATABASE_PROVIDER (default: ravendb)."""
        return self._cached("database", self._create_database_provider)

    def _create_database_provider(self) -> DatabaseProvider:
        name = self.setting("DATABASE_PROVIDER", DEFAULT_DATABASE_PROVIDER)
        logger.info(f"🏭 Creating database provider: {name}")
        builders = {
            "ravendb": lambda: RavenDatabaseProvider(
                url=self.setting("RAVENDB_URL", DEFAULT_RAVENDB_URL),
                database=self.setting("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE),
            ),
        }
        return self._select("database", name, builders, PLANNED_DATABASE_PROVIDERS)

    def get_answer_cache(self) -> AnswerCache:
        """Get the answer cache, stored alongside the DATABASE_PROVIDER data."""
        return self._cached("cache", self._create_answer_cache)

    def _create_answer_cache(self) -> AnswerCache:
        name = self.setting("DATABASE_PROVIDER", DEFAULT_DATABASE_PROVIDER)
        builders = {
            "ravendb": lambda: AnswerCache(
                RavenCacheStore(
                    url=self.setting("RAVENDB_URL", DEFAULT_RAVENDB_URL),
                    database=self.setting("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE),
                )
            ),
        }
        return self._select("cache", name, builders, PLANNED_DATABASE_PROVIDERS)

    def provider_names(self) -> dict[str, str]:
        """Names of the configured providers, without constructing them."""
        return {
            "llm": self.setting("LLM_PROVIDER", DEFAULT_LLM_PROVIDER),
            "embedding": self.setting("EMBEDDING_PROVIDER", DEFAULT_EMBEDDING_PROVIDER),
            "vector_store": self.setting("VECTOR_STORE", DEFAULT_VECTOR_STORE),
            "database": self.setting("DATABASE_PROVIDER", DEFAULT_DATABASE_PROVIDER),
        }

    def reset(self) -> None:
        """Drop every cached instance so the next getter call rebuilds it."""
        self._instances.clear()
