"""Tests for ProviderFactory selection, caching and reset."""

import pytest

from ticobot.embedding import (
    DeepSeekEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from ticobot.errors import ConfigurationError, ProviderNotImplementedError
from ticobot.factory import ProviderFactory
from ticobot.llm import (
    DeepSeekLLMProvider,
    GeminiLLMProvider,
    GroqLLMProvider,
    OllamaLLMProvider,
    OpenAILLMProvider,
)
from ticobot.service.cache import AnswerCache
from ticobot.service.database import RavenDatabaseProvider, RavenVectorStore

PROVIDER_ENV = (
    "LLM_PROVIDER",
    "EMBEDDING_PROVIDER",
    "VECTOR_STORE",
    "DATABASE_PROVIDER",
    "EMBEDDING_DIMENSIONS",
    "OPENAI_API_KEY",
    "DEEPSEEK_API_KEY",
    "GROQ_API_KEY",
    "GEMINI_API_KEY",
    "OLLAMA_MODEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep provider settings from the developer's environment out of the tests."""
    for name in PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)


class TestLLMSelection:
    """Tests for get_llm_provider."""

    @pytest.mark.parametrize(
        "name, settings, expected",
        [
            ("openai", {"OPENAI_API_KEY": "sk-test"}, OpenAILLMProvider),
            ("deepseek", {"DEEPSEEK_API_KEY": "sk-test"}, DeepSeekLLMProvider),
            ("groq", {"GROQ_API_KEY": "gsk-test"}, GroqLLMProvider),
            ("ollama", {}, OllamaLLMProvider),
            ("gemini", {"GEMINI_API_KEY": "key"}, GeminiLLMProvider),
        ],
    )
    def test_selects_adapter(self, name, settings, expected):
        factory = ProviderFactory({"LLM_PROVIDER": name, **settings})
        assert isinstance(factory.get_llm_provider(), expected)

    def test_name_is_case_insensitive(self):
        factory = ProviderFactory({"llm_provider": " Ollama "})
        assert isinstance(factory.get_llm_provider(), OllamaLLMProvider)

    def test_defaults_to_openai(self):
        factory = ProviderFactory({"OPENAI_API_KEY": "sk-test"})
        assert isinstance(factory.get_llm_provider(), OpenAILLMProvider)

    def test_environment_is_consulted(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "ollama")
        monkeypatch.setenv("OLLAMA_MODEL", "llama3.1:8b")

        llm = ProviderFactory().get_llm_provider()

        assert isinstance(llm, OllamaLLMProvider)
        assert llm.get_model_name() == "llama3.1:8b"

    def test_missing_key_raises_configuration_error(self):
        factory = ProviderFactory({"LLM_PROVIDER": "groq"})
        with pytest.raises(ConfigurationError, match="GROQ_API_KEY"):
            factory.get_llm_provider()

    def test_planned_provider_not_implemented(self):
        factory = ProviderFactory({"LLM_PROVIDER": "anthropic"})
        with pytest.raises(ProviderNotImplementedError, match="not implemented yet"):
            factory.get_llm_provider()

    def test_unknown_provider_lists_supported(self):
        factory = ProviderFactory({"LLM_PROVIDER": "mystery"})
        with pytest.raises(ProviderNotImplementedError) as exc_info:
            factory.get_llm_provider()
        assert "Unknown LLM provider 'mystery'" in str(exc_info.value)
        assert "groq" in str(exc_info.value)


class TestEmbeddingSelection:
    """Tests for get_embedding_provider."""

    def test_openai_with_configured_dimension(self):
        factory = ProviderFactory({"OPENAI_API_KEY": "sk-test", "EMBEDDING_DIMENSIONS": "512"})
        embedder = factory.get_embedding_provider()
        assert isinstance(embedder, OpenAIEmbeddingProvider)
        assert embedder.get_dimension() == 512

    def test_deepseek_and_ollama(self):
        deepseek = ProviderFactory(
            {"EMBEDDING_PROVIDER": "deepseek", "DEEPSEEK_API_KEY": "sk-test"}
        ).get_embedding_provider()
        ollama = ProviderFactory({"EMBEDDING_PROVIDER": "ollama"}).get_embedding_provider()

        assert isinstance(deepseek, DeepSeekEmbeddingProvider)
        assert isinstance(ollama, OllamaEmbeddingProvider)

    def test_planned_embedding_provider(self):
        factory = ProviderFactory({"EMBEDDING_PROVIDER": "cohere"})
        with pytest.raises(ProviderNotImplementedError):
            factory.get_embedding_provider()


class TestStorageSelection:
    """Tests for vector store, database provider and answer cache selection."""

    def test_ravendb_providers_are_lazy(self):
        factory = ProviderFactory(
            {"RAVENDB_URL": "http://raven:8080", "RAVENDB_DATABASE": "test_db"}
        )

        store = factory.get_vector_store()
        database = factory.get_database_provider()

        assert isinstance(store, RavenVectorStore)
        assert isinstance(database, RavenDatabaseProvider)
        assert store.url == "http://raven:8080"
        assert database.database == "test_db"
        assert store._store is None
        assert isinstance(factory.get_answer_cache(), AnswerCache)

    def test_planned_storage_providers(self):
        factory = ProviderFactory({"VECTOR_STORE": "qdrant", "DATABASE_PROVIDER": "postgresql"})
        with pytest.raises(ProviderNotImplementedError):
            factory.get_vector_store()
        with pytest.raises(ProviderNotImplementedError):
            factory.get_database_provider()
        with pytest.raises(ProviderNotImplementedError):
            factory.get_answer_cache()


class TestCaching:
    """Tests for instance caching and reset."""

    def test_same_instance_until_reset(self):
        factory = ProviderFactory({"LLM_PROVIDER": "ollama", "EMBEDDING_PROVIDER": "ollama"})

        llm = factory.get_llm_provider()
        embedder = factory.get_embedding_provider()
        assert factory.get_llm_provider() is llm
        assert factory.get_embedding_provider() is embedder

        factory.reset()
        assert factory.get_llm_provider() is not llm
        assert factory.get_embedding_provider() is not embedder

    def test_failed_construction_is_not_cached(self):
        factory = ProviderFactory({"LLM_PROVIDER": "groq"})
        with pytest.raises(ConfigurationError):
            factory.get_llm_provider()

        factory.config["GROQ_API_KEY"] = "gsk-test"
        assert isinstance(factory.get_llm_provider(), GroqLLMProvider)

    def test_separate_factories_do_not_share_instances(self):
        settings = {"LLM_PROVIDER": "ollama"}
        assert (
            ProviderFactory(settings).get_llm_provider()
            is not ProviderFactory(settings).get_llm_provider()
        )

    def test_provider_names_do_not_construct(self):
        factory = ProviderFactory({"LLM_PROVIDER": "groq", "EMBEDDING_PROVIDER": "ollama"})

        assert factory.provider_names() == {
            "llm": "groq",
            "embedding": "ollama",
            "vector_store": "ravendb",
            "database": "ravendb",
        }
        assert factory._instances == {}
