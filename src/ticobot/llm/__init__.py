"""LLM provider abstraction layer for ticobot.

This package provides a unified interface for multiple chat-completion vendors:
- OpenAILLMProvider, DeepSeekLLMProvider, GroqLLMProvider: OpenAI-compatible APIs
- OllamaLLMProvider: Local models via Ollama
- GeminiLLMProvider: Google Gemini API

All providers implement the LLMProvider protocol.

Usage:
    from ticobot.factory import ProviderFactory

    factory = ProviderFactory({"llm_provider": "groq"})
    llm = factory.get_llm_provider()
    response = await llm.generate_completion([{"role": "user", "content": "Hola"}])
"""

from ticobot.llm.base import CompletionStream, LLMProvider
from ticobot.llm.gemini import GeminiLLMProvider
from ticobot.llm.ollama import OllamaLLMProvider
from ticobot.llm.openai_compat import (
    DeepSeekLLMProvider,
    GroqLLMProvider,
    OpenAICompatibleLLMProvider,
    OpenAILLMProvider,
)

__all__ = [
    "CompletionStream",
    "LLMProvider",
    "OpenAICompatibleLLMProvider",
    "OpenAILLMProvider",
    "DeepSeekLLMProvider",
    "GroqLLMProvider",
    "OllamaLLMProvider",
    "GeminiLLMProvider",
]
