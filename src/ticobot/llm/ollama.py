"""Ollama LLM provider implementation."""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx
import ollama

from ticobot.constants import (
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_TEMPERATURE,
    OLLAMA_CONTEXT_WINDOWS,
    OLLAMA_DEFAULT_CONTEXT_WINDOW,
)
from ticobot.errors import ErrorKind, ProviderError, kind_from_status
from ticobot.llm.base import CompletionStream, MessageInput, log_messages, message_dicts
from ticobot.models import GenerationOptions, LLMResponse, TokenUsage

logger = logging.getLogger(__name__)


def ollama_error(error: Exception, operation: str, model: str) -> ProviderError:
    """Wrap an exception raised by the Ollama client.

    Args:
        error: The original exception
        operation: Operation label used in the message (e.g. "completion")
        model: Model name, used in the connection hint

    Returns:
        ProviderError: Classified error with a human-readable message
    """
    if isinstance(error, (ConnectionError, httpx.ConnectError)):
        return ProviderError(
            "Ollama connection refused. Make sure Ollama is running:\n"
            "  1. Start Ollama: ollama serve\n"
            f"  2. Pull the model: ollama pull {model}",
            ErrorKind.CONNECTION,
            "Ollama",
        )
    kind = ErrorKind.VENDOR
    if isinstance(error, ollama.ResponseError):
        kind = kind_from_status(error.status_code)
    return ProviderError(f"Ollama {operation} failed: {error}", kind, "Ollama")


class OllamaLLMProvider:
    """Ollama LLM provider implementation.

    Runs models on a local Ollama server, without API keys or rate limits.
    """

    def __init__(self, host: str = DEFAULT_OLLAMA_HOST, model: str = DEFAULT_OLLAMA_MODEL) -> None:
        """Initialize the Ollama provider.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: The model name to use (e.g., "qwen2.5:14b")
        """
        self.host = host
        self.model = model
        logger.info(f"🤖 Initializing OllamaLLMProvider: host={host}, model={model}")
        self.client = ollama.AsyncClient(host=host)
        self.context_window = OLLAMA_CONTEXT_WINDOWS.get(model, OLLAMA_DEFAULT_CONTEXT_WINDOW)

    def _chat_kwargs(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None
    ) -> dict[str, Any]:
        options = options or GenerationOptions()
        model_options = {
            "temperature": (
                options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
            ),
            "num_predict": options.max_tokens,
            "top_p": options.top_p,
            "frequency_penalty": options.frequency_penalty,
            "presence_penalty": options.presence_penalty,
            "stop": list(options.stop) if options.stop else None,
        }
        return {
            "model": self.model,
            "messages": message_dicts(messages),
            "options": {key: value for key, value in model_options.items() if value is not None},
        }

    async def generate_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> LLMResponse:
        """Generate a completion using Ollama.

        Args:
            messages: Conversation turns.
            options: Optional sampling configuration.

        Returns:
            LLMResponse: The generated completion.
        """
        chat_kwargs = self._chat_kwargs(messages, options)
        log_messages(self.model, chat_kwargs["messages"])

        try:
            response = await self.client.chat(**chat_kwargs)
        except (ollama.ResponseError, ConnectionError, httpx.HTTPError) as e:
            error = ollama_error(e, "completion", self.model)
            logger.error(f"❌ Ollama API error: {e}", exc_info=True)
            raise error from e

        content = response.message.content
        if not content:
            raise ProviderError(
                "No completion returned from Ollama", ErrorKind.EMPTY_RESPONSE, "Ollama"
            )

        prompt_tokens = response.prompt_eval_count or 0
        completion_tokens = response.eval_count or 0
        logger.info(f"✅ Response generated: {len(content)} characters")
        return LLMResponse(
            content=content,
            model=response.model or self.model,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            finish_reason="length" if response.done_reason == "length" else "stop",
        )

    def generate_streaming_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> CompletionStream:
        """Start a streaming completion using Ollama."""
        chat_kwargs = self._chat_kwargs(messages, options)
        return CompletionStream(self._stream_fragments(chat_kwargs))

    async def _stream_fragments(self, chat_kwargs: dict[str, Any]) -> AsyncIterator[str]:
        log_messages(self.model, chat_kwargs["messages"])
        stream = None
        try:
            stream = await self.client.chat(stream=True, **chat_kwargs)
            async for part in stream:
                content = part.message.content
                if content:
                    yield content
        except (ollama.ResponseError, ConnectionError, httpx.HTTPError) as e:
            logger.error(f"❌ Ollama streaming error: {e}", exc_info=True)
            raise ollama_error(e, "streaming completion", self.model) from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def get_context_window(self) -> int:
        return self.context_window

    def get_model_name(self) -> str:
        return self.model

    def supports_function_calling(self) -> bool:
        # Tool calling is available for most models served by Ollama
        return True
