"""LLM providers for vendors exposing an OpenAI-compatible chat API.

OpenAI, DeepSeek and Groq share the same wire format, so they share one
implementation and differ only in credentials, base URL and model tables.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import openai
from openai import AsyncOpenAI

from ticobot.constants import (
    DEEPSEEK_CONTEXT_WINDOW,
    DEFAULT_DEEPSEEK_BASE_URL,
    DEFAULT_DEEPSEEK_MODEL,
    DEFAULT_GROQ_MODEL,
    DEFAULT_OPENAI_LLM_MODEL,
    DEFAULT_TEMPERATURE,
    GROQ_BASE_URL,
    GROQ_CONTEXT_WINDOWS,
    GROQ_DEFAULT_CONTEXT_WINDOW,
)
from ticobot.errors import ConfigurationError, ErrorKind, ProviderError, kind_from_status
from ticobot.llm.base import CompletionStream, MessageInput, log_messages, message_dicts
from ticobot.models import FINISH_REASONS, GenerationOptions, LLMResponse, TokenUsage

logger = logging.getLogger(__name__)


def classify_openai_error(error: Exception) -> ErrorKind:
    """Classify an exception raised by the OpenAI SDK.

    Args:
        error: Exception raised by an AsyncOpenAI call

    Returns:
        ErrorKind: Structured classification of the failure
    """
    if isinstance(error, openai.RateLimitError):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorKind.UNAUTHORIZED
    if isinstance(error, openai.APIConnectionError):
        return ErrorKind.CONNECTION
    if isinstance(error, openai.APIStatusError):
        return kind_from_status(error.status_code)
    return ErrorKind.VENDOR


def normalize_finish_reason(reason: str | None) -> str:
    """Map a vendor finish reason onto the shared vocabulary."""
    if reason == "tool_calls":
        return "function_call"
    if reason in FINISH_REASONS:
        return reason
    return "stop"


class OpenAICompatibleLLMProvider:
    """Chat completion over an OpenAI-compatible endpoint.

    Subclasses set the vendor label, credential name and model table.
    """

    provider_label = "OpenAI"
    api_key_env = "OPENAI_API_KEY"
    default_temperature: float | None = None

    def __init__(self, api_key: str | None, model: str, base_url: str | None = None) -> None:
        """Initialize the provider.

        Args:
            api_key: Vendor API key
            model: Chat model name
            base_url: Optional API base URL (None uses the SDK default)

        Raises:
            ConfigurationError: If api_key is missing
        """
        if not api_key:
            raise ConfigurationError(
                f"{self.api_key_env} is required for {self.provider_label} LLM provider",
                provider=self.provider_label,
            )

        self.model = model
        self.base_url = base_url
        logger.info(f"🤖 Initializing {type(self).__name__}: model={model}")
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.context_window = self._context_window_for_model(model)

    def _context_window_for_model(self, model: str) -> int:
        if "gpt-4-turbo" in model or "gpt-4-1106" in model:
            return 128000
        if "gpt-4" in model:
            return 8192
        if "gpt-3.5-turbo-16k" in model:
            return 16384
        if "gpt-3.5-turbo" in model:
            return 4096
        return 4096

    def _rate_limit_message(self) -> str:
        return f"{self.provider_label} rate limit exceeded. Wait a moment and try again."

    def _wrap_error(self, error: Exception, operation: str) -> ProviderError:
        kind = classify_openai_error(error)
        if kind is ErrorKind.RATE_LIMITED:
            message = self._rate_limit_message()
        else:
            message = f"{self.provider_label} {operation} failed: {error}"
        logger.error(f"❌ {message}")
        return ProviderError(message, kind, self.provider_label)

    def _request_kwargs(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None
    ) -> dict[str, Any]:
        options = options or GenerationOptions()
        temperature = (
            options.temperature if options.temperature is not None else self.default_temperature
        )
        chat_kwargs: dict[str, Any] = {"model": self.model, "messages": message_dicts(messages)}
        optional = {
            "temperature": temperature,
            "max_tokens": options.max_tokens,
            "top_p": options.top_p,
            "frequency_penalty": options.frequency_penalty,
            "presence_penalty": options.presence_penalty,
            "stop": list(options.stop) if options.stop else None,
        }
        chat_kwargs.update({key: value for key, value in optional.items() if value is not None})
        return chat_kwargs

    async def generate_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> LLMResponse:
        """Generate a completion using the vendor's chat completions API.

        Args:
            messages: Conversation turns.
            options: Optional sampling configuration.

        Returns:
            LLMResponse: The generated completion.
        """
        chat_kwargs = self._request_kwargs(messages, options)
        log_messages(self.model, chat_kwargs["messages"])

        try:
            response = await self.client.chat.completions.create(**chat_kwargs)
        except openai.APIError as e:
            raise self._wrap_error(e, "completion") from e

        choice = response.choices[0] if response.choices else None
        if choice is None or not choice.message.content:
            raise ProviderError(
                f"No completion returned from {self.provider_label}",
                ErrorKind.EMPTY_RESPONSE,
                self.provider_label,
            )

        usage = response.usage
        content = choice.message.content
        logger.info(f"✅ Response generated: {len(content)} characters")
        return LLMResponse(
            content=content,
            model=response.model,
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            finish_reason=normalize_finish_reason(choice.finish_reason),
        )

    def generate_streaming_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> CompletionStream:
        """Start a streaming completion.

        Args:
            messages: Conversation turns.
            options: Optional sampling configuration.

        Returns:
            CompletionStream: Text fragments, pulled by the caller.
        """
        chat_kwargs = self._request_kwargs(messages, options)
        return CompletionStream(self._stream_fragments(chat_kwargs))

    async def _stream_fragments(self, chat_kwargs: dict[str, Any]) -> AsyncIterator[str]:
        log_messages(self.model, chat_kwargs["messages"])
        try:
            stream = await self.client.chat.completions.create(stream=True, **chat_kwargs)
        except openai.APIError as e:
            raise self._wrap_error(e, "streaming completion") from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except openai.APIError as e:
            raise self._wrap_error(e, "streaming completion") from e
        finally:
            await stream.close()

    def get_context_window(self) -> int:
        return self.context_window

    def get_model_name(self) -> str:
        return self.model

    def supports_function_calling(self) -> bool:
        return "gpt-4" in self.model or "gpt-3.5-turbo" in self.model


class OpenAILLMProvider(OpenAICompatibleLLMProvider):
    """OpenAI chat models."""

    def __init__(self, api_key: str | None, model: str = DEFAULT_OPENAI_LLM_MODEL) -> None:
        super().__init__(api_key, model)


class DeepSeekLLMProvider(OpenAICompatibleLLMProvider):
    """DeepSeek chat models through DeepSeek's OpenAI-compatible API."""

    provider_label = "DeepSeek"
    api_key_env = "DEEPSEEK_API_KEY"

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_DEEPSEEK_MODEL,
        base_url: str = DEFAULT_DEEPSEEK_BASE_URL,
    ) -> None:
        super().__init__(api_key, model, base_url)

    def _context_window_for_model(self, model: str) -> int:
        return DEEPSEEK_CONTEXT_WINDOW

    def supports_function_calling(self) -> bool:
        return True


class GroqLLMProvider(OpenAICompatibleLLMProvider):
    """Groq-hosted open models; fast inference with a rate-limited free tier."""

    provider_label = "Groq"
    api_key_env = "GROQ_API_KEY"
    default_temperature = DEFAULT_TEMPERATURE

    def __init__(self, api_key: str | None, model: str = DEFAULT_GROQ_MODEL) -> None:
        super().__init__(api_key, model, GROQ_BASE_URL)

    def _context_window_for_model(self, model: str) -> int:
        return GROQ_CONTEXT_WINDOWS.get(model, GROQ_DEFAULT_CONTEXT_WINDOW)

    def _rate_limit_message(self) -> str:
        return (
            "Groq rate limit exceeded. Free tier has limits per minute/day. "
            "Wait a moment and try again."
        )

    def supports_function_calling(self) -> bool:
        return True
