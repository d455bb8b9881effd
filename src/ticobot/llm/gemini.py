"""Google Gemini LLM provider implementation."""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from google import genai
from google.genai import errors as genai_errors

from ticobot.constants import DEFAULT_GEMINI_MODEL, GEMINI_CONTEXT_WINDOW
from ticobot.errors import ConfigurationError, ErrorKind, ProviderError, kind_from_status
from ticobot.llm.base import CompletionStream, MessageInput, log_messages, message_dicts
from ticobot.models import GenerationOptions, LLMResponse, TokenUsage

logger = logging.getLogger(__name__)

_CONTENT_FILTER_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "RECITATION"}


def gemini_finish_reason(candidate: Any) -> str:
    """Map a Gemini candidate finish reason onto the shared vocabulary."""
    reason = getattr(candidate, "finish_reason", None)
    name = getattr(reason, "name", None) or (str(reason) if reason else "")
    if name == "MAX_TOKENS":
        return "length"
    if name in _CONTENT_FILTER_REASONS:
        return "content_filter"
    return "stop"


class GeminiLLMProvider:
    """Google Gemini LLM provider implementation.

    System turns are sent as the system instruction; assistant turns are sent
    with Gemini's "model" role.
    """

    def __init__(self, api_key: str | None, model: str = DEFAULT_GEMINI_MODEL) -> None:
        """Initialize the Gemini provider.

        Args:
            api_key: Gemini API key
            model: The model name to use (e.g., "gemini-2.5-flash")

        Raises:
            ConfigurationError: If api_key is missing
        """
        if not api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is required for Gemini LLM provider", provider="Gemini"
            )
        self.model = model
        logger.info(f"🤖 Initializing GeminiLLMProvider: model={model}")
        self.client = genai.Client(api_key=api_key)

    def _generate_kwargs(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None
    ) -> dict[str, Any]:
        options = options or GenerationOptions()
        normalized = message_dicts(messages)

        system_parts = [msg["content"] for msg in normalized if msg["role"] == "system"]
        contents = [
            genai.types.Content(
                role="model" if msg["role"] == "assistant" else "user",
                parts=[genai.types.Part.from_text(text=msg["content"])],
            )
            for msg in normalized
            if msg["role"] != "system"
        ]

        config = genai.types.GenerateContentConfig(
            system_instruction="\n\n".join(system_parts) if system_parts else None,
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
            top_p=options.top_p,
            frequency_penalty=options.frequency_penalty,
            presence_penalty=options.presence_penalty,
            stop_sequences=list(options.stop) if options.stop else None,
        )
        return {"model": self.model, "contents": contents, "config": config}

    def _wrap_error(self, error: genai_errors.APIError, operation: str) -> ProviderError:
        kind = kind_from_status(error.code)
        if kind is ErrorKind.RATE_LIMITED:
            message = "Gemini rate limit exceeded. Wait a moment and try again."
        else:
            message = f"Gemini {operation} failed: {error}"
        logger.error(f"❌ {message}", exc_info=True)
        return ProviderError(message, kind, "Gemini")

    async def generate_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> LLMResponse:
        """Generate a completion using Gemini.

        Args:
            messages: Conversation turns.
            options: Optional sampling configuration.

        Returns:
            LLMResponse: The generated completion.
        """
        log_messages(self.model, message_dicts(messages))
        generate_kwargs = self._generate_kwargs(messages, options)

        try:
            response = await self.client.aio.models.generate_content(**generate_kwargs)
        except genai_errors.APIError as e:
            raise self._wrap_error(e, "completion") from e

        content = response.text
        if not content:
            raise ProviderError(
                "No completion returned from Gemini", ErrorKind.EMPTY_RESPONSE, "Gemini"
            )

        usage = response.usage_metadata
        candidate = response.candidates[0] if response.candidates else None
        logger.info(f"✅ Response generated: {len(content)} characters")
        return LLMResponse(
            content=content,
            model=response.model_version or self.model,
            usage=TokenUsage(
                prompt_tokens=(usage.prompt_token_count or 0) if usage else 0,
                completion_tokens=(usage.candidates_token_count or 0) if usage else 0,
                total_tokens=(usage.total_token_count or 0) if usage else 0,
            ),
            finish_reason=gemini_finish_reason(candidate),
        )

    def generate_streaming_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> CompletionStream:
        """Start a streaming completion using Gemini."""
        generate_kwargs = self._generate_kwargs(messages, options)
        return CompletionStream(self._stream_fragments(generate_kwargs))

    async def _stream_fragments(self, generate_kwargs: dict[str, Any]) -> AsyncIterator[str]:
        stream = None
        try:
            stream = await self.client.aio.models.generate_content_stream(**generate_kwargs)
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except genai_errors.APIError as e:
            raise self._wrap_error(e, "streaming completion") from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def get_context_window(self) -> int:
        return GEMINI_CONTEXT_WINDOW

    def get_model_name(self) -> str:
        return self.model

    def supports_function_calling(self) -> bool:
        return True
