"""Base classes and protocols for LLM providers."""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from ticobot.models import GenerationOptions, LLMMessage, LLMResponse

logger = logging.getLogger(__name__)

MessageInput = LLMMessage | dict


class CompletionStream:
    """Pull-based stream of completion text fragments.

    The caller drives consumption with ``async for`` and may stop early by
    calling :meth:`aclose` (or by leaving an ``async with`` block), which
    releases the underlying vendor connection.
    """

    def __init__(self, fragments: AsyncIterator[str]) -> None:
        self._fragments = fragments
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "CompletionStream":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._fragments.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        """Stop the stream and close the underlying transport."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._fragments, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "CompletionStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def collect(self) -> str:
        """Consume the remaining fragments and return them joined."""
        parts = [fragment async for fragment in self]
        return "".join(parts)


class LLMProvider(Protocol):
    """Protocol defining the interface for LLM providers.

    Orchestration code depends on this protocol only, so it never branches on
    vendor identity.
    """

    async def generate_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> LLMResponse:
        """Generate a completion for the given conversation.

        Args:
            messages: Conversation turns, as LLMMessage objects or
                     {"role": ..., "content": ...} dictionaries.
            options: Optional sampling configuration.

        Returns:
            LLMResponse: Completion text, model id, token usage and finish reason.

        Raises:
            ProviderError: With kind EMPTY_RESPONSE when the vendor returned no
                content, RATE_LIMITED when throttled, or another kind on failure.
        """
        ...

    def generate_streaming_completion(
        self, messages: Sequence[MessageInput], options: GenerationOptions | None = None
    ) -> CompletionStream:
        """Start a streaming completion.

        No network request is made until the caller pulls the first fragment.
        """
        ...

    def get_context_window(self) -> int:
        """Maximum number of tokens in the model's context window."""
        ...

    def get_model_name(self) -> str:
        """Model identifier used by this provider."""
        ...

    def supports_function_calling(self) -> bool:
        """Whether the model supports function calling."""
        ...


def message_dicts(messages: Sequence[MessageInput]) -> list[dict[str, str]]:
    """Normalize conversation turns to role/content dictionaries.

    Args:
        messages: LLMMessage objects or dictionaries

    Returns:
        list[dict]: One {"role", "content"} dictionary per message
    """
    normalized = []
    for msg in messages:
        if isinstance(msg, LLMMessage):
            normalized.append(msg.to_dict())
        else:
            normalized.append({"role": msg.get("role", "user"), "content": msg.get("content", "")})
    return normalized


def log_messages(model: str, messages: list[dict[str, str]]) -> None:
    """Log a preview of the outgoing conversation at debug level."""
    logger.info(f"🗣️  Generating response with {model}")
    logger.debug(f"Messages: {len(messages)} messages")
    for i, msg in enumerate(messages):
        role = msg.get("role", "unknown")
        content_preview = msg.get("content", "")[:100]
        logger.debug(f"  Message {i + 1} ({role}): {content_preview}...")
