"""Tests for the LLM provider adapters and CompletionStream."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import ollama
import openai
import pytest
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ticobot.errors import ConfigurationError, ErrorKind, ProviderError
from ticobot.llm import (
    CompletionStream,
    DeepSeekLLMProvider,
    GeminiLLMProvider,
    GroqLLMProvider,
    OllamaLLMProvider,
    OpenAILLMProvider,
)
from ticobot.models import GenerationOptions, LLMMessage

from conftest import fragments

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def chat_response(content="Hola", finish_reason="stop", model="gpt-4-turbo-preview"):
    """Build an object shaped like an OpenAI ChatCompletion."""
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice]
    response.usage = MagicMock(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    response.model = model
    return response


def stream_chunk(content):
    chunk = MagicMock()
    chunk.choices = [MagicMock()]
    chunk.choices[0].delta.content = content
    return chunk


class FakeChatStream:
    """Stands in for openai.AsyncStream."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            yield chunk

    async def close(self):
        self.closed = True


class TestCompletionStream:
    """Tests for the pull-based completion stream."""

    @pytest.mark.asyncio
    async def test_collect_joins_fragments(self):
        stream = CompletionStream(fragments("Hola", ", ", "mundo"))
        assert await stream.collect() == "Hola, mundo"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_aclose_stops_iteration(self):
        stream = CompletionStream(fragments("a", "b", "c"))
        assert await stream.__anext__() == "a"

        await stream.aclose()
        await stream.aclose()

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_async_with_closes_stream(self):
        async with CompletionStream(fragments("a", "b")) as stream:
            first = await stream.__anext__()
        assert first == "a"
        assert stream.closed


class TestOpenAICompatibleProviders:
    """Tests for the OpenAI, DeepSeek and Groq adapters."""

    def test_missing_api_key_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OpenAILLMProvider(api_key=None)
        assert exc_info.value.kind is ErrorKind.CONFIGURATION
        assert "OPENAI_API_KEY" in str(exc_info.value)

    def test_groq_missing_key_names_groq_variable(self):
        with pytest.raises(ConfigurationError, match="GROQ_API_KEY"):
            GroqLLMProvider(api_key="")

    @pytest.mark.parametrize(
        "model, window",
        [
            ("gpt-4-turbo-preview", 128000),
            ("gpt-4-1106-preview", 128000),
            ("gpt-4", 8192),
            ("gpt-3.5-turbo-16k", 16384),
            ("gpt-3.5-turbo", 4096),
            ("o1-mini", 4096),
        ],
    )
    def test_openai_context_window(self, model, window):
        assert OpenAILLMProvider(api_key="sk-test", model=model).get_context_window() == window

    def test_vendor_defaults(self):
        deepseek = DeepSeekLLMProvider(api_key="sk-test")
        groq = GroqLLMProvider(api_key="gsk-test")
        groq_unknown = GroqLLMProvider(api_key="gsk-test", model="some-new-model")

        assert deepseek.get_model_name() == "deepseek-chat"
        assert deepseek.get_context_window() == 64000
        assert deepseek.supports_function_calling()
        assert groq.get_model_name() == "llama-3.3-70b-versatile"
        assert groq.get_context_window() == 128000
        assert groq_unknown.get_context_window() == 32768

    def test_openai_function_calling_by_model(self):
        assert OpenAILLMProvider(api_key="sk-test", model="gpt-4").supports_function_calling()
        assert not OpenAILLMProvider(api_key="sk-test", model="o1").supports_function_calling()

    @pytest.mark.asyncio
    async def test_generate_completion_success(self):
        provider = OpenAILLMProvider(api_key="sk-test")
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=chat_response())

        response = await provider.generate_completion(
            [LLMMessage("system", "Eres TicoBot"), {"role": "user", "content": "Hola"}],
            GenerationOptions(temperature=0.2, max_tokens=50),
        )

        assert response.content == "Hola"
        assert response.usage.total_tokens == 15
        assert response.finish_reason == "stop"
        provider.client.chat.completions.create.assert_awaited_once_with(
            model="gpt-4-turbo-preview",
            messages=[
                {"role": "system", "content": "Eres TicoBot"},
                {"role": "user", "content": "Hola"},
            ],
            temperature=0.2,
            max_tokens=50,
        )

    @pytest.mark.asyncio
    async def test_groq_applies_default_temperature(self):
        provider = GroqLLMProvider(api_key="gsk-test")
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=chat_response())

        await provider.generate_completion([{"role": "user", "content": "Hola"}])

        assert provider.client.chat.completions.create.call_args.kwargs["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_tool_calls_finish_reason_is_normalized(self):
        provider = OpenAILLMProvider(api_key="sk-test")
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(
            return_value=chat_response(finish_reason="tool_calls")
        )

        response = await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert response.finish_reason == "function_call"

    @pytest.mark.asyncio
    async def test_empty_completion_raises_empty_response(self):
        provider = DeepSeekLLMProvider(api_key="sk-test")
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=chat_response(content=""))

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE
        assert exc_info.value.provider == "DeepSeek"

    @pytest.mark.asyncio
    async def test_rate_limit_is_classified_from_sdk_error(self):
        provider = GroqLLMProvider(api_key="gsk-test")
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(
            side_effect=openai.RateLimitError(
                "Too many requests",
                response=httpx.Response(429, request=OPENAI_REQUEST),
                body=None,
            )
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert exc_info.value.retryable
        assert "Groq rate limit exceeded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unauthorized_and_connection_errors(self):
        provider = OpenAILLMProvider(api_key="sk-test")
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(
            side_effect=openai.AuthenticationError(
                "Invalid key", response=httpx.Response(401, request=OPENAI_REQUEST), body=None
            )
        )
        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
        assert str(exc_info.value).startswith("OpenAI completion failed")

        provider.client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=OPENAI_REQUEST)
        )
        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.CONNECTION

    @pytest.mark.asyncio
    async def test_streaming_skips_empty_deltas(self):
        provider = OpenAILLMProvider(api_key="sk-test")
        empty_choices = MagicMock()
        empty_choices.choices = []
        fake_stream = FakeChatStream(
            [stream_chunk("Hola"), stream_chunk(None), empty_choices, stream_chunk(" mundo")]
        )
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=fake_stream)

        stream = provider.generate_streaming_completion([{"role": "user", "content": "Hola"}])
        provider.client.chat.completions.create.assert_not_called()

        assert await stream.collect() == "Hola mundo"
        assert fake_stream.closed
        assert provider.client.chat.completions.create.call_args.kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_streaming_early_close_releases_transport(self):
        provider = OpenAILLMProvider(api_key="sk-test")
        fake_stream = FakeChatStream([stream_chunk("uno"), stream_chunk("dos")])
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=fake_stream)

        stream = provider.generate_streaming_completion([{"role": "user", "content": "Hola"}])
        assert await stream.__anext__() == "uno"
        await stream.aclose()

        assert fake_stream.closed


def ollama_response(content="Hola", done_reason="stop"):
    response = MagicMock()
    response.message.content = content
    response.prompt_eval_count = 12
    response.eval_count = 8
    response.model = "qwen2.5:14b"
    response.done_reason = done_reason
    return response


class TestOllamaLLMProvider:
    """Tests for OllamaLLMProvider."""

    def test_context_window_lookup(self):
        assert OllamaLLMProvider(model="llama3.1:8b").get_context_window() == 128000
        assert OllamaLLMProvider(model="unknown:1b").get_context_window() == 32768

    @pytest.mark.asyncio
    async def test_generate_completion_success(self):
        provider = OllamaLLMProvider(host="http://test:11434", model="qwen2.5:14b")
        provider.client = MagicMock()
        provider.client.chat = AsyncMock(return_value=ollama_response())

        messages = [{"role": "user", "content": "Hola"}]
        response = await provider.generate_completion(messages, GenerationOptions(max_tokens=64))

        assert response.content == "Hola"
        assert response.usage.total_tokens == 20
        provider.client.chat.assert_awaited_once_with(
            model="qwen2.5:14b",
            messages=messages,
            options={"temperature": 0.7, "num_predict": 64},
        )

    @pytest.mark.asyncio
    async def test_length_finish_reason(self):
        provider = OllamaLLMProvider()
        provider.client = MagicMock()
        provider.client.chat = AsyncMock(return_value=ollama_response(done_reason="length"))

        response = await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert response.finish_reason == "length"

    @pytest.mark.asyncio
    async def test_connection_refused_suggests_ollama_serve(self):
        provider = OllamaLLMProvider(model="qwen2.5:14b")
        provider.client = MagicMock()
        provider.client.chat = AsyncMock(side_effect=ConnectionError("refused"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.CONNECTION
        assert "ollama serve" in str(exc_info.value)
        assert "ollama pull qwen2.5:14b" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_response_error_status_is_classified(self):
        provider = OllamaLLMProvider()
        provider.client = MagicMock()
        provider.client.chat = AsyncMock(side_effect=ollama.ResponseError("busy", 429))

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        provider = OllamaLLMProvider()
        provider.client = MagicMock()
        provider.client.chat = AsyncMock(return_value=ollama_response(content=""))

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_streaming_completion(self):
        provider = OllamaLLMProvider()

        async def parts():
            for text in ("Pura", "", " vida"):
                part = MagicMock()
                part.message.content = text
                yield part

        provider.client = MagicMock()
        provider.client.chat = AsyncMock(return_value=parts())

        stream = provider.generate_streaming_completion([{"role": "user", "content": "Hola"}])
        assert await stream.collect() == "Pura vida"
        assert provider.client.chat.call_args.kwargs["stream"] is True


def gemini_response(text="Hola", finish_reason=genai_types.FinishReason.STOP):
    response = MagicMock()
    response.text = text
    response.usage_metadata = MagicMock(
        prompt_token_count=4, candidates_token_count=2, total_token_count=6
    )
    candidate = MagicMock()
    candidate.finish_reason = finish_reason
    response.candidates = [candidate]
    response.model_version = "gemini-2.5-flash"
    return response


class TestGeminiLLMProvider:
    """Tests for GeminiLLMProvider."""

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            GeminiLLMProvider(api_key=None)

    @pytest.mark.asyncio
    async def test_system_turns_become_system_instruction(self):
        provider = GeminiLLMProvider(api_key="test-key")
        provider.client = MagicMock()
        provider.client.aio.models.generate_content = AsyncMock(return_value=gemini_response())

        response = await provider.generate_completion(
            [
                {"role": "system", "content": "Eres TicoBot"},
                {"role": "user", "content": "Hola"},
                {"role": "assistant", "content": "¡Hola!"},
                {"role": "user", "content": "¿Qué tal?"},
            ],
            GenerationOptions(temperature=0.1),
        )

        kwargs = provider.client.aio.models.generate_content.call_args.kwargs
        assert kwargs["config"].system_instruction == "Eres TicoBot"
        assert kwargs["config"].temperature == 0.1
        assert [content.role for content in kwargs["contents"]] == ["user", "model", "user"]
        assert response.content == "Hola"
        assert response.usage.total_tokens == 6

    @pytest.mark.asyncio
    async def test_max_tokens_finish_reason(self):
        provider = GeminiLLMProvider(api_key="test-key")
        provider.client = MagicMock()
        provider.client.aio.models.generate_content = AsyncMock(
            return_value=gemini_response(finish_reason=genai_types.FinishReason.MAX_TOKENS)
        )

        response = await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert response.finish_reason == "length"

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        provider = GeminiLLMProvider(api_key="test-key")
        provider.client = MagicMock()
        provider.client.aio.models.generate_content = AsyncMock(
            side_effect=genai_errors.ClientError(
                429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}}
            )
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_completion([{"role": "user", "content": "Hola"}])
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert exc_info.value.provider == "Gemini"
