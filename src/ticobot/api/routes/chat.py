"""Chat API routes using the RAG pipeline and the answer cache."""

import json
import logging
import time
from collections.abc import Iterator
from contextlib import closing
from typing import Any

from flask import Blueprint, Response, jsonify, request

from ticobot.api.config import RouteConfig, get_config
from ticobot.api.errors import failure_response
from ticobot.api.validation import ChatRequest, parse_chat_request
from ticobot.constants import CHAT_CACHE_TTL_HOURS, STREAM_WORDS_PER_CHUNK

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def format_sources(sources: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Shape pipeline sources for API clients."""
    return [
        {
            "id": source.get("id"),
            "content": source.get("content"),
            "party": source.get("party"),
            "document": source.get("document"),
            "page": source.get("page_number"),
            "relevanceScore": source.get("relevance") or 0,
        }
        for source in sources
    ]


def response_metadata(
    metadata: dict[str, Any], sources_count: int, processing_time: int, cached: bool
) -> dict[str, Any]:
    return {
        "model": metadata.get("model") or ("cached" if cached else None),
        "tokensUsed": metadata.get("tokens_used") or 0,
        "sourcesCount": sources_count,
        "processingTime": processing_time,
        "cached": cached,
    }


def chat_payload(
    params: ChatRequest,
    answer: str,
    sources: list[dict[str, Any]],
    metadata: dict[str, Any],
    processing_time: int,
    cached: bool,
) -> dict[str, Any]:
    return {
        "answer": answer,
        "sources": format_sources(sources),
        "metadata": response_metadata(metadata, len(sources), processing_time, cached),
        "filters": {
            "party": params.party,
            "minRelevanceScore": params.min_relevance_score,
        },
    }


def answer_chunks(answer: str, words_per_chunk: int = STREAM_WORDS_PER_CHUNK) -> Iterator[str]:
    """Split an answer into groups of words, keeping the separating spaces."""
    words = answer.split(" ")
    for start in range(0, len(words), words_per_chunk):
        chunk = " ".join(words[start : start + words_per_chunk])
        yield chunk + (" " if start + words_per_chunk < len(words) else "")


def sse(event: dict[str, Any]) -> str:
    """Encode one Server-Sent Events message."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def cache_answer(
    config: RouteConfig,
    params: ChatRequest,
    answer: str,
    sources: list[dict[str, Any]],
    metadata: dict[str, Any],
) -> None:
    """Store a generated answer for CHAT_CACHE_TTL_HOURS."""
    config.runner.run(
        config.get_cache().set_cached(
            params.question,
            answer,
            sources,
            metadata,
            party=params.party,
            top_k=params.top_k,
            min_relevance_score=params.min_relevance_score,
            expires_in_hours=CHAT_CACHE_TTL_HOURS,
        )
    )


@chat_bp.route("/api/chat", methods=["POST"])
def chat():
    """Answer a question about the government plans.

    The answer cache is checked first, so a hit needs no embedding or LLM
    call. On a miss the RAG pipeline answers and the result is cached.

    Request:
        {
            "question": "¿Qué proponen los partidos sobre educación?",
            "party": "PLN",            # Optional party filter
            "topK": 10,                # Optional, 1-15
            "temperature": 0.7,        # Optional, 0-2
            "maxTokens": 2000,         # Optional, 100-4000
            "minRelevanceScore": 0.1   # Optional, 0-1
        }

    Response:
        {
            "answer": "...",
            "sources": [{"id", "content", "party", "document", "page", "relevanceScore"}],
            "metadata": {"model", "tokensUsed", "sourcesCount", "processingTime", "cached"},
            "filters": {"party", "minRelevanceScore"}
        }
    """
    config = get_config()
    start = time.perf_counter()
    logger.info("📨 Received chat request")
    try:
        params = parse_chat_request(request.get_json(silent=True))
        logger.info(
            f"🔍 Question: {params.question[:100]!r} "
            f"(party={params.party or 'all'}, top_k={params.top_k})"
        )

        cached = config.runner.run(
            config.get_cache().get_cached(
                params.question, params.party, params.top_k, params.min_relevance_score
            )
        )
        if cached:
            processing_time = _elapsed_ms(start)
            logger.info(f"✅ Served cached answer in {processing_time}ms")
            return jsonify(
                chat_payload(
                    params, cached.answer, cached.sources, cached.metadata, processing_time, True
                )
            )

        result = config.runner.run(
            config.get_pipeline().query(
                params.question,
                top_k=params.top_k,
                filters=params.filters,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                min_relevance_score=params.min_relevance_score,
            )
        )
        processing_time = _elapsed_ms(start)
        metadata = {
            "model": result.metadata.get("model"),
            "tokens_used": result.metadata.get("tokens_used", 0),
            "processing_time_ms": processing_time,
        }
        if result.metadata.get("chunks_retrieved"):
            cache_answer(config, params, result.answer, result.sources, metadata)

        logger.info(f"✅ Chat completed: {len(result.sources)} sources in {processing_time}ms")
        return jsonify(
            chat_payload(params, result.answer, result.sources, metadata, processing_time, False)
        )

    except Exception as e:
        return failure_response(e, "chat request")


def stream_events(config: RouteConfig, params: ChatRequest) -> Iterator[str]:
    """Produce the SSE messages of a streaming chat answer.

    Events: ``start``, then ``chunk`` messages as the answer is generated,
    ``sources`` and finally ``done``. Failures after the stream started are
    reported as an ``error`` event. A cached answer is replayed in chunks of
    STREAM_WORDS_PER_CHUNK words after its ``sources`` event.
    """
    start = time.perf_counter()
    try:
        cached = config.runner.run(
            config.get_cache().get_cached(
                params.question, params.party, params.top_k, params.min_relevance_score
            )
        )
        if cached:
            yield sse({"type": "start", "message": "Loading cached response..."})
            yield sse({"type": "sources", "sources": format_sources(cached.sources)})
            for chunk in answer_chunks(cached.answer):
                yield sse({"type": "chunk", "content": chunk})
            metadata = response_metadata(
                cached.metadata, len(cached.sources), _elapsed_ms(start), cached=True
            )
            yield sse({"type": "done", "metadata": metadata})
            return

        yield sse({"type": "start", "message": "Processing query..."})

        parts: list[str] = []
        final: dict[str, Any] = {}
        events = config.get_pipeline().query_streaming(
            params.question,
            top_k=params.top_k,
            filters=params.filters,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            min_relevance_score=params.min_relevance_score,
        )
        with closing(config.runner.iterate(events)) as pulled:
            for event in pulled:
                if event["type"] == "chunk":
                    parts.append(event["content"])
                    yield sse(event)
                elif event["type"] == "metadata":
                    final = event["metadata"]

        sources = final.get("sources", [])
        yield sse({"type": "sources", "sources": format_sources(sources)})

        processing_time = _elapsed_ms(start)
        metadata = {
            "model": final.get("model"),
            "tokens_used": 0,
            "processing_time_ms": processing_time,
        }
        if final.get("chunks_retrieved"):
            cache_answer(config, params, "".join(parts), sources, metadata)

        done = response_metadata(metadata, len(sources), processing_time, cached=False)
        yield sse({"type": "done", "metadata": done})
        logger.info(f"✅ Stream completed in {processing_time}ms")

    except Exception as e:
        logger.error(f"❌ Stream error: {e}", exc_info=True)
        yield sse({"type": "error", "error": "Failed to process query", "message": str(e)})


@chat_bp.route("/api/chat/stream", methods=["POST"])
def chat_stream():
    """Answer a question as Server-Sent Events.

    Accepts the same body as /api/chat. Invalid requests are rejected with
    a 400 JSON response before the stream starts.
    """
    config = get_config()
    logger.info("📨 Received streaming chat request")
    try:
        params = parse_chat_request(request.get_json(silent=True))
    except Exception as e:
        return failure_response(e, "streaming chat request")

    return Response(
        stream_events(config, params),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
