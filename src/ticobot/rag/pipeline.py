"""Retrieval-augmented generation: embed, search, build context, generate."""

import logging
import re
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from ticobot.constants import (
    COMPARE_DEFAULT_TOP_K,
    CONTENT_PREVIEW_LENGTH,
    DEFAULT_MAX_CONTEXT_LENGTH,
    DEFAULT_QUERY_PROCESSING,
    DEFAULT_TOP_K,
    EXCLUDED_FROM_SOURCES,
)
from ticobot.embedding.base import EmbeddingProvider
from ticobot.factory import ProviderFactory
from ticobot.llm.base import LLMProvider
from ticobot.models import SearchResult
from ticobot.rag.context import ContextBuilder, result_document, result_party
from ticobot.rag.generator import ResponseGenerator
from ticobot.rag.query_processor import QueryProcessor
from ticobot.rag.stats import TOONStatsTracker
from ticobot.service.database.base import VectorStore

logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = (
    "I could not find relevant information in the government plans database to answer "
    "your question. Please try rephrasing or asking about a different topic."
)
NO_RESULTS_STREAM_MESSAGE = "No relevant information found for your query."
NO_PARTY_INFORMATION = "No information found for {party} on this topic."

_EDGE_PUNCTUATION = re.compile(r"^[.,;:!?¿¡\s]+|[.,;:!?¿¡\s]+$")


def preprocess_query(query: str) -> str:
    """Trim, collapse whitespace and strip leading/trailing punctuation."""
    return _EDGE_PUNCTUATION.sub("", " ".join(query.split()))


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def build_sources(results: list[SearchResult]) -> list[dict[str, Any]]:
    """Citation entries for results, without the excluded metadata documents."""
    sources = []
    for result in results:
        metadata = result.document.metadata or {}
        if metadata.get("documentId", "") in EXCLUDED_FROM_SOURCES:
            continue
        content = result.document.content or ""
        if len(content) > CONTENT_PREVIEW_LENGTH:
            content = content[:CONTENT_PREVIEW_LENGTH] + "..."
        sources.append(
            {
                "id": result.document.id,
                "content": content,
                "party": result_party(metadata),
                "document": result_document(metadata, "Unknown"),
                "relevance": result.score,
                "page_number": metadata.get("pageNumber"),
            }
        )
    return sources


@dataclass
class RAGResponse:
    answer: str
    sources: list[dict[str, Any]] = field(default_factory=list)
    confidence: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PartyComparison:
    """One party's answer within a comparison."""

    party: str
    answer: str
    sources: list[dict[str, Any]] = field(default_factory=list)
    confidence: float = 0.0


class RAGPipeline:
    """Coordinates the query-to-answer workflow.

    The pipeline holds no provider selection logic of its own; it receives
    the providers it uses, normally from a ProviderFactory.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        llm: LLMProvider,
        max_context_length: int = DEFAULT_MAX_CONTEXT_LENGTH,
        query_processor: QueryProcessor | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            embedder: Embeds the (enhanced) query
            vector_store: Searched for relevant chunks
            llm: Generates the answer
            max_context_length: Character budget of the LLM context
            query_processor: When set, the query is enhanced by the LLM before
                embedding and the extracted keywords are reported in metadata
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.context_builder = ContextBuilder(max_context_length)
        self.generator = ResponseGenerator(llm)
        self.query_processor = query_processor

    @classmethod
    def from_factory(
        cls,
        factory: ProviderFactory,
        stats: TOONStatsTracker | None = None,
        max_context_length: int = DEFAULT_MAX_CONTEXT_LENGTH,
        query_processing: bool | None = None,
    ) -> "RAGPipeline":
        """Build a pipeline from the providers configured on a factory.

        Args:
            factory: Supplies the embedding, vector store and LLM providers
            stats: Tracker receiving TOON token savings of processed queries
            max_context_length: Character budget of the LLM context
            query_processing: Enable LLM query enhancement (default: the
                QUERY_PROCESSING setting)
        """
        if query_processing is None:
            setting = factory.setting("QUERY_PROCESSING", DEFAULT_QUERY_PROCESSING)
            query_processing = str(setting).strip().lower() in ("1", "true", "yes")

        llm = factory.get_llm_provider()
        return cls(
            embedder=factory.get_embedding_provider(),
            vector_store=factory.get_vector_store(),
            llm=llm,
            max_context_length=max_context_length,
            query_processor=QueryProcessor(llm, stats) if query_processing else None,
        )

    async def _retrieve(
        self,
        question: str,
        top_k: int,
        filters: dict[str, Any] | None,
        min_relevance_score: float | None,
    ) -> tuple[list[SearchResult], dict[str, Any]]:
        cleaned = preprocess_query(question)
        search_query = cleaned
        query_info: dict[str, Any] = {}

        if self.query_processor is not None:
            processed = await self.query_processor.process_query(cleaned)
            search_query = processed.search_text()
            query_info = {
                "keywords": processed.keywords,
                "entities": processed.entities,
                "intent": processed.intent,
            }

        embedding = await self.embedder.generate_embedding(search_query)
        results = await self.vector_store.similarity_search(embedding.embedding, top_k, filters)

        if min_relevance_score:
            relevant = [result for result in results if result.score >= min_relevance_score]
            if len(relevant) < len(results):
                logger.info(f"🔻 Filtered {len(results) - len(relevant)} low-relevance results")
            results = relevant

        if results:
            scores = ", ".join(f"{result.score:.3f}" for result in results)
            logger.info(f"🔍 Found {len(results)} results, scores: [{scores}]")
        return results, query_info

    async def search(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        filters: dict[str, Any] | None = None,
        min_relevance_score: float | None = None,
    ) -> list[SearchResult]:
        """Retrieve scored chunks without generating an answer."""
        results, _ = await self._retrieve(query, top_k, filters, min_relevance_score)
        return results

    async def query(
        self,
        question: str,
        top_k: int = DEFAULT_TOP_K,
        filters: dict[str, Any] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        min_relevance_score: float | None = None,
    ) -> RAGResponse:
        """Answer a question from the indexed government plans.

        Args:
            question: The user's question
            top_k: Number of chunks to retrieve
            filters: Vector store filters (e.g. {"partyId": "PLN"})
            temperature: Sampling temperature for the answer
            max_tokens: Maximum answer tokens
            min_relevance_score: Drop results scoring below this value

        Returns:
            RAGResponse: Answer, sources, confidence and timing metadata
        """
        start = time.perf_counter()
        logger.info(f"💬 Processing query: {question[:100]!r}")

        results, query_info = await self._retrieve(question, top_k, filters, min_relevance_score)
        if not results:
            logger.warning("⚠️ No relevant results found")
            return RAGResponse(
                answer=NO_RESULTS_ANSWER,
                metadata={
                    "query_time_ms": _elapsed_ms(start),
                    "chunks_retrieved": 0,
                    "chunks_used": 0,
                    **query_info,
                },
            )

        used = self.context_builder.select(results)
        context = self.context_builder.build(used, question)
        generated = await self.generator.generate(
            context, question, temperature=temperature, max_tokens=max_tokens
        )

        query_time = _elapsed_ms(start)
        logger.info(f"✅ Query completed in {query_time}ms")
        return RAGResponse(
            answer=generated.answer,
            sources=build_sources(results),
            confidence=generated.confidence,
            metadata={
                "query_time_ms": query_time,
                "chunks_retrieved": len(results),
                "chunks_used": len(used),
                "context": ContextBuilder.get_context_stats(used),
                "model": generated.model,
                "tokens_used": generated.tokens_used,
                **query_info,
            },
        )

    async def query_streaming(
        self,
        question: str,
        top_k: int = DEFAULT_TOP_K,
        filters: dict[str, Any] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        min_relevance_score: float | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Answer a question as a stream of events.

        Yields ``{"type": "chunk", "content": ...}`` events followed by one
        ``{"type": "metadata", "metadata": ...}`` event. Closing the
        generator early closes the underlying completion stream.
        """
        start = time.perf_counter()
        logger.info(f"💬 Processing streaming query: {question[:100]!r}")

        results, _ = await self._retrieve(question, top_k, filters, min_relevance_score)
        if not results:
            yield {"type": "chunk", "content": NO_RESULTS_STREAM_MESSAGE}
            yield {
                "type": "metadata",
                "metadata": {
                    "sources": [],
                    "query_time_ms": _elapsed_ms(start),
                    "chunks_retrieved": 0,
                },
            }
            return

        used = self.context_builder.select(results)
        context = self.context_builder.build(used, question)
        async with self.generator.generate_streaming(
            context, question, temperature=temperature, max_tokens=max_tokens
        ) as stream:
            async for fragment in stream:
                yield {"type": "chunk", "content": fragment}

        yield {
            "type": "metadata",
            "metadata": {
                "sources": build_sources(results),
                "query_time_ms": _elapsed_ms(start),
                "chunks_retrieved": len(results),
                "chunks_used": len(used),
                "model": self.generator.llm.get_model_name(),
            },
        }

    async def compare_parties(
        self,
        question: str,
        party_ids: list[str],
        top_k_per_party: int = COMPARE_DEFAULT_TOP_K,
        temperature: float | None = None,
    ) -> list[PartyComparison]:
        """Answer the same question separately for each party.

        The question is embedded once; retrieval is restricted to one party at
        a time so every party is answered from its own plan.

        Args:
            question: Topic or question to compare
            party_ids: Party ids or abbreviations, in display order
            top_k_per_party: Chunks retrieved for each party
            temperature: Sampling temperature for the answers

        Returns:
            list[PartyComparison]: One entry per party, in input order
        """
        logger.info(f"⚖️ Comparing {len(party_ids)} parties on: {question[:100]!r}")
        embedding = await self.embedder.generate_embedding(preprocess_query(question))

        comparisons = []
        for party_id in party_ids:
            results = await self.vector_store.similarity_search(
                embedding.embedding, top_k_per_party, {"partyId": party_id}
            )
            if not results:
                logger.info(f"⚠️ No results for {party_id}")
                comparisons.append(
                    PartyComparison(
                        party=party_id,
                        answer=NO_PARTY_INFORMATION.format(party=party_id),
                    )
                )
                continue

            context = self.context_builder.build(self.context_builder.select(results), question)
            generated = await self.generator.generate(context, question, temperature=temperature)
            comparisons.append(
                PartyComparison(
                    party=party_id,
                    answer=generated.answer,
                    sources=build_sources(results),
                    confidence=generated.confidence,
                )
            )

        return comparisons
