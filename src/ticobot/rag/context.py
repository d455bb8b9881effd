"""Formats retrieved chunks into the context passed to the LLM."""

import logging
from typing import Any

from ticobot.constants import DEFAULT_MAX_CONTEXT_LENGTH
from ticobot.models import SearchResult

logger = logging.getLogger(__name__)


def result_party(metadata: dict[str, Any], default: str = "Unknown") -> str:
    return metadata.get("partyId") or metadata.get("party") or default


def result_document(metadata: dict[str, Any], default: str = "Unknown Document") -> str:
    return metadata.get("title") or metadata.get("documentId") or default


class ContextBuilder:
    """Builds the LLM context from search results.

    Each chunk is rendered as ``[Source n] party - document`` followed by its
    text. Chunks are added in ranking order until the next one would exceed
    ``max_context_length`` characters.
    """

    def __init__(self, max_context_length: int = DEFAULT_MAX_CONTEXT_LENGTH) -> None:
        self.max_context_length = max_context_length

    def build(self, results: list[SearchResult], query: str) -> str:
        """Build the context string for a query.

        Args:
            results: Ranked search results
            query: The user's question, quoted when nothing was found

        Returns:
            str: Formatted context
        """
        if not results:
            logger.warning("⚠️ No chunks provided for context building")
            return (
                "No relevant information found in the government plans database "
                f'for the query: "{query}"'
            )

        parts = [
            self.format_chunk(index, result)
            for index, result in enumerate(self.select(results), start=1)
        ]
        context = "\n\n".join(parts)
        logger.info(f"📚 Context built: {len(context)} characters from {len(parts)} chunks")
        return context

    def select(self, results: list[SearchResult]) -> list[SearchResult]:
        """Leading results whose formatted chunks fit ``max_context_length``.

        Args:
            results: Ranked search results

        Returns:
            list[SearchResult]: The results the context will contain
        """
        selected: list[SearchResult] = []
        length = 0
        for index, result in enumerate(results, start=1):
            chunk_length = len(self.format_chunk(index, result))
            if length + chunk_length > self.max_context_length:
                logger.info(
                    f"✂️ Context truncated at {index - 1} chunks to fit "
                    f"{self.max_context_length} characters"
                )
                break
            selected.append(result)
            length += chunk_length
        return selected

    @staticmethod
    def format_chunk(index: int, result: SearchResult) -> str:
        metadata = result.document.metadata or {}
        party = result_party(metadata)
        header = f"[Source {index}] {party} - {result_document(metadata)}"
        return f"{header}\n{result.document.content or ''}"

    @staticmethod
    def get_context_stats(results: list[SearchResult]) -> dict[str, Any]:
        """Summarize the documents and parties covered by the results."""
        documents = {
            (result.document.metadata or {}).get("documentId") or result.document.id
            for result in results
        }
        parties = {
            (result.document.metadata or {}).get("partyId")
            or (result.document.metadata or {}).get("party")
            for result in results
        }
        avg_relevance = sum(result.score for result in results) / len(results) if results else 0
        return {
            "total_chunks": len(results),
            "unique_documents": len(documents),
            "unique_parties": len(parties),
            "avg_relevance": round(avg_relevance, 3),
        }
