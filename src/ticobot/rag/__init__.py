"""Retrieval-augmented generation for ticobot.

Components:
- QueryProcessor: LLM keyword/entity extraction in TOON format
- ContextBuilder: formats retrieved chunks for the LLM
- ResponseGenerator: answer generation and confidence scoring
- RAGPipeline: embed -> search -> context -> generate, with streaming and
  per-party comparison
- TOONStatsTracker: token savings of TOON over JSON
"""

from ticobot.rag.context import ContextBuilder
from ticobot.rag.generator import GeneratedAnswer, ResponseGenerator
from ticobot.rag.pipeline import PartyComparison, RAGPipeline, RAGResponse, preprocess_query
from ticobot.rag.query_processor import ProcessedQuery, QueryProcessor
from ticobot.rag.stats import TOONStatsTracker

__all__ = [
    "ContextBuilder",
    "GeneratedAnswer",
    "ResponseGenerator",
    "RAGPipeline",
    "PartyComparison",
    "RAGResponse",
    "preprocess_query",
    "ProcessedQuery",
    "QueryProcessor",
    "TOONStatsTracker",
]
