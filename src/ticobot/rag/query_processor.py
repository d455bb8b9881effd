"""Query enhancement before retrieval: keywords, entities and intent."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ticobot.errors import ProviderError
from ticobot.llm.base import LLMProvider
from ticobot.models import GenerationOptions
from ticobot.rag.stats import TOONStatsTracker
from ticobot.rag.tokens import count_tokens, estimate_json_tokens, format_token_savings
from ticobot.rag.toon import clean_markdown_blocks, parse_toon, validate_toon

logger = logging.getLogger(__name__)

EXTRACTION_OPTIONS = GenerationOptions(temperature=0.3, max_tokens=500)
REQUIRED_FIELDS = ("keywords", "intent", "enhancedQuery")

STOPWORDS = frozenset(
    {"el", "la", "de", "que", "y", "a", "en", "un", "por", "con", "para", "qué", "cómo", "cuál"}
)
KNOWN_ENTITIES = ("PLN", "PAC", "PUSC", "CCSS", "ICE", "MEP", "TSE")

SYSTEM_PROMPT = """Eres un asistente experto en análisis de consultas sobre política costarricense.

Tu tarea es analizar la consulta del usuario y extraer:
1. Palabras clave: términos importantes para búsqueda (sin stopwords)
2. Entidades: nombres de instituciones, lugares, partidos políticos
3. Intención: tipo de consulta (pregunta, comparación, búsqueda)

Devuelve SOLO TOON (Token-Oriented Object Notation) con este formato:
keywords: palabra1,palabra2,palabra3
entities: entidad1,entidad2
intent: question|comparison|lookup
enhancedQuery: versión expandida de la consulta con contexto adicional

Reglas:
- keywords: 3-10 palabras clave relevantes (sin stopwords como "el", "la", "de")
- entities: instituciones (CCSS, ICE, MEP), lugares (San José, Guanacaste), partidos
- intent: question (pregunta), comparison (comparar), lookup (buscar dato específico)
- enhancedQuery: reformula la consulta agregando contexto implícito

Ejemplo:

Consulta: "¿Qué propone el PLN sobre educación?"
keywords: propuestas,educación,pln,partido liberación,plan gobierno
entities: PLN,Partido Liberación Nacional
intent: question
enhancedQuery: ¿Cuáles son las propuestas del Partido Liberación Nacional (PLN) en materia de educación pública en su plan de gobierno?"""


@dataclass
class ProcessedQuery:
    """A user query enriched for retrieval."""

    original_query: str
    enhanced_query: str
    keywords: list[str] = field(default_factory=list)
    entities: list[str] = field(default_factory=list)
    intent: str = "question"

    def search_text(self) -> str:
        """Enhanced query followed by keywords and entities, space-separated."""
        return " ".join([self.enhanced_query, *self.keywords, *self.entities])


def _as_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    if isinstance(value, str) and value:
        return [value]
    return []


def parse_json_response(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(clean_markdown_blocks(text))
    except json.JSONDecodeError as e:
        logger.warning(f"⚠️ Failed to parse JSON response: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


def fallback_extraction(query: str) -> ProcessedQuery:
    """Extract keywords without the LLM: stopword removal and known acronyms."""
    keywords = [
        word for word in query.lower().split() if len(word) > 2 and word not in STOPWORDS
    ][:10]
    upper_query = query.upper()
    return ProcessedQuery(
        original_query=query,
        enhanced_query=query,
        keywords=keywords,
        entities=[entity for entity in KNOWN_ENTITIES if entity in upper_query],
        intent="comparison" if "compar" in query else "question",
    )


class QueryProcessor:
    """Asks the LLM for keywords, entities and intent in TOON format.

    Falls back to JSON parsing, then to stopword-based extraction. Token
    savings of parsed responses are recorded in the stats tracker.
    """

    def __init__(self, llm: LLMProvider, stats: TOONStatsTracker | None = None) -> None:
        self.llm = llm
        self.stats = stats

    async def process_query(self, query: str) -> ProcessedQuery:
        """Process a user query.

        Args:
            query: The user's question

        Returns:
            ProcessedQuery: Extracted keywords, entities, intent and enhanced query
        """
        logger.info(f"🔎 Processing query: {query[:100]!r}")
        user_prompt = (
            f'Consulta del usuario: "{query}"\n\n'
            "Devuelve SOLO TOON con keywords, entities, intent y enhancedQuery."
        )

        try:
            response = await self.llm.generate_completion(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                EXTRACTION_OPTIONS,
            )
        except ProviderError as e:
            logger.warning(f"⚠️ Query processing failed, using fallback extraction: {e}")
            return fallback_extraction(query)

        used_format = "TOON"
        parsed: dict[str, Any] | None = parse_toon(response.content)
        if not validate_toon(parsed, REQUIRED_FIELDS):
            logger.warning("⚠️ TOON parsing failed, trying JSON fallback")
            parsed = parse_json_response(response.content)
            used_format = "JSON"

        if not parsed:
            logger.warning("⚠️ LLM response parsing failed, using fallback extraction")
            return fallback_extraction(query)

        result = ProcessedQuery(
            original_query=query,
            enhanced_query=parsed.get("enhancedQuery") or query,
            keywords=_as_list(parsed.get("keywords")),
            entities=_as_list(parsed.get("entities")),
            intent=parsed.get("intent") or "question",
        )

        response_tokens = count_tokens(response.content)
        json_tokens = estimate_json_tokens(
            {
                "keywords": result.keywords,
                "entities": result.entities,
                "intent": result.intent,
                "enhancedQuery": result.enhanced_query,
            }
        )
        if self.stats is not None:
            self.stats.record_query(query, response_tokens, json_tokens)

        logger.info(
            f"✅ Extracted {len(result.keywords)} keywords, {len(result.entities)} entities "
            f"({used_format}: {response_tokens} tokens, saved "
            f"{format_token_savings(json_tokens, response_tokens)})"
        )
        return result
