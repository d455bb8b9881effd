"""Answer generation from the retrieved context."""

import logging
from dataclasses import dataclass

from ticobot.constants import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from ticobot.llm.base import CompletionStream, LLMProvider
from ticobot.models import GenerationOptions

logger = logging.getLogger(__name__)

UNCERTAINTY_PHRASES = (
    "no tengo suficiente información",
    "no hay información",
    "no puedo determinar",
    "i don't have enough information",
    "there is no information",
    "i cannot determine",
)

DEFAULT_SYSTEM_PROMPT = """You are an expert assistant specialized in Costa Rica's 2026 Government Plans and Political Candidates.

CRITICAL INSTRUCTIONS:
- You will ALWAYS receive context with information from government plans
- You MUST use the provided context to answer questions
- The context contains real information from official documents - USE IT
- If context is provided, it means relevant information was found - extract and use it

Your role is to:
- Extract and present information from the provided context
- Answer questions about presidential candidates and their political parties
- Compare proposals between different political parties when multiple sources are provided
- Answer questions clearly and concisely in Spanish or English
- Always cite which party's plan you're referencing (e.g., "Según el plan del PLN...", "El FA propone...")
- Remain politically neutral and objective

Guidelines:
- When multiple parties are mentioned, compare their proposals
- Format responses clearly with proper structure
- Use bullet points for lists when appropriate
- When asked about candidates, provide the candidate's name, their party, and any relevant information from the context"""


@dataclass
class GeneratedAnswer:
    answer: str
    confidence: float
    tokens_used: int
    model: str


def build_user_prompt(context: str, query: str) -> str:
    return f"""Context from Costa Rica 2026 Government Plans:

{context}

---

Based on the context above, please answer the following question:
{query}

Important:
- You MUST use the information provided in the context above to answer the question
- If multiple parties are mentioned, compare their proposals
- Cite which party's plan you're referencing (e.g., "Según el plan del PLN...")
- Only say you don't have information if the context is truly empty or irrelevant"""


def calculate_confidence(answer: str, context: str) -> float:
    """Heuristic confidence in [0, 1] from context size and answer wording."""
    confidence = 0.5
    if len(context) > 1000:
        confidence += 0.2
    elif len(context) > 500:
        confidence += 0.1

    if len(answer) > 200:
        confidence += 0.1

    lowered = answer.lower()
    if any(phrase in lowered for phrase in UNCERTAINTY_PHRASES):
        confidence -= 0.3

    return max(0.0, min(1.0, confidence))


class ResponseGenerator:
    """Generates answers with an LLM provider from a context and a question."""

    def __init__(self, llm: LLMProvider, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self.llm = llm
        self.system_prompt = system_prompt

    def _messages(
        self, context: str, query: str, system_prompt: str | None
    ) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt or self.system_prompt},
            {"role": "user", "content": build_user_prompt(context, query)},
        ]

    @staticmethod
    def _options(temperature: float | None, max_tokens: int | None) -> GenerationOptions:
        return GenerationOptions(
            temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
            max_tokens=DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens,
        )

    async def generate(
        self,
        context: str,
        query: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        system_prompt: str | None = None,
    ) -> GeneratedAnswer:
        """Generate an answer.

        Args:
            context: Formatted context from ContextBuilder
            query: The user's question
            temperature: Sampling temperature (default: 0.7)
            max_tokens: Maximum answer tokens (default: 1000)
            system_prompt: Replaces the default system prompt for this call

        Returns:
            GeneratedAnswer: Answer text, confidence, tokens used and model
        """
        logger.info(f"🤖 Generating response for {query[:50]!r} ({len(context)} context chars)")
        response = await self.llm.generate_completion(
            self._messages(context, query, system_prompt), self._options(temperature, max_tokens)
        )
        confidence = calculate_confidence(response.content, context)
        logger.info(
            f"✅ Response generated: {len(response.content)} chars, confidence {confidence:.2f}"
        )
        return GeneratedAnswer(
            answer=response.content,
            confidence=confidence,
            tokens_used=response.usage.total_tokens,
            model=response.model,
        )

    def generate_streaming(
        self,
        context: str,
        query: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        system_prompt: str | None = None,
    ) -> CompletionStream:
        """Start a streamed answer; the caller must consume or close the stream."""
        logger.info(f"🤖 Streaming response for {query[:50]!r}")
        return self.llm.generate_streaming_completion(
            self._messages(context, query, system_prompt), self._options(temperature, max_tokens)
        )
