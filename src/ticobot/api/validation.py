"""Request parsing and validation for the HTTP API.

Request bodies may use snake_case or the camelCase names sent by the web
frontend (``topK``, ``maxTokens``, ``minRelevanceScore``...). Numeric
fields accept numbers or numeric strings.
"""

from dataclasses import dataclass
from typing import Any

from ticobot.constants import (
    CHAT_DEFAULT_MAX_TOKENS,
    CHAT_DEFAULT_TOP_K,
    CHAT_MAX_MAX_TOKENS,
    CHAT_MIN_MAX_TOKENS,
    COMPARE_DEFAULT_TOP_K,
    COMPARE_MAX_PARTIES,
    COMPARE_MAX_TOP_K,
    COMPARE_MAX_TOPIC_LENGTH,
    DEFAULT_MIN_RELEVANCE_SCORE,
    DEFAULT_TEMPERATURE,
    MAX_QUESTION_LENGTH,
    MAX_TEMPERATURE,
    MAX_TOP_K,
    SEARCH_DEFAULT_LIMIT,
    SEARCH_DEFAULT_MIN_SCORE,
    SEARCH_MAX_LIMIT,
    SEARCH_MAX_QUERY_LENGTH,
)


class ValidationError(ValueError):
    """A request field is missing or out of range."""


@dataclass
class ChatRequest:
    question: str
    party: str | None
    top_k: int
    temperature: float
    max_tokens: int
    min_relevance_score: float

    @property
    def filters(self) -> dict[str, Any] | None:
        return {"partyId": self.party} if self.party else None


@dataclass
class SearchRequest:
    query: str
    party: str | None
    limit: int
    min_score: float


@dataclass
class CompareRequest:
    topic: str
    party_ids: list[str]
    top_k_per_party: int
    temperature: float


def require_object(data: Any) -> None:
    """Reject request bodies that are present but not JSON objects."""
    if data is not None and not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")


def _value(data: dict[str, Any], name: str, alias: str | None = None) -> Any:
    if data.get(name) is not None:
        return data[name]
    if alias is not None:
        return data.get(alias)
    return None


def parse_text(
    data: dict[str, Any], name: str, max_length: int, required: bool = True
) -> str | None:
    """Read a string field.

    Raises:
        ValidationError: If the field is required and missing or blank, is
            not a string, or is longer than max_length
    """
    value = data.get(name)
    if value is None:
        if required:
            raise ValidationError(f"Missing '{name}' field in request")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{name}' must be a string")
    if required and not value.strip():
        raise ValidationError(f"'{name}' cannot be empty")
    if len(value) > max_length:
        raise ValidationError(f"'{name}' is too long (max {max_length} characters)")
    return value or None


def parse_number(
    data: dict[str, Any],
    name: str,
    default: float,
    minimum: float,
    maximum: float,
    alias: str | None = None,
    integer: bool = False,
) -> Any:
    """Read a numeric field, coercing numeric strings.

    Args:
        data: Request body or query arguments
        name: Field name
        default: Value used when the field is absent
        minimum: Smallest accepted value
        maximum: Largest accepted value
        alias: Alternative field name (camelCase)
        integer: Require a whole number and return an int

    Raises:
        ValidationError: If the value is not a number or is out of range
    """
    raw = _value(data, name, alias)
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"'{name}' must be a number")
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"'{name}' must be a number") from None
    if integer and not number.is_integer():
        raise ValidationError(f"'{name}' must be an integer")
    if not minimum <= number <= maximum:
        raise ValidationError(f"'{name}' must be between {minimum} and {maximum}")
    return int(number) if integer else number


def parse_chat_request(data: dict[str, Any] | None) -> ChatRequest:
    """Validate the body of a chat request.

    Raises:
        ValidationError: On a missing question or an out-of-range parameter
    """
    require_object(data)
    if not data:
        raise ValidationError("Missing 'question' field in request")

    return ChatRequest(
        question=parse_text(data, "question", MAX_QUESTION_LENGTH),
        party=parse_text(data, "party", MAX_QUESTION_LENGTH, required=False),
        top_k=parse_number(data, "top_k", CHAT_DEFAULT_TOP_K, 1, MAX_TOP_K, "topK", integer=True),
        temperature=parse_number(
            data, "temperature", DEFAULT_TEMPERATURE, 0.0, MAX_TEMPERATURE
        ),
        max_tokens=parse_number(
            data,
            "max_tokens",
            CHAT_DEFAULT_MAX_TOKENS,
            CHAT_MIN_MAX_TOKENS,
            CHAT_MAX_MAX_TOKENS,
            "maxTokens",
            integer=True,
        ),
        min_relevance_score=parse_number(
            data,
            "min_relevance_score",
            DEFAULT_MIN_RELEVANCE_SCORE,
            0.0,
            1.0,
            "minRelevanceScore",
        ),
    )


def parse_search_request(data: dict[str, Any] | None) -> SearchRequest:
    """Validate a search request (JSON body or query string)."""
    require_object(data)
    if not data:
        raise ValidationError("Missing 'query' field in request")

    return SearchRequest(
        query=parse_text(data, "query", SEARCH_MAX_QUERY_LENGTH),
        party=parse_text(data, "party", SEARCH_MAX_QUERY_LENGTH, required=False),
        limit=parse_number(
            data, "limit", SEARCH_DEFAULT_LIMIT, 1, SEARCH_MAX_LIMIT, integer=True
        ),
        min_score=parse_number(
            data, "min_score", SEARCH_DEFAULT_MIN_SCORE, 0.0, 1.0, "minScore"
        ),
    )


def parse_compare_request(data: dict[str, Any] | None) -> CompareRequest:
    """Validate the body of a party comparison request.

    Raises:
        ValidationError: On a missing topic, an empty or oversized party list,
            or an out-of-range parameter
    """
    require_object(data)
    if not data:
        raise ValidationError("Missing 'topic' field in request")

    topic = parse_text(data, "topic", COMPARE_MAX_TOPIC_LENGTH)
    party_ids = _value(data, "party_ids", "partyIds")
    if not isinstance(party_ids, list) or not party_ids:
        raise ValidationError("'partyIds' must be a non-empty list")
    if len(party_ids) > COMPARE_MAX_PARTIES:
        raise ValidationError(f"Maximum {COMPARE_MAX_PARTIES} parties allowed")
    if not all(isinstance(party, str) and party.strip() for party in party_ids):
        raise ValidationError("'partyIds' must contain party identifiers")

    return CompareRequest(
        topic=topic,
        party_ids=[party.strip() for party in party_ids],
        top_k_per_party=parse_number(
            data,
            "top_k_per_party",
            COMPARE_DEFAULT_TOP_K,
            1,
            COMPARE_MAX_TOP_K,
            "topKPerParty",
            integer=True,
        ),
        temperature=parse_number(
            data, "temperature", DEFAULT_TEMPERATURE, 0.0, MAX_TEMPERATURE
        ),
    )
