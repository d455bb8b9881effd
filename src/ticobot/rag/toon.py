"""TOON (Token-Oriented Object Notation) encoding and decoding.

TOON is a line-oriented ``key: value`` format used for structured LLM
output. Compared to JSON it avoids quotes, braces and indentation, which
noticeably reduces token usage. Example::

    keywords: educación,salud,empleo
    entities: PLN,PUSC
    intent: comparison
    enhancedQuery: propuestas de educación del PLN y el PUSC
"""

import logging
import re
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"^```[\w-]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```$")


def clean_markdown_blocks(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _CLOSING_FENCE.sub("", _OPENING_FENCE.sub("", cleaned)).strip()
    return cleaned


def parse_toon(text: str) -> dict[str, Any]:
    """Parse TOON text into a dict.

    Blank lines, ``#`` and ``//`` comments, and lines without a colon are
    skipped. Values containing a comma become lists of non-empty items.

    Args:
        text: TOON formatted text, optionally inside a code fence

    Returns:
        dict: Parsed key/value pairs (empty when nothing parses)
    """
    result: dict[str, Any] = {}
    for raw_line in clean_markdown_blocks(text).splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", "//")):
            continue

        key, colon, value = line.partition(":")
        if not colon:
            continue

        key, value = key.strip(), value.strip()
        if "," in value:
            result[key] = [item.strip() for item in value.split(",") if item.strip()]
        else:
            result[key] = value
    return result


def encode_toon(obj: dict[str, Any]) -> str:
    """Encode a flat dict as TOON; lists are comma-joined and None values skipped."""
    lines = []
    for key, value in obj.items():
        if isinstance(value, (list, tuple)):
            lines.append(f"{key}: {','.join(str(item) for item in value)}")
        elif value is not None:
            lines.append(f"{key}: {value}")
    return "\n".join(lines)


def validate_toon(obj: dict[str, Any] | None, required_fields: Iterable[str]) -> bool:
    """Check that every required field is present and not None."""
    if not obj:
        return False

    valid = True
    for field_name in required_fields:
        if obj.get(field_name) is None:
            logger.warning(f"⚠️ Missing required TOON field: {field_name}")
            valid = False
    return valid
