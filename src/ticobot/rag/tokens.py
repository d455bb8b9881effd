"""Token counting with tiktoken, used to measure TOON savings over JSON."""

import json
from functools import lru_cache
from typing import Any

import tiktoken

# Same encoding as GPT-4 and GPT-3.5-turbo
ENCODING_NAME = "cl100k_base"


@lru_cache(maxsize=1)
def get_encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding(ENCODING_NAME)


def count_tokens(text: str) -> int:
    return len(get_encoding().encode(text))


def estimate_json_tokens(obj: Any) -> int:
    """Count the tokens of ``obj`` serialized as indented JSON."""
    return count_tokens(json.dumps(obj, indent=2, ensure_ascii=False))


def calculate_savings(original_tokens: int, new_tokens: int) -> float:
    """Percentage of tokens saved, 0 when there were no original tokens."""
    if original_tokens == 0:
        return 0.0
    return (original_tokens - new_tokens) / original_tokens * 100


def format_token_savings(original_tokens: int, new_tokens: int) -> str:
    saved = original_tokens - new_tokens
    return f"{saved} tokens ({calculate_savings(original_tokens, new_tokens):.1f}% savings)"
