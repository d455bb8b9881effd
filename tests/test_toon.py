"""Tests for TOON parsing, token accounting and usage statistics."""

from unittest.mock import MagicMock

import pytest

from ticobot.rag import tokens
from ticobot.rag.stats import TOONStatsTracker
from ticobot.rag.toon import clean_markdown_blocks, encode_toon, parse_toon, validate_toon


class TestParseToon:
    """Tests for parse_toon."""

    def test_parses_scalars_and_lists(self):
        text = (
            "keywords: educación, salud,empleo\n"
            "entities: PLN\n"
            "intent: comparison\n"
            "enhancedQuery: propuestas del PLN"
        )

        assert parse_toon(text) == {
            "keywords": ["educación", "salud", "empleo"],
            "entities": "PLN",
            "intent": "comparison",
            "enhancedQuery": "propuestas del PLN",
        }

    def test_skips_comments_blank_and_colonless_lines(self):
        text = "# comentario\n\n// otro\nsin dos puntos\nintent: question"
        assert parse_toon(text) == {"intent": "question"}

    def test_strips_code_fence(self):
        text = "```toon\nintent: question\nentities: PLN,PUSC\n```"
        assert parse_toon(text) == {"intent": "question", "entities": ["PLN", "PUSC"]}

    def test_value_keeps_later_colons(self):
        assert parse_toon("enhancedQuery: hora: 10") == {"enhancedQuery": "hora: 10"}

    def test_drops_empty_list_items(self):
        assert parse_toon("keywords: a,,b,") == {"keywords": ["a", "b"]}

    def test_empty_input(self):
        assert parse_toon("") == {}

    def test_clean_markdown_blocks_without_fence(self):
        assert clean_markdown_blocks("  intent: x  ") == "intent: x"


class TestEncodeAndValidate:
    """Tests for encode_toon and validate_toon."""

    def test_encode(self):
        encoded = encode_toon({"keywords": ["a", "b"], "intent": "question", "skip": None})
        assert encoded == "keywords: a,b\nintent: question"

    def test_validate(self):
        assert validate_toon({"intent": "question", "keywords": []}, ["intent", "keywords"])
        assert not validate_toon({"intent": "question"}, ["intent", "keywords"])
        assert not validate_toon({}, ["intent"])
        assert not validate_toon(None, ["intent"])


class TestTokens:
    """Tests for token accounting helpers."""

    def test_savings(self):
        assert tokens.calculate_savings(100, 60) == 40.0
        assert tokens.calculate_savings(0, 10) == 0.0
        assert tokens.format_token_savings(100, 60) == "40 tokens (40.0% savings)"

    def test_counts_use_cl100k_encoding(self, monkeypatch):
        encoding = MagicMock()
        encoding.encode.side_effect = lambda text: text.split()
        monkeypatch.setattr(tokens, "get_encoding", lambda: encoding)

        assert tokens.count_tokens("uno dos tres") == 3
        # {\n  "a": 1\n} splits into four whitespace-separated pieces
        assert tokens.estimate_json_tokens({"a": 1}) == 4

    @pytest.mark.integration
    def test_real_encoding(self):
        """Counts tokens with tiktoken's cl100k_base encoding (downloads on first use)."""
        assert tokens.count_tokens("hello world") == 2


class TestTOONStatsTracker:
    """Tests for TOONStatsTracker."""

    def test_record_and_summary(self):
        tracker = TOONStatsTracker()
        tracker.record_query("uno", toon_tokens=60, json_tokens=100)
        tracker.record_query("dos", toon_tokens=40, json_tokens=100)

        summary = tracker.get_summary()
        assert summary["total_queries"] == 2
        assert summary["total_saved_tokens"] == 100
        assert summary["avg_savings_percent"] == 50.0
        assert summary["estimated_cost_savings"] == pytest.approx(0.00001)

    def test_empty_summary(self):
        summary = TOONStatsTracker().get_summary()
        assert summary["avg_savings_percent"] == 0
        assert summary["estimated_cost_savings"] == 0

    def test_history_is_bounded(self):
        tracker = TOONStatsTracker()
        for i in range(1001):
            tracker.record_query(f"q{i}", toon_tokens=1, json_tokens=2)

        stats = tracker.get_stats()
        assert stats["total_queries"] == 1001
        assert len(stats["queries"]) == 1000
        assert stats["queries"][0]["query"] == "q1"
        assert stats["queries"][-1]["query"] == "q1000"

    def test_reset(self):
        tracker = TOONStatsTracker(max_history=5)
        tracker.record_query("uno", toon_tokens=1, json_tokens=2)

        tracker.reset()

        assert tracker.get_stats() == {
            "total_queries": 0,
            "total_toon_tokens": 0,
            "total_json_tokens": 0,
            "total_saved_tokens": 0,
            "queries": [],
        }
