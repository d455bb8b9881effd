"""Cumulative statistics on tokens saved by TOON output."""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from ticobot.constants import COST_PER_1K_TOKENS, TOON_STATS_MAX_HISTORY

logger = logging.getLogger(__name__)


@dataclass
class QuerySample:
    query: str
    toon_tokens: int
    json_tokens: int
    saved_tokens: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TOONStatsTracker:
    """Tracks token usage of TOON versus JSON for processed queries.

    Totals cover every recorded query; only the most recent ``max_history``
    samples are kept. Not safe for concurrent mutation from several threads.
    """

    def __init__(self, max_history: int = TOON_STATS_MAX_HISTORY) -> None:
        self.max_history = max_history
        self.reset()

    def reset(self) -> None:
        self.total_queries = 0
        self.total_toon_tokens = 0
        self.total_json_tokens = 0
        self.total_saved_tokens = 0
        self.queries: deque[QuerySample] = deque(maxlen=self.max_history)

    def record_query(self, query: str, toon_tokens: int, json_tokens: int) -> None:
        """Record the token counts of one processed query.

        Args:
            query: The processed query text
            toon_tokens: Tokens of the TOON output
            json_tokens: Tokens the same output would take as JSON
        """
        saved_tokens = json_tokens - toon_tokens
        self.total_queries += 1
        self.total_toon_tokens += toon_tokens
        self.total_json_tokens += json_tokens
        self.total_saved_tokens += saved_tokens
        self.queries.append(QuerySample(query, toon_tokens, json_tokens, saved_tokens))
        logger.debug(f"📊 TOON saved {saved_tokens} tokens for {query[:50]!r}")

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of totals and retained samples, oldest first."""
        return {
            "total_queries": self.total_queries,
            "total_toon_tokens": self.total_toon_tokens,
            "total_json_tokens": self.total_json_tokens,
            "total_saved_tokens": self.total_saved_tokens,
            "queries": [asdict(sample) for sample in self.queries],
        }

    def get_summary(self) -> dict[str, Any]:
        """Totals with average savings and estimated cost savings in USD."""
        avg_savings_percent = (
            self.total_saved_tokens / self.total_json_tokens * 100
            if self.total_json_tokens > 0
            else 0
        )
        return {
            "total_queries": self.total_queries,
            "total_toon_tokens": self.total_toon_tokens,
            "total_json_tokens": self.total_json_tokens,
            "total_saved_tokens": self.total_saved_tokens,
            "avg_savings_percent": avg_savings_percent,
            "estimated_cost_savings": self.total_saved_tokens / 1000 * COST_PER_1K_TOKENS,
        }
