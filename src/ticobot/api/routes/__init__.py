"""Flask route blueprints for the ticobot API."""

from ticobot.api.routes.chat import chat_bp
from ticobot.api.routes.compare import compare_bp
from ticobot.api.routes.documents import documents_bp
from ticobot.api.routes.health import health_bp
from ticobot.api.routes.search import search_bp
from ticobot.api.routes.stats import stats_bp

__all__ = [
    "chat_bp",
    "compare_bp",
    "documents_bp",
    "health_bp",
    "search_bp",
    "stats_bp",
]
