"""Flask web application for the TicoBot chat API.

This module provides the REST endpoints used by the web frontend to ask
questions about the 2026 government plans, browse the ingested documents and
inspect cache and token statistics.
"""

import logging
import os
from typing import Any

from dotenv import load_dotenv
from flask import Flask

from ticobot.api.config import RouteConfig, init_config
from ticobot.api.routes import (
    chat_bp,
    compare_bp,
    documents_bp,
    health_bp,
    search_bp,
    stats_bp,
)
from ticobot.constants import DEFAULT_FLASK_HOST, DEFAULT_FLASK_PORT
from ticobot.factory import ProviderFactory

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded")


def create_app(
    route_config: RouteConfig | None = None, settings: dict[str, Any] | None = None
) -> Flask:
    """Factory function for creating the Flask application.

    This function is used by WSGI servers like gunicorn to create the app.
    Providers are not contacted here; each one is built on the first
    request that needs it.

    Args:
        route_config: Prebuilt route dependencies (tests pass fakes here)
        settings: Provider settings overriding the environment, e.g.
            {"LLM_PROVIDER": "ollama"}

    Returns:
        Flask: The configured Flask application instance
    """
    app = Flask(__name__)

    if route_config is None:
        route_config = RouteConfig(factory=ProviderFactory(settings))
    init_config(app, route_config)

    app.register_blueprint(health_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(compare_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(stats_bp)

    providers = route_config.factory.provider_names()
    logger.info(
        f"✅ App created: llm={providers['llm']}, embedding={providers['embedding']}, "
        f"vector_store={providers['vector_store']}, database={providers['database']}"
    )
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting TicoBot API...")

    app = create_app()

    host = os.getenv("FLASK_HOST", DEFAULT_FLASK_HOST)
    port = int(os.getenv("FLASK_PORT", str(DEFAULT_FLASK_PORT)))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
