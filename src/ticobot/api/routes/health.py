"""Health check and status API routes."""

import logging

from flask import Blueprint, jsonify

from ticobot.api.config import get_config

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Reports the configured provider names and whether the database answers.
    Provider credentials are not checked; no vendor is called.

    Returns:
        JSON with service status (503 when the database is unreachable)
    """
    config = get_config()
    providers = config.factory.provider_names()

    try:
        database_ok = config.runner.run(config.get_database().health_check())
    except Exception as e:
        logger.warning(f"⚠️ Database health check failed: {e}")
        database_ok = False

    status_code = 200 if database_ok else 503
    return (
        jsonify(
            {
                "status": "healthy" if database_ok else "degraded",
                "providers": providers,
                "database": "connected" if database_ok else "unavailable",
            }
        ),
        status_code,
    )
