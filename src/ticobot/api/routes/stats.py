"""Usage statistics API routes."""

import logging

from flask import Blueprint, jsonify

from ticobot.api.config import get_config
from ticobot.api.errors import failure_response

logger = logging.getLogger(__name__)

stats_bp = Blueprint("stats", __name__)


@stats_bp.route("/api/stats/toon", methods=["GET"])
def toon_stats():
    """Token savings of TOON over JSON since the server started."""
    stats = get_config().stats
    return jsonify({"summary": stats.get_summary(), "details": stats.get_stats()})


@stats_bp.route("/api/stats/toon/reset", methods=["POST"])
def reset_toon_stats():
    get_config().stats.reset()
    logger.info("🔄 TOON statistics reset")
    return jsonify({"success": True})


@stats_bp.route("/api/cache/stats", methods=["GET"])
def cache_stats():
    """Count cached answers.

    Returns:
        JSON with total, expired and never_expires counts
    """
    config = get_config()
    try:
        return jsonify(config.runner.run(config.get_cache().get_stats()))
    except Exception as e:
        return failure_response(e, "cache statistics request")
