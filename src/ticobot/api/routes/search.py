"""Semantic search API routes."""

import logging

from flask import Blueprint, jsonify, request

from ticobot.api.config import get_config
from ticobot.api.errors import failure_response
from ticobot.api.validation import parse_search_request

logger = logging.getLogger(__name__)

search_bp = Blueprint("search", __name__)


@search_bp.route("/api/search", methods=["GET", "POST"])
def search():
    """Search the government plans without generating an answer.

    Parameters come from the JSON body (POST) or the query string (GET):
    ``query`` (required), ``party``, ``limit`` (1-20, default 5) and
    ``minScore`` (0-1, default 0.35).

    Returns:
        JSON with scored chunks, their metadata and page numbers
    """
    config = get_config()
    try:
        if request.method == "POST":
            params = parse_search_request(request.get_json(silent=True))
        else:
            params = parse_search_request(request.args.to_dict())
        logger.info(f"🔍 Search: {params.query[:100]!r} (party={params.party or 'all'})")

        results = config.runner.run(
            config.get_pipeline().search(
                params.query,
                top_k=params.limit,
                filters={"partyId": params.party} if params.party else None,
                min_relevance_score=params.min_score,
            )
        )

        return jsonify(
            {
                "query": params.query,
                "results": [
                    {
                        "id": result.document.id,
                        "content": result.document.content,
                        "score": result.score,
                        "metadata": result.document.metadata,
                        "page": result.document.metadata.get("pageNumber"),
                    }
                    for result in results
                ],
                "count": len(results),
                "filters": {"party": params.party, "minScore": params.min_score},
            }
        )

    except Exception as e:
        return failure_response(e, "search request")
