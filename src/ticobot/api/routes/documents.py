"""Document and chunk browsing API routes."""

import dataclasses
import logging
from datetime import datetime
from typing import Any

from flask import Blueprint, jsonify, request

from ticobot.api.config import get_config
from ticobot.api.errors import error_response, failure_response
from ticobot.api.validation import ValidationError, parse_number
from ticobot.constants import (
    CHUNKS_DEFAULT_LIMIT,
    CHUNKS_MAX_LIMIT,
    DOCUMENTS_DEFAULT_LIMIT,
    DOCUMENTS_MAX_LIMIT,
)
from ticobot.models import QueryOptions

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__)


def to_payload(record: Any) -> dict[str, Any]:
    """Convert a Document or Chunk to a JSON-ready dict with ISO timestamps."""
    payload = dataclasses.asdict(record)
    for key, value in payload.items():
        if isinstance(value, datetime):
            payload[key] = value.isoformat()
    return payload


def page_params(default_limit: int, max_limit: int) -> tuple[int, int]:
    args = request.args.to_dict()
    limit = parse_number(args, "limit", default_limit, 1, max_limit, integer=True)
    offset = parse_number(args, "offset", 0, 0, float("inf"), integer=True)
    return limit, offset


def pagination(total: int, limit: int, offset: int) -> dict[str, Any]:
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "hasMore": offset + limit < total,
    }


@documents_bp.route("/api/documents", methods=["GET"])
def list_documents():
    """List ingested documents, newest first.

    Query parameters: ``party``, ``limit`` (1-100, default 20), ``offset``.
    """
    config = get_config()
    try:
        limit, offset = page_params(DOCUMENTS_DEFAULT_LIMIT, DOCUMENTS_MAX_LIMIT)
        party = request.args.get("party") or None
        logger.info(f"📚 Listing documents: party={party or 'all'}, offset={offset}")

        documents = config.runner.run(
            config.get_database().list_documents(
                QueryOptions(
                    order_by="created_at",
                    order_direction="desc",
                    filters={"party": party} if party else {},
                )
            )
        )

        return jsonify(
            {
                "documents": [to_payload(doc) for doc in documents[offset : offset + limit]],
                "pagination": pagination(len(documents), limit, offset),
            }
        )

    except Exception as e:
        return failure_response(e, "document listing")


@documents_bp.route("/api/documents/<path:document_id>", methods=["GET"])
def get_document(document_id: str):
    """Get one document by id."""
    config = get_config()
    try:
        document = config.runner.run(config.get_database().get_document_by_id(document_id))
        if document is None:
            logger.warning(f"⚠️ Document not found: {document_id}")
            return error_response("Document not found", 404, id=document_id)
        return jsonify({"document": to_payload(document)})

    except Exception as e:
        return failure_response(e, "document request")


@documents_bp.route("/api/chunks", methods=["GET"])
def list_chunks():
    """List the chunks of a document in reading order.

    Query parameters: ``document_id`` (required), ``limit`` (1-200,
    default 50), ``offset``. Document ids contain slashes, so they are
    passed as a parameter rather than in the path.
    """
    config = get_config()
    try:
        document_id = request.args.get("document_id") or request.args.get("documentId")
        if not document_id:
            raise ValidationError("Missing 'document_id' parameter")
        limit, offset = page_params(CHUNKS_DEFAULT_LIMIT, CHUNKS_MAX_LIMIT)

        chunks = config.runner.run(config.get_database().get_chunks_by_document_id(document_id))
        logger.info(f"🧩 Found {len(chunks)} chunks for {document_id}")

        return jsonify(
            {
                "chunks": [to_payload(chunk) for chunk in chunks[offset : offset + limit]],
                "pagination": pagination(len(chunks), limit, offset),
            }
        )

    except Exception as e:
        return failure_response(e, "chunk listing")
