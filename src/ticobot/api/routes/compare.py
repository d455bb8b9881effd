"""Party comparison route: one answer per party on the same topic."""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from ticobot.api.config import get_config
from ticobot.api.errors import failure_response
from ticobot.api.routes.chat import format_sources
from ticobot.api.validation import parse_compare_request

logger = logging.getLogger(__name__)

compare_bp = Blueprint("compare", __name__)

STATE_LABELS = {
    "completa": "Completa",
    "parcial": "Parcial",
    "poco_clara": "Poco clara",
    "sin_informacion": "Sin información",
}

UNCERTAINTY_PHRASES = (
    "no se encontr",
    "no hay información",
    "no especifica",
    "no menciona",
    "no information found",
    "could not find",
)


def proposal_state(answer: str, sources_count: int, confidence: float) -> str:
    """Classify how completely a party's plan covers the topic.

    Returns:
        str: One of ``completa``, ``parcial``, ``poco_clara`` or ``sin_informacion``
    """
    if sources_count == 0 or confidence < 0.2:
        return "sin_informacion"

    lowered = answer.lower()
    if any(phrase in lowered for phrase in UNCERTAINTY_PHRASES) or confidence < 0.4:
        return "poco_clara"
    if len(answer) > 200 and sources_count >= 2 and confidence >= 0.7:
        return "completa"
    if len(answer) > 100 and sources_count >= 1 and confidence >= 0.5:
        return "parcial"
    return "poco_clara"


@compare_bp.route("/api/compare", methods=["POST"])
def compare():
    """Compare what several parties propose on one topic.

    Request:
        {
            "topic": "educación pública",
            "partyIds": ["PLN", "PUSC"],   # 1-5 parties
            "topKPerParty": 3,             # Optional, 1-10
            "temperature": 0.7             # Optional, 0-2
        }

    Response:
        {
            "topic": "...",
            "comparisons": [
                {"party", "answer", "state", "stateLabel", "confidence", "sources"}
            ],
            "metadata": {"totalParties", "timestamp", "cached", "processingTime"}
        }
    """
    config = get_config()
    start = time.perf_counter()
    logger.info("📨 Received compare request")
    try:
        params = parse_compare_request(request.get_json(silent=True))
        logger.info(f"⚖️ Topic: {params.topic[:100]!r}, parties: {', '.join(params.party_ids)}")

        comparisons = config.runner.run(
            config.get_pipeline().compare_parties(
                params.topic,
                params.party_ids,
                top_k_per_party=params.top_k_per_party,
                temperature=params.temperature,
            )
        )

        entries = []
        for comparison in comparisons:
            state = proposal_state(
                comparison.answer, len(comparison.sources), comparison.confidence
            )
            entries.append(
                {
                    "party": comparison.party,
                    "answer": comparison.answer,
                    "state": state,
                    "stateLabel": STATE_LABELS[state],
                    "confidence": comparison.confidence,
                    "sources": format_sources(comparison.sources),
                }
            )

        processing_time = int((time.perf_counter() - start) * 1000)
        logger.info(f"✅ Compared {len(entries)} parties in {processing_time}ms")
        return jsonify(
            {
                "topic": params.topic,
                "comparisons": entries,
                "metadata": {
                    "totalParties": len(entries),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "cached": False,
                    "processingTime": processing_time,
                },
            }
        )

    except Exception as e:
        return failure_response(e, "compare request")
