"""JSON error responses shared by the route modules."""

import logging

from flask import jsonify

from ticobot.api.validation import ValidationError
from ticobot.errors import ErrorKind, ProviderError, ProviderNotImplementedError

logger = logging.getLogger(__name__)


def error_response(message: str, status: int, **extra):
    """Build a ``{"error": message, ...}`` response with the given status."""
    return jsonify({"error": message, **extra}), status


def failure_response(error: Exception, action: str):
    """Map an exception raised while handling a request to a JSON response.

    Validation errors become 400, rate limits 429 and every other failure
    500. Unexpected exceptions are logged with their traceback.

    Args:
        error: The exception raised by the route
        action: What the route was doing, for the log message

    Returns:
        tuple: Flask response and status code
    """
    if isinstance(error, ValidationError):
        logger.warning(f"❌ Invalid {action}: {error}")
        return error_response("Validation error", 400, details=str(error))

    if isinstance(error, ProviderError):
        status = 429 if error.kind is ErrorKind.RATE_LIMITED else 500
        logger.error(f"❌ {error.provider or 'Provider'} error during {action}: {error}")
        return error_response(
            str(error), status, kind=error.kind.value, provider=error.provider
        )

    if isinstance(error, ProviderNotImplementedError):
        logger.error(f"❌ Provider not available for {action}: {error}")
        return error_response(str(error), 500)

    logger.error(f"❌ Error processing {action}: {error}", exc_info=True)
    return error_response(f"Internal server error: {str(error)}", 500)
