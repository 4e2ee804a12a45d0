import logging

from flask import jsonify

from event_indexer.exceptions import ChunkFetchError, IndexingCancelled, StorageError, ValidationError

logger = logging.getLogger(__name__)


def error_response(e: Exception):
    """Map a service exception to the ``{success: false, error}`` body and a status code."""
    if isinstance(e, ValidationError):
        status = 400
    elif isinstance(e, ChunkFetchError):
        status = 502
    elif isinstance(e, IndexingCancelled):
        status = 409
    elif isinstance(e, StorageError):
        status = 500
    else:
        logger.exception(f"Unexpected error: {e}")
        return jsonify({"success": False, "error": str(e) or "Unknown error occurred"}), 500
    return jsonify({"success": False, "error": str(e)}), status


def as_bool(v) -> bool:
    return str(v).lower() in ("1", "true", "yes", "on")
