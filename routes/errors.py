"""
Error translation - core exceptions to JSON responses.
"""

from flask import jsonify
from pydantic import ValidationError

from config import get_logger
from network.errors import (
    NetworkError,
    NotFoundError,
    InvalidIntervalError,
    InvalidTransitionError,
    InvalidRelationshipError,
    DuplicateIdentifierError,
    MalformedPayloadError,
    PersistenceError,
)

from . import network_bp

LOGGER = get_logger(__name__)

# First match wins
STATUS_CODES = [
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (InvalidRelationshipError, 409),
    (DuplicateIdentifierError, 409),
    (InvalidIntervalError, 400),
    (MalformedPayloadError, 400),
    (PersistenceError, 503),
]


def status_for(error: NetworkError) -> int:
    for error_cls, status in STATUS_CODES:
        if isinstance(error, error_cls):
            return status
    return 500


@network_bp.app_errorhandler(NetworkError)
def handle_network_error(error: NetworkError):
    status = status_for(error)
    if status >= 500:
        LOGGER.error(f"{type(error).__name__}: {error}")
    return jsonify({"error": str(error), "type": type(error).__name__}), status


@network_bp.app_errorhandler(ValidationError)
def handle_validation_error(error: ValidationError):
    return jsonify({"error": str(error), "type": "MalformedPayloadError"}), 400
