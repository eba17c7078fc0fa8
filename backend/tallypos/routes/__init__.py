from flask import jsonify

from ..services.errors import DomainError, NotFoundError
from ..validation import ConflictError, ValidationError


def error_response(exc: Exception):
    """Map a domain/validation error to a JSON error body and status code."""
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc), "details": exc.details}), 404
    if isinstance(exc, DomainError):
        return jsonify({"error": str(exc), "details": exc.details}), 400
    raise exc


HANDLED_ERRORS = (ValidationError, ConflictError, DomainError)
