# Overview: Maps domain exceptions raised by services to JSON error responses.

from flask import jsonify, request

from ..money import MoneyFormatError
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_date

# Exceptions a route may map to a 4xx response; anything else is a 500
DOMAIN_ERRORS = (ValidationError, ConflictError, NotFoundError, MoneyFormatError)


def error_response(exc: Exception):
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409

    body = {"error": str(exc)}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details
    return jsonify(body), 400


def query_date(name: str):
    """Optional ISO date query parameter."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_date(name, raw)
