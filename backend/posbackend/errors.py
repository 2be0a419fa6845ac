# Overview: Domain error taxonomy shared by services and routes.

"""
Service-layer exceptions.

Services raise these; routes translate them with error_response(). Input
problems that come straight out of payload parsing use ValidationError /
ConflictError from validation.py, which are mapped here too.
"""

from flask import jsonify

from .validation import ConflictError, ValidationError


class POSError(Exception):
    """Base class for business errors with an HTTP mapping."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFound(POSError):
    status_code = 404


class InvalidTransition(POSError):
    """Order or restock status guard violated."""
    status_code = 409


class CostNotFound(POSError):
    """No active ProductCost row for a product being priced."""
    status_code = 422


class DiscountNotFound(POSError):
    status_code = 422


class CheckCodeMismatch(POSError):
    status_code = 400


class NotPaid(POSError):
    status_code = 409


class AlreadyPickedUp(POSError):
    status_code = 409


class Unauthorized(POSError):
    status_code = 401


class Forbidden(POSError):
    status_code = 403


class StorageError(POSError):
    """Downstream persistence or remote provider failure."""
    status_code = 502


def error_response(exc: Exception):
    """Translate a known exception into a (json, status) pair."""
    if isinstance(exc, POSError):
        body = {"error": str(exc)}
        body.update(exc.details)
        return jsonify(body), exc.status_code
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    raise exc
