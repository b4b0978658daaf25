# Overview: Error taxonomy for services and the JSON error handlers that translate it to HTTP.

"""
Every service-level failure is a PetStoreError subclass carrying the HTTP status
it maps to. Services raise; the transaction scope rolls back before the error
leaves the service; the handlers below render the JSON envelope.

    ValidationError         400  malformed or missing input (before any mutation)
    InvalidReferenceError   400  request body points at a missing item/customer
    NotFoundError           404  addressed resource does not exist
    ConflictError           409  uniqueness or state conflict
    InsufficientStockError  409  requested quantity exceeds stock on hand
    AlreadyCancelledError   409  sale is already cancelled/refunded
    InternalFailure         500  unexpected persistence error
"""

from __future__ import annotations

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db


class PetStoreError(Exception):
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PetStoreError, ValueError):
    """400-level input problem."""


class InvalidReferenceError(PetStoreError):
    """Request payload references an item or customer that does not exist."""


class NotFoundError(PetStoreError):
    status_code = 404


class ConflictError(PetStoreError):
    """409-level business rule conflict (e.g., duplicate name)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    def __init__(self, *, item_id: int, item_name: str, available: int, required: int):
        super().__init__(
            f'Insufficient stock for item "{item_name}". '
            f"Available: {available}, Required: {required}",
            details={"item_id": item_id, "available": available, "required": required},
        )


class AlreadyCancelledError(ConflictError):
    pass


class InternalFailure(PetStoreError):
    status_code = 500


def register_error_handlers(app) -> None:
    @app.errorhandler(PetStoreError)
    def handle_service_error(exc: PetStoreError):
        if exc.status_code >= 500:
            current_app.logger.error("Internal failure: %s", exc.message, exc_info=exc)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        message = "Internal server error"
        if current_app.config.get("EXPOSE_INTERNAL_ERRORS"):
            message = f"{type(exc).__name__}: {exc}"
        return jsonify({"success": False, "error": message}), 500
