"""
pricecompare/errors.py

API error taxonomy and the JSON error handlers.

Every failure leaves a handler as one of these exceptions and is rendered as
{"error": <message>} with the matching HTTP status:

- ValidationError      400  missing or malformed input, illegal state transition
- ConflictError        400  duplicate username, entity still referenced
- AuthenticationError  401  missing / invalid / expired credential
- AuthorizationError   403  authenticated but not allowed
- NotFoundError        404  target id absent
- UnexpectedError      500  anything else (logged, generic message returned)

The session is rolled back on every error, so a failed request never leaves a
partially applied multi-step write behind.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(ApiError):
    status_code = 400
    default_message = "Conflict"


class AuthenticationError(ApiError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(ApiError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class UnexpectedError(ApiError):
    status_code = 500


def _error_response(message: str, status_code: int):
    return jsonify({"error": message}), status_code


def register_error_handlers(app: Flask) -> None:
    """Map the taxonomy (and everything else) to JSON responses."""

    @app.errorhandler(ApiError)
    def _handle_api_error(exc: ApiError):
        db.session.rollback()
        if isinstance(exc, UnexpectedError):
            logger.error("Unexpected error: %s", exc.message)
            return _error_response(UnexpectedError.default_message, exc.status_code)
        return _error_response(exc.message, exc.status_code)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        db.session.rollback()
        return _error_response(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        db.session.rollback()
        logger.exception("Unhandled error while processing request")
        return _error_response(UnexpectedError.default_message, 500)
