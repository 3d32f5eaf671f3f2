"""
Application errors and the single boundary that renders them.

Services and decorators raise one of the AppError subclasses; handlers never
build error JSON themselves. Every error reaches the client as
``{"success": false, "message": ..., "kind": ...}`` with the mapped status.
"""
from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException

from models import db


class AppError(Exception):
    status_code = 400
    kind = "error"

    def __init__(self, message: str, status_code: int = None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        body = {"success": False, "message": self.message, "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    kind = "validation"


class NotFoundError(AppError):
    status_code = 404
    kind = "not_found"


class ForbiddenError(AppError):
    status_code = 403
    kind = "forbidden"


class ConflictError(AppError):
    """Business-rule violation: capacity, overlap, lifecycle state, duplicates."""
    status_code = 400
    kind = "conflict"


class AuthenticationError(AppError):
    status_code = 401
    kind = "unauthenticated"


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def _handle_app_error(err: AppError):
        db.session.rollback()
        current_app.logger.info("%s %s: %s", err.status_code, err.kind, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(err: HTTPException):
        return jsonify(success=False, message=err.description, kind="http"), err.code

    @app.errorhandler(Exception)
    def _handle_unexpected(err: Exception):
        # outcome of any pending write is unknown; callers must re-read
        db.session.rollback()
        current_app.logger.exception("Unhandled error: %s", err)
        return jsonify(success=False, message="Internal server error", kind="internal"), 500
