from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class AppError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message, status_code=None, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        payload = {"error": self.message, "code": self.code}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(AppError):
    """Malformed input. Never retried."""

    status_code = 400
    code = "validation_error"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    """Requested dates are taken or a unique constraint rejected the insert."""

    status_code = 409
    code = "dates_unavailable"


class StateError(AppError):
    """Illegal lifecycle transition or a lost compare-and-set; re-fetch before retrying."""

    status_code = 409
    code = "invalid_state"


class InfrastructureError(AppError):
    status_code = 503
    code = "storage_unavailable"


def _json_error(message, status_code, code):
    return jsonify({"error": message, "code": code}), status_code


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        app.logger.warning("Database integrity error")
        return _json_error("Conflict. Resource already exists.", 409, ConflictError.code)

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(_err):
        app.logger.exception("Storage failure")
        err = InfrastructureError("Storage unavailable. Try again later.")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(400)
    def bad_request(_err):
        return _json_error("Bad request", 400, "bad_request")

    @app.errorhandler(404)
    def not_found(_err):
        return _json_error("Not found", 404, NotFoundError.code)

    @app.errorhandler(405)
    def method_not_allowed(_err):
        return _json_error("Method not allowed", 405, "method_not_allowed")

    @app.errorhandler(429)
    def too_many_requests(_err):
        return _json_error("Too many requests", 429, "rate_limited")

    @app.errorhandler(500)
    def server_error(_err):
        app.logger.exception("Internal server error")
        return _json_error("Internal server error", 500, "internal_error")
