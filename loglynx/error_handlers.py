"""JSON error handlers shared by every blueprint."""

from flask import Blueprint, current_app, jsonify, request
from google.api_core.exceptions import GoogleAPIError
from werkzeug.exceptions import HTTPException

from .errors import AppError

error_handlers_bp = Blueprint("error_handlers", __name__)


def error_response(code, message, status_code):
    """Build the standard error payload."""
    return jsonify({"error": {"code": code, "message": message}}), status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors raised by routes and services."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error [{error.code}]: {error.message}")
    else:
        current_app.logger.warning(f"{error.code}: {error.message}")
    return error_response(error.code, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(GoogleAPIError)
def handle_db_error(e):
    """Handles Firestore errors."""
    current_app.logger.error(f"Database Error: {e}")
    # Avoid exposing raw database error details to the user
    return error_response(
        "DATABASE_ERROR", "A database error occurred. Please try again later.", 503
    )


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles requests for routes that don't exist."""
    return error_response(
        "ENDPOINT_NOT_FOUND",
        f"Endpoint {request.method} {request.path} not found",
        404,
    )


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests using an unsupported method."""
    return error_response(
        "METHOD_NOT_ALLOWED",
        f"Method {request.method} not allowed for {request.path}",
        405,
    )


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    """Handles any other werkzeug HTTP error, e.g. malformed JSON bodies."""
    return error_response(e.name.upper().replace(" ", "_"), e.description, e.code)


@error_handlers_bp.app_errorhandler(Exception)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return error_response("INTERNAL_ERROR", "Internal Server Error", 500)
