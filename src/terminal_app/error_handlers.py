"""
Centralized error handlers for the terminal API.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from orderline.error_catalog import catalog_entry
from orderline.logging_config import get_logger
from orderline.services.item_state_machine import TransitionPermissionError
from orderline.store import OrderNotFoundError
from orderline.sync.remote import RemoteError
from orderline.validation import ValidationError
from terminal_app.serializers import error_response

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        """Handle domain validation errors."""
        logger.warning(f"Validation error: {e}")
        return jsonify(
            error_response(str(e), {"code": e.code, "title": catalog_entry(e.code)["title"]})
        ), HTTPStatus.BAD_REQUEST

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(e: PydanticValidationError):
        """Handle snapshot schema errors."""
        logger.warning(f"Pydantic validation error: {e}")
        return jsonify(
            error_response("Invalid order data", {"details": e.errors(include_url=False)})
        ), HTTPStatus.BAD_REQUEST

    @app.errorhandler(TransitionPermissionError)
    def handle_permission_error(e: TransitionPermissionError):
        logger.warning(f"Permission denied: {e}")
        return jsonify(error_response(str(e), {"code": e.code})), HTTPStatus.FORBIDDEN

    @app.errorhandler(OrderNotFoundError)
    def handle_order_not_found(e: OrderNotFoundError):
        return jsonify(error_response(str(e), {"code": e.code})), HTTPStatus.NOT_FOUND

    @app.errorhandler(RemoteError)
    def handle_remote_error(e: RemoteError):
        """Handle remote store failures."""
        logger.error(f"Remote store error: {e}")
        return jsonify(
            error_response(catalog_entry(e.code)["title"], {"code": e.code})
        ), HTTPStatus.SERVICE_UNAVAILABLE

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        """Handle HTTP exceptions from Werkzeug."""
        logger.warning(f"HTTP exception {e.code}: {e.description}")
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        """Handle any unhandled exceptions."""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify(
            error_response("Internal server error")
        ), HTTPStatus.INTERNAL_SERVER_ERROR
