"""
Global error handlers that convert exceptions to structured error responses.
"""

import logging
import uuid

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from signdesk.schemas.error import ErrorDetail, ErrorResponse
from signdesk.utils.exceptions import SignDeskError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, detail: ErrorDetail):
    body = ErrorResponse(error=detail, request_id=str(uuid.uuid4()))
    return jsonify(body.model_dump()), status_code


def handle_signdesk_error(e: SignDeskError):
    logger.warning(f"SignDesk API Error: {e.code} - {e.message}")
    return _error_response(
        e.status_code,
        ErrorDetail(code=e.code, message=e.message, field=e.field, details=e.details)
    )


def handle_request_validation_error(e: PydanticValidationError):
    errors = e.errors(include_url=False, include_context=False, include_input=False)
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    logger.warning(f"Request validation failed: {len(errors)} error(s)")
    return _error_response(
        400,
        ErrorDetail(
            code="VALIDATION_ERROR",
            message=first.get("msg", "Invalid request body"),
            field=field,
            details={"errors": errors}
        )
    )


def handle_http_exception(e: HTTPException):
    logger.warning(f"HTTP Exception: {e.code} - {e.description}")
    return _error_response(
        e.code or 500,
        ErrorDetail(
            code="HTTP_EXCEPTION",
            message=e.description or e.name,
            details={"status_code": e.code}
        )
    )


def handle_unexpected_error(e: Exception):
    logger.error(f"Unexpected error: {str(e)}", exc_info=True)
    return _error_response(
        500,
        ErrorDetail(
            code="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred",
            details={"error_type": type(e).__name__}
        )
    )


def register_error_handlers(app: Flask) -> None:
    app.register_error_handler(SignDeskError, handle_signdesk_error)
    app.register_error_handler(PydanticValidationError, handle_request_validation_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_error)
