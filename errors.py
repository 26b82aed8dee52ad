"""
Error taxonomy shared by the services and the JSON blueprints.

Services raise these; ``register_error_handlers`` turns them into
``{"success": false, "message": ..., "errors": {...}}`` responses.
"""
from typing import Dict, List, Optional

from flask import jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 400
    message = "Bad request"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = 422
    message = "The given data was invalid."


class AuthenticationError(ApiError):
    status_code = 401
    message = "Unauthenticated."


class AuthorizationError(ApiError):
    status_code = 403
    message = "Unauthorized"


class NotFound(ApiError):
    status_code = 404
    message = "Not found"


class InvalidState(ApiError):
    status_code = 400
    message = "Cannot cancel this order"


class WindowExpired(ApiError):
    status_code = 400
    message = "Order can only be cancelled within 2 minutes of creation"


class InvalidResetCode(ApiError):
    status_code = 400
    message = "Invalid or expired code"


class MailDeliveryError(ApiError):
    status_code = 500
    message = "Could not send email. Please try again later."


def field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    """Flattens pydantic errors into a field -> messages map (``items.0.quantity``)."""
    out: Dict[str, List[str]] = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or "body"
        msg = err["msg"]
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.setdefault(field, []).append(msg)
    return out


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_error(e: PydanticValidationError):
        err = ValidationError(errors=field_errors(e))
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"success": False, "message": e.description}), e.code
