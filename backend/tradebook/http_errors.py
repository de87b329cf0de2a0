# Overview: Maps service and domain exceptions to JSON error responses.

from flask import jsonify

from .domain.errors import (
    AlreadySettledError,
    OverpaymentError,
    UnauthorizedReversalError,
    ValidationError,
)
from .services.auth_service import AdminAuthorizationError, PasswordValidationError
from .validation import ConflictError, NotFoundError

# Checked in order; the domain errors all derive from ValueError
_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (UnauthorizedReversalError, 403),
    (AdminAuthorizationError, 403),
    (OverpaymentError, 409),
    (AlreadySettledError, 409),
    (ConflictError, 409),
    (ValidationError, 400),
    (PasswordValidationError, 400),
)

SERVICE_ERRORS = tuple(cls for cls, _ in _STATUS_BY_ERROR)


def error_response(exc: Exception):
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return jsonify({"error": str(exc), "type": type(exc).__name__}), status
    return jsonify({"error": "Internal server error"}), 500
