# Overview: Coded service errors and the JSON error envelope shared by all routes.

"""
Service Errors

Every failure a service reports carries an HTTP status and a stable,
machine-readable code. Routes never invent status codes: they render the
error they caught.

Error body:
    {"success": false, "error": {"code": "RETURN_NOT_FOUND", "message": "..."}}
"""

from flask import jsonify


class ServiceError(Exception):
    """Base class for coded, client-visible failures."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(ServiceError):
    """400-level input problem. Raised before any write is attempted."""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthRequiredError(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"


class TenantContextError(ServiceError):
    """Request reached a tenant-scoped operation without a tenant."""
    status_code = 403
    code = "TENANT_CONTEXT_REQUIRED"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409
    code = "CONFLICT"


def error_response(error: ServiceError):
    """Render a ServiceError as (json, status)."""
    return jsonify({"success": False, "error": error.to_dict()}), error.status_code


def internal_error_response():
    return jsonify({
        "success": False,
        "error": {"code": "INTERNAL_SERVER_ERROR", "message": "Internal server error"},
    }), 500
