"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("dinkup.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class ConfigurationError(AppException):
    """Raised when a required server-side setting is missing."""

    def __init__(self, setting: str):
        super().__init__(
            message="Server misconfigured",
            error_code="ERR_CONFIG_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"setting": setting}
        )


class InvalidTransitionError(AppException):
    """Raised when a payment status change is not allowed by the state machine."""

    def __init__(self, payment_id: str, current_status: str, requested_status: str):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message=f"Cannot move payment from {current_status} to {requested_status}",
            error_code="ERR_PAYMENT_TRANSITION",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "payment_id": payment_id,
                "current_status": current_status,
                "requested_status": requested_status,
            }
        )


class RosterAlreadyLockedError(AppException):
    """Raised when obligations are requested for a session that is already locked."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Roster for session {session_id} is already locked",
            error_code="ERR_ROSTER_LOCKED",
            status_code=status.HTTP_409_CONFLICT,
            details={"session_id": session_id}
        )


class NotificationDeliveryError(Exception):
    """Raised by a message sender when a message could not be delivered."""
    pass


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER"
}


def _error_body(error_code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    return {"error_code": error_code, "message": message, "details": details or {}}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"), exc.detail)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handler for Pydantic validation errors.

    Only location, message and type are returned; the rejected input is
    left out so forwarded email content is never echoed back to the relay.
    """
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("ERR_VALIDATION", "Validation error", {"errors": errors})
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("ERR_INTERNAL_SERVER", "An internal server error occurred")
    )
