from django.db import DatabaseError
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("teammatch.core")


class DomainError(Exception):
    """
    Base class for errors raised by the workflow services.

    Each subclass carries the HTTP status and a stable machine-readable code,
    so views never need to translate them by hand.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    code = "domain_error"
    default_detail = "The request could not be completed."

    def __init__(self, detail=None, code=None):
        self.detail = detail or self.default_detail
        if code is not None:
            self.code = code
        super().__init__(self.detail)


class ValidationError(DomainError):
    """Missing or malformed input. Caller fixes and retries."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_detail = "Invalid input."


class PermissionDeniedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    default_detail = "You do not have permission to perform this action."


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found."


class ConflictError(DomainError):
    """Duplicate request / invitation / membership, or a transition from a non-pending state."""
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "The request conflicts with the current state."


class InvitationExpiredError(ConflictError):
    code = "invitation_expired"
    default_detail = "This invitation has expired."


class CapacityExceededError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_exceeded"
    default_detail = "Team is full."


class StorageError(DomainError):
    """Transient infrastructure failure. Safe to retry the whole operation."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_unavailable"
    default_detail = "Storage temporarily unavailable, please retry."


def _error_response(status_code, errors):
    return Response(
        {
            "success": False,
            "status_code": status_code,
            "errors": errors,
        },
        status=status_code,
    )


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django + domain exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    if isinstance(exc, DomainError):
        return _error_response(
            exc.status_code,
            {"detail": str(exc.detail), "code": exc.code},
        )

    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        return _error_response(response.status_code, response.data)

    if isinstance(exc, DatabaseError):
        logger.exception("Database error during API call", exc_info=exc)
        return _error_response(
            StorageError.status_code,
            {"detail": StorageError.default_detail, "code": StorageError.code},
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"detail": "Internal server error."},
    )
