from django.db import OperationalError
from django.test import SimpleTestCase
from rest_framework import exceptions as drf_exceptions
from rest_framework import status

from core.exceptions import (
    CapacityExceededError,
    ConflictError,
    InvitationExpiredError,
    NotFoundError,
    custom_exception_handler,
)


class ExceptionHandlerTests(SimpleTestCase):
    def test_domain_error_shape(self):
        resp = custom_exception_handler(NotFoundError("Team not found"), {})
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data, {
            "success": False,
            "status_code": 404,
            "errors": {"detail": "Team not found", "code": "not_found"},
        })

    def test_default_detail_and_codes(self):
        resp = custom_exception_handler(CapacityExceededError(), {})
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["errors"], {"detail": "Team is full.", "code": "capacity_exceeded"})

        resp = custom_exception_handler(InvitationExpiredError(), {})
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["errors"]["code"], "invitation_expired")

    def test_code_override(self):
        resp = custom_exception_handler(ConflictError("dup", code="duplicate_request"), {})
        self.assertEqual(resp.data["errors"]["code"], "duplicate_request")

    def test_drf_errors_are_wrapped(self):
        resp = custom_exception_handler(drf_exceptions.ValidationError({"name": ["required"]}), {})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data["success"])
        self.assertEqual(resp.data["errors"], {"name": ["required"]})

    def test_database_error_is_retryable(self):
        with self.assertLogs("teammatch.core", level="ERROR"):
            resp = custom_exception_handler(OperationalError("database is locked"), {})
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(resp.data["errors"]["code"], "storage_unavailable")

    def test_unexpected_error_is_500(self):
        with self.assertLogs("teammatch.core", level="ERROR"):
            resp = custom_exception_handler(RuntimeError("boom"), {})
        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(resp.data["errors"], {"detail": "Internal server error."})
