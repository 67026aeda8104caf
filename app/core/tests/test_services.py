"""
Tests for ServiceResult, BaseService and the error taxonomy.

The error codes and HTTP statuses tested here are part of the wire
contract: REST responses and socket ``error``/``message_error`` events
both render them.
"""

import logging

import pytest

from core.exceptions import (
    ConflictError,
    MembershipRequiredError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    TransportError,
    ValidationError,
)
from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert bool(result) is True
        assert result.http_status == 200
        assert result.to_response() == {"success": True, "data": {"id": 1}}

    def test_failure_response_shape(self):
        result = ServiceResult.failure(
            "Daily message limit of 50 reached",
            error_code="QUOTA_EXCEEDED",
            details={"limit": 50},
        )

        assert bool(result) is False
        assert result.to_response() == {
            "error": "Daily message limit of 50 reached",
            "error_code": "QUOTA_EXCEEDED",
            "details": {"limit": 50},
        }

    def test_field_errors_are_rendered(self):
        result = ServiceResult.failure(
            "Required fields missing",
            error_code="VALIDATION_ERROR",
            errors={"name": ["This field is required."]},
        )

        assert result.to_response()["errors"] == {"name": ["This field is required."]}
        assert "details" not in result.to_response()

    @pytest.mark.parametrize(
        "error_code, expected",
        [
            ("VALIDATION_ERROR", 400),
            ("PERMISSION_DENIED", 403),
            ("MEMBERSHIP_REQUIRED", 403),
            ("NOT_FOUND", 404),
            ("CONFLICT", 409),
            ("QUOTA_EXCEEDED", 429),
            ("TRANSPORT_ERROR", 502),
            ("EMAIL_EXISTS", 400),
            (None, 400),
        ],
    )
    def test_http_status(self, error_code, expected):
        assert ServiceResult.failure("nope", error_code=error_code).http_status == expected

    def test_from_error_keeps_code_and_details(self):
        error = PermissionDeniedError(
            "student users cannot message admin users",
            details={"sender_role": "student", "recipient_role": "admin"},
        )

        result = ServiceResult.from_error(error)

        assert result.error_code == "PERMISSION_DENIED"
        assert result.details == {"sender_role": "student", "recipient_role": "admin"}
        assert result.error == "student users cannot message admin users"


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error_class, kind, code, http_status",
        [
            (ValidationError, "ValidationError", "VALIDATION_ERROR", 400),
            (PermissionDeniedError, "PermissionDenied", "PERMISSION_DENIED", 403),
            (MembershipRequiredError, "MembershipRequired", "MEMBERSHIP_REQUIRED", 403),
            (NotFoundError, "NotFound", "NOT_FOUND", 404),
            (ConflictError, "ConflictError", "CONFLICT", 409),
            (QuotaExceededError, "QuotaExceeded", "QUOTA_EXCEEDED", 429),
            (TransportError, "TransportError", "TRANSPORT_ERROR", 502),
        ],
    )
    def test_codes(self, error_class, kind, code, http_status):
        error = error_class("boom")

        assert error.kind == kind
        assert error.error_code == code
        assert error.http_status == http_status

    def test_membership_is_a_permission_denial(self):
        assert issubclass(MembershipRequiredError, PermissionDeniedError)

    def test_to_dict_omits_empty_details(self):
        assert NotFoundError("Group not found").to_dict() == {
            "error": "Group not found",
            "error_code": "NOT_FOUND",
        }

    def test_str(self):
        assert str(QuotaExceededError("Daily limit")) == "[QUOTA_EXCEEDED] Daily limit"


class TestBaseService:
    def test_validate_required(self):
        invalid = BaseService.validate_required(name="  ", creator=None, topic="maths")

        assert invalid.error_code == "VALIDATION_ERROR"
        assert set(invalid.errors) == {"name", "creator"}

    def test_validate_required_passes(self):
        assert BaseService.validate_required(name="Algebra") is None

    def test_handle_domain_exception(self, caplog):
        class GroupService(BaseService):
            pass

        with caplog.at_level(logging.INFO):
            result = GroupService.handle_exception(
                NotFoundError("Group not found"), context="add_member", log_level=logging.INFO
            )

        assert result.error_code == "NOT_FOUND"
        assert "add_member: [NOT_FOUND] Group not found" in caplog.text

    def test_handle_unexpected_exception(self):
        result = BaseService.handle_exception(KeyError("participant_1"))

        assert result.success is False
        assert result.error_code == "KEYERROR"

    def test_logger_is_named_after_service(self):
        class PresenceService(BaseService):
            pass

        assert PresenceService.get_logger().name.endswith(".PresenceService")
