"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, authorization, quota)
    - Exceptions: Raised inside multi-stage pipelines, converted to a
      ServiceResult at the service boundary via ``from_error``

Usage:
    from core.services import BaseService, ServiceResult

    class GroupService(BaseService):
        @classmethod
        def create_group(cls, creator, name: str) -> ServiceResult[Group]:
            invalid = cls.validate_required(name=name)
            if invalid:
                return invalid

            with cls.atomic():
                group = Group.objects.create(name=name, created_by=creator)
                GroupMembership.objects.create(group=group, user=creator)

            cls.get_logger().info(f"Created group {group.id}")
            return ServiceResult.success(group)

    # In view
    result = GroupService.create_group(request.user, name)
    if result.success:
        return Response(GroupSerializer(result.data).data, status=201)
    return Response(result.to_response(), status=result.http_status)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")

# HTTP status for each stable error code; anything unknown is a 400.
ERROR_CODE_HTTP_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "PERMISSION_DENIED": 403,
    "MEMBERSHIP_REQUIRED": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "QUOTA_EXCEEDED": 429,
    "RATE_LIMIT_EXCEEDED": 429,
    "TRANSPORT_ERROR": 502,
    "EXTERNAL_SERVICE_ERROR": 502,
}


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
        details: Structured failure context (offending roles, limits)

    Usage:
        result = MessageService.send_message(sender, content, target)
        if result.success:
            message = result.data
        elif result.error_code == "QUOTA_EXCEEDED":
            limit = result.details["limit"]
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    details: dict[str, Any] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            details: Structured context for the failure

        Example:
            return ServiceResult.failure(
                "Daily message limit reached",
                error_code="QUOTA_EXCEEDED",
                details={"limit": 50},
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            details=details,
        )

    @classmethod
    def from_error(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """Convert a domain exception into a failed result, keeping its code and details."""
        return cls.failure(
            exc.message,
            error_code=exc.error_code,
            details=exc.details or None,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """Create a failed result from an arbitrary exception."""
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    @property
    def http_status(self) -> int:
        """HTTP status a view should use for this result."""
        if self.success:
            return 200
        return ERROR_CODE_HTTP_STATUS.get(self.error_code or "", 400)

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Failures render as ``{"error", "error_code", "errors"?, "details"?}``.
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {"error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        if self.details:
            response["details"] = self.details
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the concrete service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around ``transaction.atomic()`` that makes transaction
        boundaries explicit in service code. Nested use creates a savepoint.
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Domain errors keep their code and details. Anything else is logged
        with a traceback and reported under its class name.
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)

        if isinstance(exc, BaseApplicationError):
            logger.log(log_level, message)
            return ServiceResult.from_error(exc)

        logger.log(log_level, message, exc_info=True)
        return ServiceResult.from_exception(exc)

    @classmethod
    def validate_required(cls, **kwargs) -> ServiceResult | None:
        """
        Validate that required fields are provided.

        Returns a VALIDATION_ERROR failure naming every field that is None or
        blank, or None when all are present.

        Example:
            invalid = cls.validate_required(name=name, created_by=creator)
            if invalid:
                return invalid
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            return ServiceResult.failure(
                "Required fields missing",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )
        return None
