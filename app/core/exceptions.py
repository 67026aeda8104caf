"""
Application exception hierarchy.

Every domain failure the chat backend can produce maps to exactly one class
below. Each class carries a stable ``kind`` (the taxonomy name clients switch
on) and a default machine-readable ``error_code``.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input (empty content, bad target shape)
    ├── NotFoundError - Referenced user/conversation/group/message missing
    ├── PermissionDeniedError - Role pair may not communicate
    │   └── MembershipRequiredError - Sender is not in the target group
    ├── ConflictError - Uniqueness race, resolved internally
    ├── RateLimitError - Generic throttling
    │   └── QuotaExceededError - Daily message quota exhausted
    └── ExternalServiceError - Collaborator I/O failures
        └── TransportError - Persistence or broadcast failure

Usage:
    from core.exceptions import PermissionDeniedError

    raise PermissionDeniedError(
        "student cannot message student",
        details={"sender_role": "student", "recipient_role": "student"},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (offending roles, limits, ids)
    """

    kind: str = "ApplicationError"
    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API and socket responses.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input is malformed.

    Use for empty or oversized content, an unknown ``message_type``, a target
    with both or neither of conversation/group set, or a self-conversation.
    Never retried.
    """

    kind = "ValidationError"
    default_error_code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(BaseApplicationError):
    """Raised when a referenced user, conversation, group or message is missing."""

    kind = "NotFound"
    default_error_code = "NOT_FOUND"
    http_status = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the acting user may not perform the operation.

    For role-pair denials the offending roles are carried in ``details``:

        raise PermissionDeniedError(
            "Role student may not message role admin",
            details={"sender_role": "student", "recipient_role": "admin"},
        )
    """

    kind = "PermissionDenied"
    default_error_code = "PERMISSION_DENIED"
    http_status = 403


class MembershipRequiredError(PermissionDeniedError):
    """Raised when a user acts on a group or conversation they do not belong to."""

    kind = "MembershipRequired"
    default_error_code = "MEMBERSHIP_REQUIRED"


class ConflictError(BaseApplicationError):
    """
    Raised when a write collides with a concurrent writer.

    The conversation resolver raises and handles this itself by re-reading
    the winning row; it is never surfaced to API callers.
    """

    kind = "ConflictError"
    default_error_code = "CONFLICT"
    http_status = 409


class RateLimitError(BaseApplicationError):
    """Raised when a throttling limit is exceeded."""

    kind = "RateLimited"
    default_error_code = "RATE_LIMIT_EXCEEDED"
    http_status = 429


class QuotaExceededError(RateLimitError):
    """
    Raised when a sender has used up their daily message allowance.

    ``details["limit"]`` holds the configured limit. Callers may retry after
    the day window rolls over at local midnight.
    """

    kind = "QuotaExceeded"
    default_error_code = "QUOTA_EXCEEDED"


class ExternalServiceError(BaseApplicationError):
    """Raised when a collaborator outside the process fails."""

    kind = "ExternalServiceError"
    default_error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class TransportError(ExternalServiceError):
    """
    Raised when persistence or channel-layer I/O fails.

    Safe to retry the whole operation: nothing partial is ever committed.
    """

    kind = "TransportError"
    default_error_code = "TRANSPORT_ERROR"
