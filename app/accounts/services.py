"""
User account service layer.

Services:
    UserService: Role-gated user creation and deletion

Usage:
    from accounts.services import UserService

    result = UserService.create_user(
        creator=request.user,
        email="new@example.com",
        password="...",
        name="New Student",
        role="student",
    )
"""

from __future__ import annotations

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError

from core.services import BaseService, ServiceResult

from access.constants import CAPABILITIES
from access.roles import is_lower_role, is_valid_role
from access.services import AccessService
from accounts.models import User


class UserService(BaseService):
    """
    Service for user account lifecycle.

    Methods:
        create_user: Create a user with a role the creator may assign
        delete_user: Hard delete a user of a lower role
    """

    @classmethod
    def create_user(
        cls,
        creator: User,
        email: str,
        password: str,
        name: str = "",
        role: str = "student",
        avatar_url: str = "",
    ) -> ServiceResult[User]:
        """
        Create a user on behalf of ``creator``.

        Args:
            creator: Authenticated user performing the creation
            email: Login email (unique)
            password: Initial password (validated by AUTH_PASSWORD_VALIDATORS)
            name: Display name
            role: Role for the new user
            avatar_url: Optional avatar reference

        Returns:
            ServiceResult with the new User

        Error codes:
            VALIDATION_ERROR: Missing fields, unknown role or weak password
            PERMISSION_DENIED: Creator may not create users of this role
            EMAIL_EXISTS: Email already registered
        """
        invalid = cls.validate_required(email=email, password=password)
        if invalid:
            return invalid

        if not is_valid_role(role):
            return ServiceResult.failure(
                f"Unknown role: {role}",
                error_code="VALIDATION_ERROR",
                errors={"role": [f"Unknown role: {role}"]},
            )

        creatable = AccessService.roles_creatable_by(creator.role)
        if role not in creatable:
            cls.get_logger().info(
                f"User {creator.id} ({creator.role}) tried to create a {role}"
            )
            return ServiceResult.failure(
                f"Role {creator.role} cannot create {role} users",
                error_code="PERMISSION_DENIED",
                details={"creator_role": creator.role, "requested_role": role},
            )

        email = User.objects.normalize_email(email)
        if User.objects.filter(email__iexact=email).exists():
            return ServiceResult.failure(
                "Email already registered",
                error_code="EMAIL_EXISTS",
                errors={"email": ["A user with this email already exists."]},
            )

        try:
            validate_password(password)
        except DjangoValidationError as e:
            return ServiceResult.failure(
                "Password does not meet requirements",
                error_code="VALIDATION_ERROR",
                errors={"password": list(e.messages)},
            )

        user = User.objects.create_user(
            email=email,
            password=password,
            name=name,
            role=role,
            avatar_url=avatar_url,
            created_by=creator,
        )
        cls.get_logger().info(f"User {creator.id} created {role} user {user.id}")
        return ServiceResult.success(user)

    @classmethod
    def delete_user(cls, actor: User, target: User) -> ServiceResult[None]:
        """
        Permanently delete ``target``.

        The actor needs manage_lower_roles and must outrank the target.
        Messages authored by the target are removed with it.

        Error codes:
            VALIDATION_ERROR: Actor tried to delete themselves
            PERMISSION_DENIED: Missing capability or target not lower
        """
        if actor.id == target.id:
            return ServiceResult.failure(
                "You cannot delete your own account here",
                error_code="VALIDATION_ERROR",
            )

        if not AccessService.can_perform_action(actor.role, CAPABILITIES.MANAGE_LOWER_ROLES):
            return ServiceResult.failure(
                "You are not allowed to manage users",
                error_code="PERMISSION_DENIED",
                details={"actor_role": actor.role},
            )

        if not is_lower_role(target.role, actor.role):
            return ServiceResult.failure(
                "You can only delete users with a lower role",
                error_code="PERMISSION_DENIED",
                details={"actor_role": actor.role, "target_role": target.role},
            )

        target_id = target.id
        target.delete()
        cls.get_logger().info(f"User {actor.id} deleted user {target_id}")
        return ServiceResult.success(None)
