"""
Factory Boy factories for accounts models.

Usage:
    from accounts.tests.factories import UserFactory

    student = UserFactory()
    teacher = UserFactory(role="teacher")
    root = UserFactory(role="super_admin", is_staff=True)
"""

import factory

from access.roles import Role
from accounts.models import User


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User.

    Creates active students by default, through UserManager.create_user()
    so the password is hashed.

    Examples:
        user = UserFactory(role="admin")
        offline = UserFactory(is_online=False)
        banned = UserFactory(is_active=False)
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    name = factory.Faker("name")
    role = Role.STUDENT
    is_active = True

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )
