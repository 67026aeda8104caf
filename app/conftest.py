"""
Root pytest configuration for the Django project.

This module provides project-wide fixtures:
- Default role permissions seeded for every test that touches the database
- One user per role
- API clients authenticated with JWT access tokens
- A recording broadcaster in place of the channel layer

App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from access.constants import DEFAULT_CHAT_PERMISSIONS, PERMISSION_CATALOG
from access.roles import Role


def pytest_configure():
    """Test-only settings overrides."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full user journey workflows)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_resolver.py, test_broadcaster.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_consumers.py",
        "test_change_feed.py",
        "test_presence.py",
        "test_quota.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_resolver.py",
        "test_policy.py",
        "test_broadcaster.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Database defaults
# =============================================================================


def _uses_database(request) -> bool:
    if request.node.get_closest_marker("django_db") is not None:
        return True
    return bool({"db", "transactional_db"} & set(request.fixturenames))


@pytest.fixture(autouse=True)
def access_defaults(request):
    """
    Ensure the default chat permissions, capability catalog and super_admin
    grants exist, and start every test with an empty policy cache.

    Migration 0002 seeds these rows, but transactional tests flush the
    database afterwards, so they are re-created here when missing.
    """
    cache.clear()
    if not _uses_database(request):
        yield
        return

    request.getfixturevalue("db")

    from access.models import ChatPermission, Permission, RolePermission

    for role, can_chat_with, limit in DEFAULT_CHAT_PERMISSIONS:
        ChatPermission.objects.get_or_create(
            role=role,
            defaults={"can_chat_with": list(can_chat_with), "daily_message_limit": limit},
        )
    for name, category, description in PERMISSION_CATALOG:
        permission, _ = Permission.objects.get_or_create(
            name=name,
            defaults={"category": category, "description": description},
        )
        RolePermission.objects.get_or_create(role=Role.SUPER_ADMIN, permission=permission)

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def broadcaster(settings):
    """
    Recording broadcaster used by every service during the test.

    Usage:
        def test_example(broadcaster, teacher, student):
            MessageService.send_message(teacher, "hi", MessageTarget.to_user(student.id))
            assert broadcaster.events("new_message")
    """
    from realtime.tests.broadcasters import RECORDER

    RECORDER.reset()
    settings.REALTIME_BROADCASTER = "realtime.tests.broadcasters.recording_broadcaster"
    yield RECORDER
    RECORDER.reset()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def super_admin(db):
    from accounts.tests.factories import UserFactory

    return UserFactory(role=Role.SUPER_ADMIN, name="Root", is_staff=True)


@pytest.fixture
def admin(db):
    from accounts.tests.factories import UserFactory

    return UserFactory(role=Role.ADMIN, name="Ada Admin")


@pytest.fixture
def teacher(db):
    from accounts.tests.factories import UserFactory

    return UserFactory(role=Role.TEACHER, name="Tess Teacher")


@pytest.fixture
def student(db):
    from accounts.tests.factories import UserFactory

    return UserFactory(role=Role.STUDENT, name="Alice Student")


@pytest.fixture
def other_student(db):
    from accounts.tests.factories import UserFactory

    return UserFactory(role=Role.STUDENT, name="Bob Student")


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client for public endpoints."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, teacher):
            client = authenticated_client_factory(teacher)
            response = client.get('/api/v1/chat/conversations/')
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client
