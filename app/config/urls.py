"""
URL configuration for the chat backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - JWT token obtain/refresh, logout
    /api/v1/accounts/              - User directory, creation, deletion
        users/                     - Communicable users (GET), create (POST)
        users/{id}/                - Public profile (GET), delete (DELETE)
        users/me/                  - Current user with capabilities
        roles/creatable/           - Roles the caller may create
    /api/v1/access/                - Role permission administration
        chat-permissions/          - Static chat table
        chat-permissions/{role}/   - Update a role's row
        role-settings/{role}/{key}/ - Role settings blobs
        capabilities/              - Current user's capabilities
        capabilities/grants/       - Grant/revoke capabilities
    /api/v1/chat/                  - Messaging
        conversations/             - List, get-or-create
        conversations/{id}/        - Retrieve, delete
        conversations/{id}/messages/ - Message history
        groups/                    - List, create
        groups/{id}/members/       - Add member
        groups/{id}/members/{user_id}/ - Remove member
        groups/{id}/messages/      - Message history
        messages/                  - Send
        messages/{id}/             - Delete
        messages/{id}/read/        - Mark read
        quota/                     - Daily quota status
        presence/{heartbeat,online,offline}/ - Presence transitions

WebSocket:
    /ws/chat/                      - realtime.consumers.ChatConsumer
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("accounts.auth_urls")),
    path("accounts/", include("accounts.urls")),
    path("access/", include("access.urls")),
    path("chat/", include("messaging.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Admin"
admin.site.site_title = "Chat Admin Portal"
admin.site.index_title = "Users, roles and conversations"
