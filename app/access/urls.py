"""
URL configuration for access API.

All URLs are prefixed with /api/v1/access/ in the main URL configuration.
"""

from django.urls import path

from access.views import (
    CapabilityGrantView,
    ChatPermissionDetailView,
    ChatPermissionListView,
    MyCapabilitiesView,
    RoleSettingView,
)

app_name = "access"

urlpatterns = [
    path("chat-permissions/", ChatPermissionListView.as_view(), name="chat-permission-list"),
    path(
        "chat-permissions/<str:role>/",
        ChatPermissionDetailView.as_view(),
        name="chat-permission-detail",
    ),
    path(
        "role-settings/<str:role>/<str:key>/",
        RoleSettingView.as_view(),
        name="role-setting",
    ),
    path("capabilities/", MyCapabilitiesView.as_view(), name="my-capabilities"),
    path("capabilities/grants/", CapabilityGrantView.as_view(), name="capability-grants"),
]
