"""
URL configuration for messaging API.

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from messaging.views import (
    ConversationViewSet,
    GroupViewSet,
    MessageViewSet,
    PresenceView,
    QuotaStatusView,
)

router = DefaultRouter()
router.register(r"conversations", ConversationViewSet, basename="conversation")
router.register(r"groups", GroupViewSet, basename="group")
router.register(r"messages", MessageViewSet, basename="message")

app_name = "messaging"

urlpatterns = [
    path("", include(router.urls)),
    path(
        "groups/<uuid:pk>/members/<uuid:user_id>/",
        GroupViewSet.as_view({"delete": "remove_member"}),
        name="group-member-detail",
    ),
    path("quota/", QuotaStatusView.as_view(), name="quota"),
    path(
        "presence/heartbeat/",
        PresenceView.as_view(transition="heartbeat"),
        name="presence-heartbeat",
    ),
    path("presence/online/", PresenceView.as_view(transition="online"), name="presence-online"),
    path("presence/offline/", PresenceView.as_view(transition="offline"), name="presence-offline"),
]
