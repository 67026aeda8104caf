"""
URL configuration for accounts API.

URL Structure:
    /users/                  GET, POST
    /users/{id}/             GET, DELETE
    /users/me/               GET
    /roles/creatable/        GET

All URLs are prefixed with /api/v1/accounts/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounts.views import CreatableRolesView, UserViewSet

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

app_name = "accounts"

urlpatterns = [
    path("", include(router.urls)),
    path("roles/creatable/", CreatableRolesView.as_view(), name="creatable-roles"),
]
