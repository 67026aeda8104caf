"""
URL configuration for token authentication.

URL Structure:
    /token/           POST - Obtain access/refresh pair (simplejwt)
    /token/refresh/   POST - Refresh access token (simplejwt)
    /logout/          POST - Blacklist refresh token, mark user offline

All URLs are prefixed with /api/v1/auth/ in the main URL configuration.
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from accounts.views import LogoutView

app_name = "auth"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("logout/", LogoutView.as_view(), name="logout"),
]
