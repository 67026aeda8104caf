"""
WebSocket URL routing.

URL Patterns:
    ws/chat/ - One socket per client; rooms are joined with socket events

Authentication:
    JWTAuthMiddleware (realtime.middleware) attaches the user to the scope.
"""

from django.urls import path

from realtime import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
