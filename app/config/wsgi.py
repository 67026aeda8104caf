"""
WSGI config for the chat backend.

Provided for HTTP-only deployments. WebSockets require the ASGI application
in config.asgi.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
