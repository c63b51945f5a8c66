"""
ASGI config for forum_server project.

It exposes the ASGI callable as a module-level variable named ``application``.
Run with: daphne forum_server.asgi:application
"""
# Load secrets from AWS Secrets Manager before Django settings are loaded
import forum_server.env_bootstrap  # noqa: F401

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "forum_server.settings")

from django.core.asgi import get_asgi_application

# Initialise Django before importing anything that touches models.
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402
from django.conf import settings  # noqa: E402

from forum_server.routing import websocket_urlpatterns  # noqa: E402
from realtime.middleware import TokenAuthMiddleware  # noqa: E402

# TokenAuthMiddleware never rejects: no/invalid token means a read-only guest.
# AllowedHostsOriginValidator (when DEBUG is False) checks Origin against ALLOWED_HOSTS.
websocket_app = TokenAuthMiddleware(URLRouter(websocket_urlpatterns))
if not settings.DEBUG:
    websocket_app = AllowedHostsOriginValidator(websocket_app)

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": websocket_app,
    }
)
