"""
URL configuration for forum_server.

- /health/   load balancer health check
- /api/v1/   auth (register, login, validate)
- /api/      posts and chat history

WebSocket routes live in forum_server.routing.
"""
from django.urls import include, path

from .health import health

urlpatterns = [
    path("health/", health),
    path("api/v1/", include("accounts.urls")),
    path("api/", include("forum.urls")),
]
