"""
WSGI config for forum_server project (HTTP only; chat needs the ASGI app).

It exposes the WSGI callable as a module-level variable named ``application``.
"""
# Load secrets from AWS Secrets Manager before Django settings are loaded
import forum_server.env_bootstrap  # noqa: F401

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "forum_server.settings")

application = get_wsgi_application()
