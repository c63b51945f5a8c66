"""Settings for the test run: in-memory sqlite, fast hashing, DEBUG on."""

import os

os.environ.setdefault("DJANGO_DEBUG", "1")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

from forum_server.settings import *  # noqa: E402,F401,F403

DATABASES = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LOGGING["root"]["level"] = "WARNING"  # noqa: F405
