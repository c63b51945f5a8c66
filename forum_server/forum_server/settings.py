"""
Settings for the forum backend (Django + Channels, ASGI).

Key requirements implemented:
- Django + Django Channels (ASGI) serving the HTTP APIs and the chat WebSocket
- Environment-based configuration (see also `forum_server.config` for service tunables)
- The chat hub is in-process, so no channel layer is configured
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

from corsheaders.defaults import default_headers as _cors_default_headers

from forum_server.config import INSECURE_JWT_SECRET, config


BASE_DIR = Path(__file__).resolve().parent.parent


def _env(name: str, default: str | None = None) -> str | None:
    v = os.environ.get(name)
    return v if v not in (None, "") else default


def _env_bool(name: str, default: bool = False) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_csv(name: str, default: str = "") -> List[str]:
    raw = _env(name, default) or ""
    return [x.strip() for x in raw.split(",") if x.strip()]


# SECURITY WARNING: Do not hardcode secrets in code.
DEBUG = _env_bool("DJANGO_DEBUG", default=False)

SECRET_KEY = _env("DJANGO_SECRET_KEY", "dev-insecure-secret-key-change-me")
if not DEBUG and (not SECRET_KEY or SECRET_KEY.startswith("dev-insecure-")):
    raise RuntimeError("DJANGO_SECRET_KEY must be set in production")
if not DEBUG and config.JWT_SECRET == INSECURE_JWT_SECRET:
    raise RuntimeError("JWT_SECRET must be set in production")

ALLOWED_HOSTS = _env_csv("DJANGO_ALLOWED_HOSTS", default="localhost,127.0.0.1")

# CORS: the React frontend talks to both the auth and forum APIs.
CORS_ALLOWED_ORIGINS = _env_csv("CORS_ALLOWED_ORIGINS", default="http://localhost:3000,http://127.0.0.1:3000")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = list(_cors_default_headers)
CORS_PREFLIGHT_MAX_AGE = 12 * 60 * 60

USE_X_FORWARDED_HOST = True
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

SESSION_COOKIE_SECURE = _env_bool("DJANGO_SESSION_COOKIE_SECURE", default=not DEBUG)
SECURE_SSL_REDIRECT = _env_bool("DJANGO_SECURE_SSL_REDIRECT", default=False)


INSTALLED_APPS = [
    "daphne",
    "corsheaders",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "channels",
    "accounts.apps.AccountsConfig",
    "forum.apps.ForumConfig",
    "realtime.apps.RealtimeConfig",
]

# Order: request logging wraps everything, health bypass before SecurityMiddleware,
# bearer identity after CORS so preflights never need a token.
MIDDLEWARE = [
    "forum_server.middleware.RequestLogMiddleware",
    "forum_server.middleware.HealthCheckAllowHttpMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "forum_server.middleware.BearerTokenMiddleware",
]

ROOT_URLCONF = "forum_server.urls"

WSGI_APPLICATION = "forum_server.wsgi.application"
ASGI_APPLICATION = "forum_server.asgi.application"


# Database: sqlite unless DATABASE_URL is set (postgres in production).
DATABASE_URL = _env("DATABASE_URL", None)
if DATABASE_URL:
    import dj_database_url

    DATABASES = {"default": dj_database_url.parse(DATABASE_URL, conn_max_age=600)}
else:
    DATABASES = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": str(BASE_DIR / "forum.sqlite3")}}


# bcrypt first: new passwords are hashed with it, older hashes still verify.
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.BCryptSHA256PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
]


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


LOG_LEVEL = _env("DJANGO_LOG_LEVEL", "INFO") or "INFO"
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "realtime": {"level": _env("CHAT_LOG_LEVEL", LOG_LEVEL) or LOG_LEVEL},
        "accounts": {"level": LOG_LEVEL},
        "forum": {"level": LOG_LEVEL},
        "forum_server": {"level": LOG_LEVEL},
    },
}
