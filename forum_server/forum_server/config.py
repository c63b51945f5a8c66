"""
Service tunables for the token service and the chat relay.

Django settings stay in settings.py; everything the auth and chat components
are constructed with lives here (see the `from_config()` helpers).
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_JWT_SECRET = "dev-insecure-jwt-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Priority: environment variables > .env file
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # Token service
    JWT_SECRET: str = INSECURE_JWT_SECRET
    JWT_EXPIRES_IN: int = 36000
    JWT_ISSUER: str = "forum-app"

    # Chat relay
    CHAT_HISTORY_LIMIT: int = 50
    CHAT_HISTORY_PUSH_TIMEOUT: float = 1.0
    CHAT_SEND_QUEUE_SIZE: int = 256
    CHAT_REQUEST_QUEUE_SIZE: int = 1024
    CHAT_PING_INTERVAL: float = 25.0
    CHAT_MAX_MISSED_PROBES: int = 2
    CHAT_WRITE_TIMEOUT: float = 10.0
    CHAT_MAX_FRAME_BYTES: int = 1024
    CHAT_MAX_CONTENT_LENGTH: int = 500

    INSTANCE_ID: str = "unknown-instance"


# Load .env before creating the Settings instance so both Django settings and
# this object see the same values.
current_dir = Path(__file__).resolve().parent
env_paths = [
    current_dir.parent.parent / ".env",  # repo root
    current_dir.parent / ".env",         # forum_server/.env
    Path(os.getcwd()) / ".env",
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path, override=False)
        break

config = Settings()
