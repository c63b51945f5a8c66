"""
Load environment variables from AWS Secrets Manager before Django settings are loaded.
Import this module first in manage.py, asgi.py, and wsgi.py so os.environ is populated
before forum_server.settings and forum_server.config are evaluated.

Secret name: set FORUM_SECRET_NAME (e.g. "forum-prod/api-secrets"). When it is not set
nothing happens, so local runs and tests never touch AWS.
Uses setdefault so existing env vars (e.g. from the task definition) override secret values.
"""
import json
import logging
import os

import boto3

logger = logging.getLogger(__name__)


def load_secrets_from_aws(secret_name: str, region: str | None = None) -> int:
    """Copy the JSON key/value pairs of `secret_name` into os.environ. Returns keys applied."""
    region = region or os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("secretsmanager", region_name=region)
    response = client.get_secret_value(SecretId=secret_name)
    secret_str = response.get("SecretString")
    if not secret_str:
        raise RuntimeError(f"Secret {secret_name!r} has no SecretString")
    data = json.loads(secret_str)
    applied = 0
    for key, value in data.items():
        if value is not None and key not in os.environ:
            os.environ[key] = str(value)
            applied += 1
    logger.info("Loaded %d settings from secret %s", applied, secret_name)
    return applied


def bootstrap() -> None:
    secret_name = os.environ.get("FORUM_SECRET_NAME", "").strip()
    if secret_name:
        load_secrets_from_aws(secret_name)


# Run on import so that any later import of settings sees the env
bootstrap()
