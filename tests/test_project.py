import json
import logging
import os

import pytest
from django.test import Client

from forum_server import env_bootstrap


def test_health():
    resp = Client().get("/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert isinstance(data["ts"], int)
    assert "instance_id" in data
    assert data["chat_sessions"] == 0
    assert resp["Access-Control-Allow-Origin"] == "*"


def test_request_log_levels(caplog):
    caplog.set_level(logging.INFO, logger="forum_server.requests")
    client = Client()
    client.get("/health/")
    client.get("/api/posts")

    records = [r for r in caplog.records if r.name == "forum_server.requests"]
    assert records[0].levelno == logging.INFO
    assert "GET /health/ 200" in records[0].getMessage()
    assert records[1].levelno == logging.WARNING
    assert "GET /api/posts 401" in records[1].getMessage()


class _FakeSecrets:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get_secret_value(self, SecretId):
        self.calls.append(SecretId)
        return {"SecretString": json.dumps(self.payload)}


def test_secrets_bootstrap_keeps_existing_env(monkeypatch):
    fake = _FakeSecrets({"JWT_SECRET": "from-aws", "FORUM_TEST_ONLY_KEY": "value"})
    monkeypatch.setattr(env_bootstrap.boto3, "client", lambda *a, **kw: fake)
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.delenv("FORUM_TEST_ONLY_KEY", raising=False)

    try:
        applied = env_bootstrap.load_secrets_from_aws("forum/test")
        assert applied == 1
        assert fake.calls == ["forum/test"]
        assert os.environ["JWT_SECRET"] == "from-env"
        assert os.environ["FORUM_TEST_ONLY_KEY"] == "value"
    finally:
        os.environ.pop("FORUM_TEST_ONLY_KEY", None)


def test_secrets_bootstrap_is_opt_in(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("AWS must not be called")

    monkeypatch.setattr(env_bootstrap.boto3, "client", fail)
    monkeypatch.delenv("FORUM_SECRET_NAME", raising=False)
    env_bootstrap.bootstrap()


def test_empty_secret_is_an_error(monkeypatch):
    class Empty:
        def get_secret_value(self, SecretId):
            return {}

    monkeypatch.setattr(env_bootstrap.boto3, "client", lambda *a, **kw: Empty())
    with pytest.raises(RuntimeError):
        env_bootstrap.load_secrets_from_aws("forum/empty")
