import time

import jwt
import pytest

from accounts.tokens import ALGORITHM, InvalidToken, TokenError, TokenService, bearer_token

SECRET = "unit-test-secret"


def test_issue_and_verify():
    service = TokenService(SECRET)
    claims = service.verify(service.issue(42, "alice"))
    assert claims.subject_id == 42
    assert claims.display_name == "alice"


def test_token_carries_issuer_and_expiry():
    service = TokenService(SECRET, expires_in=60)
    payload = jwt.decode(service.issue(1, "bob"), SECRET, algorithms=[ALGORITHM], issuer="forum-app")
    assert payload["exp"] - payload["iat"] == 60


def test_issue_rejects_bad_configuration():
    with pytest.raises(TokenError):
        TokenService("").issue(1, "alice")
    with pytest.raises(TokenError):
        TokenService(SECRET, expires_in=0).issue(1, "alice")


def test_expired_token_is_invalid():
    now = int(time.time())
    token = jwt.encode(
        {"user_id": 1, "username": "alice", "iss": "forum-app", "iat": now - 100, "exp": now - 10},
        SECRET,
        algorithm=ALGORITHM,
    )
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)


def test_foreign_tokens_are_invalid():
    token = TokenService("other-secret").issue(1, "alice")
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)

    token = TokenService(SECRET, issuer="someone-else").issue(1, "alice")
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)

    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify("garbage")
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify("")


def test_token_without_usable_user_id_is_invalid():
    now = int(time.time())
    token = jwt.encode(
        {"user_id": 0, "username": "alice", "iss": "forum-app", "exp": now + 60}, SECRET, algorithm=ALGORITHM
    )
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def", "abc.def"),
        ("bearer abc.def", "abc.def"),
        ("abc.def", "abc.def"),
        ("Token a b", None),
        ("", None),
        (None, None),
    ],
)
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected
