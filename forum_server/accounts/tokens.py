"""
Signed session tokens (HS256 JWT).

Tokens carry the user id and username so the forum API and the chat relay can
attribute requests without a database round trip.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt

ALGORITHM = "HS256"


class TokenError(Exception):
    """Token could not be issued."""


class InvalidToken(TokenError):
    """Token is malformed, expired, or signed with another key."""


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    display_name: str


class TokenService:
    def __init__(
        self,
        secret: str,
        *,
        expires_in: int = 36000,
        issuer: str = "forum-app",
        logger: Optional[logging.Logger] = None,
    ):
        self._secret = secret
        self.expires_in = expires_in
        self.issuer = issuer
        self._log = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls) -> "TokenService":
        from forum_server.config import config

        return cls(config.JWT_SECRET, expires_in=config.JWT_EXPIRES_IN, issuer=config.JWT_ISSUER)

    def issue(self, user_id: int, username: str) -> str:
        if not self._secret:
            raise TokenError("secret key cannot be empty")
        if self.expires_in <= 0:
            raise TokenError("expires_in must be positive")

        now = int(time.time())
        payload = {
            "user_id": int(user_id),
            "username": username,
            "iss": self.issuer,
            "iat": now,
            "exp": now + self.expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        if not token:
            raise InvalidToken("token is empty")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "user_id"]},
            )
        except jwt.ExpiredSignatureError as exc:
            self._log.debug("Token rejected: expired")
            raise InvalidToken("token expired") from exc
        except jwt.PyJWTError as exc:
            self._log.debug("Token rejected: %s", exc)
            raise InvalidToken(str(exc)) from exc

        user_id = payload.get("user_id")
        username = payload.get("username")
        if not isinstance(user_id, int) or user_id <= 0:
            raise InvalidToken("invalid user id in token")
        if not isinstance(username, str) or not username:
            raise InvalidToken("invalid username in token")
        return TokenClaims(subject_id=user_id, display_name=username)


def bearer_token(header_value: str | None) -> str | None:
    """Extract the token from an Authorization header ("Bearer <t>" or a raw token)."""
    if not header_value:
        return None
    parts = header_value.strip().split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    if len(parts) == 1:
        return parts[0]
    return None
