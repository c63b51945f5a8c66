"""
Channels middleware resolving the chat identity from a JWT.

The token comes from the `token` query parameter (browsers cannot set headers on
a WebSocket) or an `Authorization: Bearer` header. Connections are never rejected
here: a missing or bad token leaves `scope["chat_identity"]` as None and the
consumer falls back to a guest identity.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware

from accounts.tokens import InvalidToken, TokenService, bearer_token
from realtime.session import ChatIdentity

logger = logging.getLogger(__name__)


def _get_header(scope: dict, name: str) -> Optional[str]:
    """Get first header value from ASGI scope (header names are lowercased)."""
    want = name.lower().encode("ascii")
    for key, value in scope.get("headers") or []:
        if key == want:
            return value.decode("utf-8", errors="replace").strip()
    return None


def token_from_scope(scope: dict) -> Optional[str]:
    query = parse_qs((scope.get("query_string") or b"").decode("utf-8", errors="replace"))
    token = (query.get("token") or [""])[0].strip()
    if token:
        return token
    return bearer_token(_get_header(scope, "authorization"))


class TokenAuthMiddleware(BaseMiddleware):
    def __init__(self, inner, tokens: Optional[TokenService] = None):
        super().__init__(inner)
        self._tokens = tokens

    def _identity(self, scope: dict) -> Optional[ChatIdentity]:
        token = token_from_scope(scope)
        if not token:
            return None
        tokens = self._tokens or TokenService.from_config()
        try:
            claims = tokens.verify(token)
        except InvalidToken:
            logger.info("WebSocket token rejected; connecting as guest")
            return None
        return ChatIdentity(user_id=claims.subject_id, display_name=claims.display_name)

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        scope["chat_identity"] = self._identity(scope)
        return await super().__call__(scope, receive, send)
