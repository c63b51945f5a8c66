"""
WebSocket consumer for the public chat room.

Key behavior:
- URL: /ws/chat/ (also /ws).
- Authenticated users (JWT via TokenAuthMiddleware) can post; everyone else gets
  a read-only Guest_xxxxxx identity.
- The consumer is only the transport: the ChatSession owns the outbound queue and
  the writer task, and the Hub owns the registry and fan-out.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from channels.generic.websocket import AsyncWebsocketConsumer

from realtime import hub as hub_module
from realtime.session import ChatIdentity, ChatSession

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncWebsocketConsumer):
    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.session: Optional[ChatSession] = None
        self.hub: Optional[hub_module.Hub] = None

    async def connect(self) -> None:
        identity = self.scope.get("chat_identity") or ChatIdentity.guest()
        await self.accept()

        self.hub = hub_module.get_hub()
        self.session = ChatSession.from_config(identity, self, hub=self.hub, archive=self.hub.archive)
        await self.hub.register(self.session)
        self.session.start()
        logger.debug("WebSocket accepted for %s (guest=%s)", identity.display_name, identity.is_guest)

    async def disconnect(self, close_code: int) -> None:
        if self.session is None:
            return
        await self.session.stop()
        await self.hub.unregister(self.session, reason=f"socket closed ({close_code})")

    async def receive(self, text_data: Optional[str] = None, bytes_data: Optional[bytes] = None) -> None:
        if self.session is None:
            return
        raw = text_data if text_data is not None else bytes_data
        if not raw:
            return
        await self.session.handle_frame(raw)

    # Transport interface used by ChatSession's writer.

    async def send_text(self, text: str) -> None:
        await self.send(text_data=text)
