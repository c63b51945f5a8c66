"""
Narrow async view of the chat message store for the realtime side.

The hub only needs "recent N" and the session only needs "save one"; everything
else about storage stays in forum.stores.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Protocol

from channels.db import database_sync_to_async

from realtime.protocol import ChatEvent, MessageType


class ChatArchive(Protocol):
    async def recent(self, limit: int) -> List[ChatEvent]: ...

    async def save(self, event: ChatEvent) -> None: ...


def message_to_event(message) -> ChatEvent:
    return ChatEvent(
        type=MessageType.CHAT,
        content=message.content,
        sender=message.username,
        timestamp=int(message.created_at.timestamp()),
        user_id=message.user_id or 0,
    )


class DatabaseChatArchive:
    def __init__(self, store=None):
        if store is None:
            from forum.stores import MessageStore

            store = MessageStore()
        self._store = store

    async def recent(self, limit: int) -> List[ChatEvent]:
        messages = await database_sync_to_async(self._store.recent)(limit)
        return [message_to_event(m) for m in messages]

    async def save(self, event: ChatEvent) -> None:
        await database_sync_to_async(self._store.save)(
            event.content,
            event.sender,
            event.user_id or None,
            created_at=datetime.fromtimestamp(event.timestamp, tz=timezone.utc),
        )
