"""
Chat wire protocol.

Every frame is a JSON object: {"type", "content", "sender", "timestamp", "user_id"}.
Clients only need to send {"content": "..."} (type defaults to chat) and answer
{"type": 2, "content": "ping"} probes with {"type": 2, "content": "pong"}.
"""

from __future__ import annotations

import json
import time
from enum import IntEnum

from pydantic import BaseModel, Field

PING = "ping"
PONG = "pong"


class MessageType(IntEnum):
    CHAT = 1
    SYSTEM = 2


class ChatFrame(BaseModel):
    """Inbound client frame."""

    type: MessageType = MessageType.CHAT
    content: str = ""

    @property
    def is_pong(self) -> bool:
        return self.type == MessageType.SYSTEM and self.content.strip().lower() == PONG


class ChatEvent(BaseModel):
    """Outbound frame (chat line or system notice)."""

    type: MessageType = MessageType.CHAT
    content: str
    sender: str = ""
    timestamp: int = Field(default_factory=lambda: int(time.time()))
    user_id: int = 0

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), separators=(",", ":"), ensure_ascii=False)


def system_event(content: str) -> ChatEvent:
    return ChatEvent(type=MessageType.SYSTEM, content=content, sender="system")


def ping_event() -> ChatEvent:
    return system_event(PING)
