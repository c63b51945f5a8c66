"""
One live chat connection: identity, outbound queue, liveness and the two loops.

Reader: `handle_frame()` is called for every inbound frame (the Channels consumer
drives it). Writer: `write_loop()` runs as its own task from registration until
the session's done-signal fires or the transport fails.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Union

from pydantic import ValidationError

from realtime.errors import HubNotRunning
from realtime.outbound import OutboundQueue
from realtime.protocol import ChatEvent, ChatFrame, MessageType, ping_event

if TYPE_CHECKING:
    from realtime.history import ChatArchive
    from realtime.hub import Hub

GUEST_PREFIX = "Guest_"
_GUEST_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class ChatIdentity:
    user_id: int
    display_name: str
    is_guest: bool = False

    @classmethod
    def guest(cls) -> "ChatIdentity":
        suffix = "".join(secrets.choice(_GUEST_ALPHABET) for _ in range(6))
        return cls(user_id=0, display_name=GUEST_PREFIX + suffix, is_guest=True)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    REGISTERED = "registered"
    EVICTING = "evicting"
    UNREGISTERED = "unregistered"


class Transport(Protocol):
    async def send_text(self, text: str) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class ChatSession:
    def __init__(
        self,
        identity: ChatIdentity,
        transport: Transport,
        *,
        hub: "Hub",
        archive: "ChatArchive",
        queue_size: int = 256,
        max_frame_bytes: int = 1024,
        max_content_length: int = 500,
        write_timeout: float = 10.0,
        ping_interval: float = 25.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.identity = identity
        self.outbound: OutboundQueue[ChatEvent] = OutboundQueue(queue_size)
        self.state = SessionState.CONNECTING
        self.missed_probes = 0
        self.last_seen = time.monotonic()
        self.max_frame_bytes = max_frame_bytes
        self.max_content_length = max_content_length
        self.write_timeout = write_timeout
        self.ping_interval = ping_interval
        self._transport = transport
        self._hub = hub
        self._archive = archive
        self._done = asyncio.Event()
        self._writer: Optional[asyncio.Task] = None
        self._transport_closed = False
        self._log = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, identity: ChatIdentity, transport: Transport, *, hub: "Hub", archive: "ChatArchive") -> "ChatSession":
        from forum_server.config import config

        return cls(
            identity,
            transport,
            hub=hub,
            archive=archive,
            queue_size=config.CHAT_SEND_QUEUE_SIZE,
            max_frame_bytes=config.CHAT_MAX_FRAME_BYTES,
            max_content_length=config.CHAT_MAX_CONTENT_LENGTH,
            write_timeout=config.CHAT_WRITE_TIMEOUT,
            ping_interval=config.CHAT_PING_INTERVAL,
        )

    def __repr__(self) -> str:
        return f"<ChatSession {self.name} {self.state.value}>"

    @property
    def name(self) -> str:
        return self.identity.display_name

    @property
    def read_only(self) -> bool:
        return self.identity.is_guest

    @property
    def done(self) -> bool:
        return self._done.is_set()

    async def wait_closed(self) -> None:
        await self._done.wait()

    # ---- liveness ----

    def mark_alive(self) -> None:
        self.missed_probes = 0
        self.last_seen = time.monotonic()

    def send_probe(self) -> bool:
        """Queue a liveness probe. False when the queue is full or closed."""
        if not self.outbound.offer(ping_event()):
            return False
        self.missed_probes += 1
        return True

    # ---- lifecycle ----

    def start(self) -> asyncio.Task:
        if self._writer is None:
            self._writer = asyncio.create_task(self.write_loop(), name=f"chat-writer-{self.name}")
        return self._writer

    def close(self) -> None:
        """Fire the done-signal and close the outbound queue. Called by the hub, once."""
        if self._done.is_set():
            return
        self.state = SessionState.UNREGISTERED
        self._done.set()
        self.outbound.close()

    async def stop(self) -> None:
        """Cancel the writer (transport already gone)."""
        self._transport_closed = True
        if self._writer and not self._writer.done():
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass

    # ---- reader ----

    async def handle_frame(self, raw: Union[str, bytes]) -> Optional[ChatEvent]:
        """Process one inbound frame. Returns the broadcast event, or None if dropped."""
        if self.done:
            return None
        self.mark_alive()

        size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
        if size > self.max_frame_bytes:
            self._log.warning("Dropping oversized frame from %s (%d bytes)", self.name, size)
            return None

        try:
            frame = ChatFrame.model_validate_json(raw)
        except ValidationError as e:
            self._log.info("Dropping malformed frame from %s: %s", self.name, e.errors()[0].get("msg"))
            return None

        if frame.is_pong or frame.type == MessageType.SYSTEM:
            return None

        if self.read_only:
            return None

        content = frame.content.strip()
        if not content or len(content) > self.max_content_length:
            self._log.info("Dropping chat frame from %s: content length %d", self.name, len(content))
            return None

        event = ChatEvent(
            type=MessageType.CHAT,
            content=content,
            sender=self.identity.display_name,
            timestamp=int(time.time()),
            user_id=self.identity.user_id,
        )
        try:
            await self._archive.save(event)
        except Exception:
            # live delivery proceeds regardless
            self._log.exception("Failed to persist chat message from %s", self.name)

        try:
            await self._hub.broadcast(event)
        except HubNotRunning:
            self._log.debug("Hub is shut down; dropping chat frame from %s", self.name)
            return None
        return event

    # ---- writer ----

    async def write_loop(self) -> None:
        try:
            while True:
                try:
                    event = await self.outbound.get(timeout=self.ping_interval)
                except asyncio.TimeoutError:
                    event = ping_event()  # idle keepalive
                if event is None:
                    break
                try:
                    await asyncio.wait_for(self._transport.send_text(event.to_json()), timeout=self.write_timeout)
                except asyncio.TimeoutError:
                    self._log.warning("Write deadline exceeded for %s", self.name)
                    break
                except Exception as e:
                    self._log.info("Write error for %s: %s", self.name, e)
                    break
        finally:
            await self._hub.unregister(self)
            await self._close_transport()

    async def _close_transport(self) -> None:
        if self._transport_closed:
            return
        self._transport_closed = True
        try:
            await self._transport.close()
        except Exception as e:
            self._log.debug("Transport close failed for %s: %s", self.name, e)
