"""
Chat hub: the registry of live sessions and the fan-out logic.

Registry changes and broadcasts are requests on one asyncio queue, processed by
a single coordinator task, so the registry map has exactly one writer. The
health check runs as its own task and evicts through the same queue. History
replay for new sessions runs in short-lived helper tasks.

Nothing a single session does (slow reader, dead socket, failed write) reaches
the coordinator: every delivery problem ends in that session's eviction.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from realtime.errors import HubNotRunning
from realtime.history import ChatArchive
from realtime.protocol import ChatEvent
from realtime.session import ChatSession, SessionState


class _Op(Enum):
    REGISTER = "register"
    UNREGISTER = "unregister"
    BROADCAST = "broadcast"


@dataclass
class _Request:
    op: _Op
    session: Optional[ChatSession] = None
    event: Optional[ChatEvent] = None
    reason: str = ""
    done: Optional[asyncio.Future] = None


class Hub:
    def __init__(
        self,
        archive: ChatArchive,
        *,
        history_limit: int = 50,
        history_push_timeout: float = 1.0,
        ping_interval: float = 25.0,
        max_missed_probes: int = 2,
        request_queue_size: int = 1024,
        logger: Optional[logging.Logger] = None,
    ):
        self.history_limit = history_limit
        self.history_push_timeout = history_push_timeout
        self.ping_interval = ping_interval
        self.max_missed_probes = max_missed_probes
        self._archive = archive
        self._sessions: Dict[ChatSession, bool] = {}
        self._lock = asyncio.Lock()
        self._requests: asyncio.Queue[_Request] = asyncio.Queue(maxsize=request_queue_size)
        self._coordinator: Optional[asyncio.Task] = None
        self._health: Optional[asyncio.Task] = None
        self._replays: Set[asyncio.Task] = set()
        self._log = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, archive: ChatArchive) -> "Hub":
        from forum_server.config import config

        return cls(
            archive,
            history_limit=config.CHAT_HISTORY_LIMIT,
            history_push_timeout=config.CHAT_HISTORY_PUSH_TIMEOUT,
            ping_interval=config.CHAT_PING_INTERVAL,
            max_missed_probes=config.CHAT_MAX_MISSED_PROBES,
            request_queue_size=config.CHAT_REQUEST_QUEUE_SIZE,
        )

    @property
    def archive(self) -> ChatArchive:
        return self._archive

    # ---- lifecycle ----

    @property
    def running(self) -> bool:
        return self._coordinator is not None and not self._coordinator.done()

    def start(self, *, health_check: bool = True) -> None:
        """Start the coordinator (and the periodic health check). Idempotent."""
        if self.running:
            return
        self._coordinator = asyncio.create_task(self._run(), name="chat-hub")
        if health_check and self.ping_interval > 0:
            self._health = asyncio.create_task(self._health_loop(), name="chat-hub-health")
        self._log.info("Chat hub started (history=%d, ping every %ss)", self.history_limit, self.ping_interval)

    async def stop(self) -> None:
        """Stop background tasks and close every registered session."""
        for task in (self._health, self._coordinator):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._health = self._coordinator = None

        # Release callers waiting on requests that will never be processed.
        while not self._requests.empty():
            request = self._requests.get_nowait()
            self._requests.task_done()
            if request.done and not request.done.done():
                request.done.set_result(None)

        for task in list(self._replays):
            task.cancel()

        async with self._lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            session.close()
        self._log.info("Chat hub stopped (%d sessions closed)", len(sessions))

    async def join(self) -> None:
        """Wait until queued requests and pending history replays are done."""
        await self._requests.join()
        if self._replays:
            await asyncio.gather(*list(self._replays), return_exceptions=True)

    # ---- registry views ----

    @property
    def count(self) -> int:
        return len(self._sessions)

    def sessions(self) -> List[ChatSession]:
        return list(self._sessions)

    def is_registered(self, session: ChatSession) -> bool:
        return session in self._sessions

    # ---- requests ----

    async def register(self, session: ChatSession) -> None:
        if not self.running:
            raise HubNotRunning("chat hub is not running")
        await self._submit(_Request(_Op.REGISTER, session=session))

    async def unregister(self, session: ChatSession, reason: str = "closed") -> None:
        """Remove `session`. Idempotent; only the first call does anything."""
        if session.state == SessionState.UNREGISTERED and not self.is_registered(session):
            return
        if not self.running:
            await self._remove(session, reason)
            return
        await self._submit(_Request(_Op.UNREGISTER, session=session, reason=reason))

    async def broadcast(self, event: ChatEvent) -> bool:
        """Queue `event` for fan-out without waiting. False when the request queue is full."""
        if not self.running:
            raise HubNotRunning("chat hub is not running")
        try:
            self._requests.put_nowait(_Request(_Op.BROADCAST, event=event))
        except asyncio.QueueFull:
            self._log.warning("Hub request queue full; dropping chat message from %s", event.sender)
            return False
        return True

    async def _submit(self, request: _Request) -> None:
        request.done = asyncio.get_running_loop().create_future()
        await self._requests.put(request)
        await request.done

    # ---- coordinator ----

    async def _run(self) -> None:
        while True:
            request = await self._requests.get()
            try:
                if request.op is _Op.REGISTER:
                    await self._add(request.session)
                elif request.op is _Op.UNREGISTER:
                    await self._remove(request.session, request.reason)
                elif request.op is _Op.BROADCAST:
                    await self._fan_out(request.event)
            except Exception:
                self._log.exception("Hub failed to handle %s request", request.op.value)
            finally:
                if request.done and not request.done.done():
                    request.done.set_result(None)
                self._requests.task_done()

    async def _add(self, session: ChatSession) -> None:
        if session.done:
            return
        async with self._lock:
            self._sessions[session] = True
        session.state = SessionState.REGISTERED
        self._log.info("Client connected: %s (%d online)", session.name, len(self._sessions))

        task = asyncio.create_task(self._replay_history(session))
        self._replays.add(task)
        task.add_done_callback(self._replays.discard)

    async def _remove(self, session: ChatSession, reason: str) -> None:
        async with self._lock:
            present = self._sessions.pop(session, None) is not None
        session.close()
        if present:
            self._log.info("Client disconnected: %s (%s, %d online)", session.name, reason, len(self._sessions))

    async def _fan_out(self, event: ChatEvent) -> None:
        async with self._lock:
            targets = list(self._sessions)
        overflowed = [session for session in targets if not session.outbound.offer(event)]
        for session in overflowed:
            session.state = SessionState.EVICTING
            await self._remove(session, "backpressure")

    # ---- helpers ----

    async def _replay_history(self, session: ChatSession) -> None:
        """Best-effort push of recent messages into a new session's queue."""
        try:
            events = await self._archive.recent(self.history_limit)
        except Exception:
            self._log.exception("Failed to load chat history for %s", session.name)
            return
        for event in events:
            if session.done:
                return
            if not await session.outbound.put(event, timeout=self.history_push_timeout):
                self._log.debug("History replay to %s aborted", session.name)
                return

    async def health_check(self) -> List[ChatSession]:
        """Probe every session; evict the ones with too many unanswered probes. Returns evicted."""
        async with self._lock:
            targets = list(self._sessions)

        doomed = []
        for session in targets:
            if session.done:
                continue
            if session.missed_probes >= self.max_missed_probes:
                doomed.append((session, "ping timeout"))
            elif not session.send_probe():
                doomed.append((session, "backpressure"))

        for session, reason in doomed:
            session.state = SessionState.EVICTING
            await self.unregister(session, reason=reason)
        return [session for session, _ in doomed]

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.ping_interval)
            try:
                evicted = await self.health_check()
            except Exception:
                self._log.exception("Chat health check failed")
                continue
            if evicted:
                self._log.info("Health check evicted %d sessions", len(evicted))


_default_hub: Optional[Hub] = None


def get_hub() -> Hub:
    """Process-wide hub, created and started on first use inside the event loop."""
    global _default_hub
    if _default_hub is None:
        from realtime.history import DatabaseChatArchive

        _default_hub = Hub.from_config(DatabaseChatArchive())
    _default_hub.start()
    return _default_hub


def current_hub() -> Optional[Hub]:
    return _default_hub
