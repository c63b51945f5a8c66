"""Test configuration and fixtures."""
import asyncio
import json

import pytest
import pytest_asyncio

from realtime.hub import Hub
from realtime.protocol import ChatEvent
from realtime.session import ChatIdentity, ChatSession


class FakeArchive:
    """In-memory stand-in for the chat message store."""

    def __init__(self, events=None, fail_save=False, fail_recent=False):
        self.events = list(events or [])
        self.saved = []
        self.fail_save = fail_save
        self.fail_recent = fail_recent

    async def recent(self, limit):
        if self.fail_recent:
            raise RuntimeError("archive offline")
        return self.events[:limit]

    async def save(self, event: ChatEvent):
        if self.fail_save:
            raise RuntimeError("disk full")
        self.saved.append(event)


class FakeTransport:
    def __init__(self, fail=False, hang=False):
        self.sent = []
        self.closed = False
        self.fail = fail
        self.hang = hang

    async def send_text(self, text):
        if self.hang:
            await asyncio.Event().wait()
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(text))

    async def close(self, code=1000):
        self.closed = True


@pytest.fixture
def archive():
    return FakeArchive()


@pytest_asyncio.fixture
async def hub(archive):
    h = Hub(archive, ping_interval=0, history_push_timeout=0.05)
    h.start()
    yield h
    await h.stop()


@pytest.fixture
def make_session(hub, archive):
    def _make(name="alice", user_id=1, guest=False, transport=None, **kwargs):
        if guest:
            identity = ChatIdentity.guest()
        else:
            identity = ChatIdentity(user_id=user_id, display_name=name)
        return ChatSession(identity, transport or FakeTransport(), hub=hub, archive=archive, **kwargs)

    return _make


def drain(session):
    """Everything currently queued for `session`, in order."""
    items = []
    while True:
        item = session.outbound.get_nowait()
        if item is None:
            return items
        items.append(item)
