import json
from datetime import timedelta

import pytest
from django.test import Client
from django.utils import timezone

from accounts.stores import CredentialStore
from accounts.tokens import TokenService
from forum.models import ChatMessage
from forum.stores import MessageStore, PostNotFound, PostStore, ValidationFailed

pytestmark = pytest.mark.django_db


@pytest.fixture
def alice():
    return CredentialStore().create_user("alice", "correct-horse", "alice@example.com")


@pytest.fixture
def bob():
    return CredentialStore().create_user("bob", "correct-horse", "bob@example.com")


def _auth(user):
    return {"HTTP_AUTHORIZATION": f"Bearer {TokenService.from_config().issue(user.pk, user.username)}"}


# ---- post store ----


def test_post_validation(alice):
    store = PostStore()
    with pytest.raises(ValidationFailed):
        store.create("hi", "long enough content", alice.pk)
    with pytest.raises(ValidationFailed):
        store.create("x" * 101, "long enough content", alice.pk)
    with pytest.raises(ValidationFailed):
        store.create("A title", "too short", alice.pk)
    with pytest.raises(ValidationFailed):
        store.create("A title", "long enough content", 0)


def test_post_listing_newest_first_with_authors(alice, bob):
    store = PostStore()
    first = store.create("First post", "content of the first post", alice.pk)
    second = store.create("Second post", "content of the second post", bob.pk)

    assert [p.pk for p in store.list()] == [second.pk, first.pk]
    assert store.list()[0].author.username == "bob"
    assert [p.pk for p in store.list_paginated(offset=1, limit=1)] == [first.pk]
    assert len(store.list_paginated(offset=0, limit=0)) == 2


def test_post_get_and_delete(alice, bob):
    store = PostStore()
    post = store.create("A title", "long enough content", alice.pk)
    assert store.get(post.pk).title == "A title"
    assert store.get(post.pk + 100) is None
    with pytest.raises(ValidationFailed):
        store.get(0)

    with pytest.raises(PostNotFound):
        store.delete(post.pk, bob.pk)
    store.delete(post.pk, alice.pk)
    assert store.get(post.pk) is None


# ---- message store ----


def test_message_store_refuses_guests_and_bad_content(alice):
    store = MessageStore()
    with pytest.raises(ValidationFailed):
        store.save("hello", "Guest_abc123", None)
    with pytest.raises(ValidationFailed):
        store.save("   ", "alice", alice.pk)
    with pytest.raises(ValidationFailed):
        store.save("x" * 501, "alice", alice.pk)
    assert store.save("x" * 500, "alice", alice.pk).pk


def test_message_store_recent_and_before(alice):
    store = MessageStore()
    base = timezone.now() - timedelta(minutes=10)
    messages = [store.save(f"m{i}", "alice", alice.pk, created_at=base + timedelta(seconds=i)) for i in range(5)]

    assert [m.content for m in store.recent(3)] == ["m4", "m3", "m2"]
    assert [m.content for m in store.before(messages[2].created_at, 10)] == ["m1", "m0"]
    assert len(store.recent(0)) == 5


def test_message_store_soft_delete(alice):
    store = MessageStore()
    message = store.save("oops", "alice", alice.pk)
    assert store.delete(message.pk) is True
    assert store.delete(message.pk) is False
    assert store.get(message.pk) is None
    assert store.recent() == []
    assert ChatMessage.objects.filter(pk=message.pk).exists()


# ---- posts API ----


def test_posts_require_token():
    client = Client()
    assert client.get("/api/posts").status_code == 401
    assert client.get("/api/posts", HTTP_AUTHORIZATION="Bearer junk").status_code == 401


def test_create_and_list_posts(alice):
    client = Client()
    resp = client.post(
        "/api/posts",
        data=json.dumps({"title": "Hello forum", "content": "first post content here"}),
        content_type="application/json",
        **_auth(alice),
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["author"] == "alice"
    assert created["author_id"] == alice.pk

    resp = client.get("/api/posts?offset=0&limit=5", **_auth(alice))
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()] == [created["id"]]

    resp = client.get(f"/api/posts/{created['id']}", **_auth(alice))
    assert resp.json()["title"] == "Hello forum"


def test_create_post_validation(alice):
    client = Client()
    resp = client.post(
        "/api/posts",
        data=json.dumps({"title": "Hi", "content": "short"}),
        content_type="application/json",
        **_auth(alice),
    )
    assert resp.status_code == 400
    assert "error" in resp.json()

    resp = client.get("/api/posts?limit=abc", **_auth(alice))
    assert resp.status_code == 400


def test_delete_post_only_by_author(alice, bob):
    post = PostStore().create("A title", "long enough content", alice.pk)
    client = Client()

    assert client.delete(f"/api/posts/{post.pk}", **_auth(bob)).status_code == 404
    assert client.delete(f"/api/posts/{post.pk}", **_auth(alice)).status_code == 200
    assert client.get(f"/api/posts/{post.pk}", **_auth(alice)).status_code == 404


# ---- chat history API ----


def test_chat_history_is_public_and_paged(alice):
    store = MessageStore()
    base = timezone.now() - timedelta(minutes=10)
    for i in range(4):
        store.save(f"m{i}", "alice", alice.pk, created_at=base + timedelta(seconds=i))

    client = Client()
    resp = client.get("/api/chat/history?limit=2")
    assert resp.status_code == 200
    events = resp.json()
    assert [e["content"] for e in events] == ["m3", "m2"]
    assert events[0]["type"] == 1
    assert events[0]["sender"] == "alice"
    assert events[0]["user_id"] == alice.pk

    resp = client.get(f"/api/chat/history?before={events[1]['timestamp']}")
    assert [e["content"] for e in resp.json()] == ["m1", "m0"]

    assert client.get("/api/chat/history?before=yesterday").status_code == 400
