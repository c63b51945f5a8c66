"""
Post and chat message stores over the Django ORM.

Both stores validate their input before touching the database and raise the
exceptions below; the HTTP views and the chat relay translate them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from django.utils import timezone

from forum.models import ChatMessage, Post

DEFAULT_POST_PAGE_SIZE = 10
DEFAULT_MESSAGE_LIMIT = 50
MAX_MESSAGE_LIMIT = 1000
MAX_MESSAGE_LENGTH = 500


class ValidationFailed(ValueError):
    pass


class PostNotFound(LookupError):
    pass


def _truncate(s: str, max_len: int = 20) -> str:
    return s if len(s) <= max_len else s[:max_len] + "..."


class PostStore:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

    def _with_authors(self):
        return Post.objects.select_related("author")

    def create(self, title: str, content: str, author_id: int) -> Post:
        title = (title or "").strip()
        content = (content or "").strip()
        if len(title) < 3 or len(title) > 100:
            raise ValidationFailed("title must be between 3-100 characters")
        if len(content) < 10:
            raise ValidationFailed("content must be at least 10 characters")
        if not author_id:
            raise ValidationFailed("author ID is required")

        post = Post.objects.create(title=title, content=content, author_id=author_id)
        self._log.info("Post created: post_id=%s author_id=%s", post.pk, author_id)
        return self._with_authors().get(pk=post.pk)

    def get(self, post_id: int) -> Optional[Post]:
        if post_id <= 0:
            raise ValidationFailed("invalid post ID")
        return self._with_authors().filter(pk=post_id).first()

    def list(self) -> List[Post]:
        return list(self._with_authors().all())

    def list_paginated(self, offset: int = 0, limit: int = DEFAULT_POST_PAGE_SIZE) -> List[Post]:
        if limit <= 0:
            limit = DEFAULT_POST_PAGE_SIZE
        offset = max(offset, 0)
        return list(self._with_authors().all()[offset : offset + limit])

    def delete(self, post_id: int, author_id: int) -> None:
        if post_id <= 0 or author_id <= 0:
            raise ValidationFailed("invalid ID")
        deleted, _ = Post.objects.filter(pk=post_id, author_id=author_id).delete()
        if not deleted:
            raise PostNotFound("post not found or you're not the author")
        self._log.info("Post deleted: post_id=%s author_id=%s", post_id, author_id)


class MessageStore:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

    @staticmethod
    def _clamp(limit: int) -> int:
        if limit <= 0:
            return DEFAULT_MESSAGE_LIMIT
        return min(limit, MAX_MESSAGE_LIMIT)

    def _visible(self):
        return ChatMessage.objects.filter(is_deleted=False)

    def save(
        self,
        content: str,
        username: str,
        user_id: Optional[int],
        created_at: Optional[datetime] = None,
    ) -> ChatMessage:
        if not user_id or not username:
            raise ValidationFailed("unauthenticated users cannot send messages")
        content = (content or "").strip()
        if not content:
            raise ValidationFailed("message content cannot be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationFailed(f"message too long (max {MAX_MESSAGE_LENGTH} chars)")

        message = ChatMessage.objects.create(
            content=content,
            username=username,
            user_id=user_id,
            created_at=created_at or timezone.now(),
        )
        self._log.debug("Message saved: id=%s user=%s content=%r", message.pk, username, _truncate(content))
        return message

    def get(self, message_id: int) -> Optional[ChatMessage]:
        return self._visible().filter(pk=message_id).first()

    def recent(self, limit: int = DEFAULT_MESSAGE_LIMIT) -> List[ChatMessage]:
        """Newest first."""
        return list(self._visible()[: self._clamp(limit)])

    def before(self, timestamp: datetime, limit: int = DEFAULT_MESSAGE_LIMIT) -> List[ChatMessage]:
        """Newest first, strictly older than `timestamp`."""
        return list(self._visible().filter(created_at__lt=timestamp)[: self._clamp(limit)])

    def delete(self, message_id: int) -> bool:
        updated = ChatMessage.objects.filter(pk=message_id, is_deleted=False).update(is_deleted=True)
        return updated > 0
