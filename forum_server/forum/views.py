"""
Posts API, mounted under /api/.

- GET  /api/posts?offset=&limit=  list posts with authors, newest first
- POST /api/posts                  create a post as the caller
- GET  /api/posts/<id>             one post
- DELETE /api/posts/<id>           delete one of the caller's posts

Every endpoint requires a bearer token (see BearerTokenMiddleware).
"""

from __future__ import annotations

import json
import logging

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from accounts.decorators import token_required
from forum.stores import DEFAULT_POST_PAGE_SIZE, PostNotFound, PostStore, ValidationFailed

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


def _int_param(request, name: str, default: int) -> int:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    return int(raw)


@require_http_methods(["GET", "POST"])
@token_required
def posts(request):
    store = PostStore()
    if request.method == "GET":
        try:
            offset = _int_param(request, "offset", 0)
            limit = _int_param(request, "limit", DEFAULT_POST_PAGE_SIZE)
        except ValueError:
            return _error("offset and limit must be integers", 400)
        return JsonResponse([p.to_dict() for p in store.list_paginated(offset, limit)], safe=False)

    try:
        body = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return _error("Invalid JSON", 400)
    if not isinstance(body, dict):
        return _error("Invalid request body", 400)

    try:
        post = store.create(
            str(body.get("title") or ""),
            str(body.get("content") or ""),
            request.identity.subject_id,
        )
    except ValidationFailed as e:
        return _error(str(e), 400)
    return JsonResponse(post.to_dict(), status=201)


@require_http_methods(["GET", "DELETE"])
@token_required
def post_detail(request, post_id: int):
    store = PostStore()
    try:
        if request.method == "DELETE":
            store.delete(post_id, request.identity.subject_id)
            return JsonResponse({"status": "deleted", "id": post_id})
        post = store.get(post_id)
    except ValidationFailed as e:
        return _error(str(e), 400)
    except PostNotFound as e:
        return _error(str(e), 404)

    if post is None:
        return _error("post not found", 404)
    return JsonResponse(post.to_dict())
