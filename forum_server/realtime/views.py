"""
REST view for the realtime app.

- GET /api/chat/history?limit=&before=<unix ts>: recent chat lines, newest first.
  Public, like the room itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from forum.stores import DEFAULT_MESSAGE_LIMIT, MessageStore
from realtime.history import message_to_event

logger = logging.getLogger(__name__)


@require_http_methods(["GET"])
def chat_history(request):
    try:
        limit = int(request.GET.get("limit") or DEFAULT_MESSAGE_LIMIT)
    except ValueError:
        return JsonResponse({"error": "limit must be an integer"}, status=400)

    before = request.GET.get("before")
    store = MessageStore()
    if before:
        try:
            ts = datetime.fromtimestamp(int(before), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return JsonResponse({"error": "before must be a unix timestamp"}, status=400)
        messages = store.before(ts, limit)
    else:
        messages = store.recent(limit)

    return JsonResponse([message_to_event(m).model_dump(mode="json") for m in messages], safe=False)
