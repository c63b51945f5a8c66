from __future__ import annotations

import time

from django.http import JsonResponse

from forum_server.config import config
from realtime.hub import current_hub


def health(request):
    """
    Load balancer health check endpoint.

    Keep it cheap: no DB query, only the in-process chat session count.
    """

    hub = current_hub()
    return JsonResponse(
        {
            "status": "ok",
            "ts": int(time.time()),
            "instance_id": config.INSTANCE_ID,
            "chat_sessions": hub.count if hub else 0,
        }
    )
