"""
Middleware for forum_server.

- RequestLogMiddleware: one log line per request (method, path, status, latency),
  at INFO for 2xx/3xx, WARNING for 4xx and ERROR for 5xx.
- HealthCheckAllowHttp: keeps load balancer health checks on /health/ from being
  redirected to HTTPS and exempts them from CORS.
- BearerTokenMiddleware: resolves `Authorization: Bearer <jwt>` into
  `request.identity` (TokenClaims or None). Views decide whether it is required.
"""

from __future__ import annotations

import logging
import time

from accounts.tokens import InvalidToken, TokenService, bearer_token

logger = logging.getLogger("forum_server.requests")


def _is_health_path(request) -> bool:
    path = (request.path or "").rstrip("/") or "/"
    return path == "/health"


class RequestLogMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - start) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, "%s %s %d %.1fms", request.method, request.path, status, elapsed_ms)
        return response


class HealthCheckAllowHttpMiddleware:
    """
    Run before SecurityMiddleware. For requests to /health/:
    - Set proxy SSL header so Django does not redirect HTTP -> HTTPS (avoids 301).
    - In response, add permissive CORS so the load balancer is not blocked.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if _is_health_path(request):
            request.META["HTTP_X_FORWARDED_PROTO"] = "https"
        response = self.get_response(request)
        if _is_health_path(request):
            response["Access-Control-Allow-Origin"] = "*"
        return response


class BearerTokenMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.identity = None
        token = bearer_token(request.headers.get("Authorization"))
        if token:
            try:
                request.identity = TokenService.from_config().verify(token)
            except InvalidToken:
                logger.debug("Rejected bearer token on %s", request.path)
        return self.get_response(request)
