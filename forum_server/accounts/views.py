"""
Auth API: register, login, validate.

Mounted under /api/v1/ (the auth service's historical prefix).
"""

import json
import logging

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from pydantic import ValidationError

from accounts.schemas import LoginRequest, RegisterRequest
from accounts.stores import CredentialStore, UserAlreadyExists
from accounts.tokens import InvalidToken, TokenError, TokenService, bearer_token

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "body"
    return f"{field}: {first.get('msg')}"


@require_http_methods(["POST"])
def register(request):
    """POST /api/v1/register - create a user and return an access token."""
    try:
        body = json.loads(request.body or b"{}")
        req = RegisterRequest(**body)
    except json.JSONDecodeError:
        return _error("Invalid JSON", 400)
    except ValidationError as e:
        return _error(_validation_message(e), 400)
    except TypeError:
        return _error("Invalid request body", 400)

    try:
        user = CredentialStore().create_user(req.username, req.password, req.email)
    except UserAlreadyExists as e:
        return _error(str(e), 409)

    try:
        token = TokenService.from_config().issue(user.pk, user.username)
    except TokenError:
        logger.exception("Error generating token for user_id=%s", user.pk)
        return _error("Failed to generate token", 500)

    logger.info("User %s registered successfully", req.username)
    return JsonResponse({"userId": str(user.pk), "accessToken": token}, status=201)


@require_http_methods(["POST"])
def login(request):
    """POST /api/v1/login - exchange credentials for an access token."""
    try:
        body = json.loads(request.body or b"{}")
        req = LoginRequest(**body)
    except json.JSONDecodeError:
        return _error("Invalid JSON", 400)
    except (ValidationError, TypeError):
        return _error("Invalid credentials", 401)

    user = CredentialStore().authenticate(req.username, req.password)
    if user is None:
        return _error("Invalid credentials", 401)

    try:
        token = TokenService.from_config().issue(user.pk, user.username)
    except TokenError:
        logger.exception("Error generating token for user_id=%s", user.pk)
        return _error("Failed to generate token", 500)
    return JsonResponse({"access_token": token})


@require_http_methods(["GET"])
def validate(request):
    """GET /api/v1/validate - check the Authorization header token."""
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return _error("Unauthorized", 401)
    try:
        claims = TokenService.from_config().verify(token)
    except InvalidToken:
        return _error("Invalid token", 401)
    return JsonResponse({"user_id": claims.subject_id, "username": claims.display_name})
