from functools import wraps

from django.http import JsonResponse


def token_required(view):
    """Reject the request with 401 unless BearerTokenMiddleware attached an identity."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "identity", None) is None:
            return JsonResponse({"error": "unauthorized"}, status=401)
        return view(request, *args, **kwargs)

    return wrapper
