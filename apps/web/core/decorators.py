"""
Decorators for request handling.
"""

import json
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.core.cache import cache
from django.http import HttpRequest, JsonResponse

IDEMPOTENCY_TTL_SECONDS = 86400  # 24 hours


def idempotent_replay(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that replays the first response for a repeated Idempotency-Key.

    The header is optional: requests without it are passed straight through.
    When present, a successful response is cached for 24 hours and returned
    verbatim for any later request carrying the same key, so a double-clicked
    submit does not reach the POS twice.

    Usage:
        @idempotent_replay
        def create_cashier_order(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        key = request.headers.get("Idempotency-Key")

        if not key:
            return view_func(request, *args, **kwargs)

        cache_key = f"idempotency:{request.path}:{key}"
        cached = cache.get(cache_key)

        if cached:
            return JsonResponse(
                cached["data"],
                status=cached["status"],
            )

        response = view_func(request, *args, **kwargs)

        # Only successful responses are replayed; failures may be retried
        if response.status_code < 400:
            cache.set(
                cache_key,
                {
                    "data": json.loads(response.content),
                    "status": response.status_code,
                },
                timeout=IDEMPOTENCY_TTL_SECONDS,
            )

        return response

    return wrapper
