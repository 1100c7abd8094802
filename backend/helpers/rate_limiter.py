"""Endpoint rate limiter (slowapi).

Kept separate from main.py so routers can import the limiter without
circular imports. Form submissions use the database-backed limiter in
services/rate_limit_service.py instead; this one guards cheap read
endpoints such as the weather widget.
"""

from slowapi import Limiter
from starlette.requests import Request

from helpers.request_utils import get_client_ip


def client_ip_key(request: Request) -> str:
    """Rate limit key: the proxied client IP, or "unknown"."""
    return get_client_ip(request) or "unknown"


limiter = Limiter(key_func=client_ip_key)
