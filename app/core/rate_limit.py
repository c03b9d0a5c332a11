"""Per-client request limits for the auth and checkout routes."""
from fastapi import Request
from slowapi import Limiter

from .config import settings


def client_ip(request: Request) -> str:
    # first hop of X-Forwarded-For when running behind a proxy
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else "unknown"


def per_minute(count: int) -> str:
    return f"{max(count, 1)}/minute"


limiter = Limiter(key_func=client_ip)

AUTH_LIMIT = per_minute(settings.rate_limit_per_minute)
CHECKOUT_LIMIT = per_minute(settings.rate_limit_checkout_per_minute)
