from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import settings

# Shared limiter; only the admin mutation routes are throttled
limiter = Limiter(key_func=get_remote_address)
admin_rate_limit = settings.ADMIN_RATE_LIMIT

__all__ = [
    "limiter",
    "admin_rate_limit",
    "RateLimitExceeded",
    "SlowAPIMiddleware",
]
