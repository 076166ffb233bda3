"""Rate limiting middleware using slowapi.

Provides per-endpoint rate limits to prevent abuse.

Default limits:
- Global: 100 req/15 min per IP
- Order submission: 10 req/min (public write endpoint)
- Login: 20 req/15 min (credential guessing)
- Admin writes: 30 req/min
"""

from __future__ import annotations

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from ..utils.client_ip import get_client_ip
from ..utils.security_logger import security_logger

logger = logging.getLogger("sorgulen_api.rate_limit")

RETRY_AFTER_SECONDS = 60


# Create limiter with custom key function
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["100/15 minutes"],  # Global default
    storage_uri="memory://",  # In-memory storage, single process
)


# Rate limit decorators for different endpoint types
rate_limit_submit = limiter.limit("10/minute")
rate_limit_login = limiter.limit("20/15 minutes")
rate_limit_admin_write = limiter.limit("30/minute")


def setup_rate_limiting(app, enabled: bool = True):
    """Configure rate limiting on the FastAPI app.

    Call this from the app factory after creating the app.
    """
    limiter.enabled = enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _custom_rate_limit_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info(f"Rate limiting {'enabled' if enabled else 'disabled'}")


async def _custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Custom handler for rate limit exceeded.

    Logs the event and returns 429 with Retry-After header.
    """
    security_logger.rate_limit_exceeded(
        ip=get_client_ip(request),
        path=request.url.path,
        limit=str(exc.detail),
    )

    return JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)}
    )
