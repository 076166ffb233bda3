"""Client IP extraction with trusted proxy support.

X-Forwarded-For is only honoured when the app runs behind a trusted reverse
proxy (TRUST_PROXY, on by default for the hosted deployment). Otherwise the
direct connection address is used, which prevents IP spoofing when the API
is exposed directly.
"""

from __future__ import annotations

from fastapi import Request


def _trust_proxy(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.trust_proxy)


def get_client_ip(request: Request) -> str:
    """Get client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address string
    """
    if _trust_proxy(request):
        # First IP in the chain is the original client
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
