"""FastAPI dependencies for shared services and admin authentication.

Services are built once by the app factory and kept on `app.state`; handlers
reach them through the getters below, which keeps them swappable in tests.

Admin endpoints depend on `require_admin`, the only authorization gate:
any administrator with a valid token has full access.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings
from .errors import AuthenticationError, InvalidTokenError
from .models import Admin
from .notifications import NotificationDispatcher
from .security import TokenService
from .stores import AdminStore, OrderStore
from .utils.client_ip import get_client_ip
from .utils.security_logger import security_logger

logger = logging.getLogger("sorgulen_api.dependencies")

# Bearer token scheme; missing headers are handled by require_admin
bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# SERVICES
# =============================================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_order_store(request: Request) -> OrderStore:
    return request.app.state.orders


def get_admin_store(request: Request) -> AdminStore:
    return request.app.state.admins


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


# =============================================================================
# AUTHENTICATION
# =============================================================================

async def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
    admins: AdminStore = Depends(get_admin_store),
) -> Admin:
    """Resolve the administrator behind the request's bearer token.

    Steps:
    - Authorization: Bearer <token> must be present
    - token signature and expiry must verify
    - the token subject must still exist in the credential store

    Returns:
        The authenticated Admin

    Raises:
        AuthenticationError (401). A valid token for a removed administrator
        gets the same answer as a forged one.
    """
    if credentials is None or not credentials.credentials:
        _log_auth_failure(request, "missing_auth_header")
        raise AuthenticationError("Authorization required")

    try:
        claims = tokens.verify(credentials.credentials)
    except InvalidTokenError as e:
        _log_auth_failure(request, "invalid_token", error=str(e))
        raise AuthenticationError("Invalid token")

    admin = admins.find_by_id(claims["sub"])
    if admin is None:
        _log_auth_failure(request, "unknown_admin", uid=claims["sub"])
        raise AuthenticationError("Invalid token")

    request.state.admin = admin
    return admin


def _log_auth_failure(request: Request, reason: str, uid: Optional[str] = None, error: Optional[str] = None):
    """Log authentication failure for security monitoring."""
    if error:
        reason = f"{reason}: {error}"
    security_logger.auth_failure(
        ip=get_client_ip(request),
        reason=reason,
        path=request.url.path,
        user_agent=request.headers.get("user-agent", "unknown"),
        uid=uid,
    )
