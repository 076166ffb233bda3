"""Authentication router - admin login and token verification.

Endpoints:
    POST /api/auth/login  - Exchange email/password for a bearer token
    GET  /api/auth/verify - Verify token and return the current admin
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Request

from ..config import Settings
from ..dependencies import get_admin_store, get_settings, get_token_service, require_admin
from ..errors import AuthenticationError
from ..middleware.rate_limit import rate_limit_login
from ..models import Admin, ErrorResponse, LoginRequest, LoginResponse, LoginUser
from ..security import TokenService, hash_password, verify_password
from ..stores import AdminStore
from ..utils.client_ip import get_client_ip
from ..utils.security_logger import security_logger

router = APIRouter()
logger = logging.getLogger("sorgulen_api.auth")

INVALID_CREDENTIALS = "Invalid credentials"


@lru_cache(maxsize=None)
def dummy_password_hash(rounds: int) -> str:
    """Hash checked when the email is unknown, at the same cost as real hashes."""
    return hash_password("sorgulen-dummy-password", rounds=rounds)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
@rate_limit_login
def login(
    request: Request,
    payload: LoginRequest,
    admins: AdminStore = Depends(get_admin_store),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Authenticate an administrator.

    Unknown email and wrong password produce the same 401 after one bcrypt
    check each. Sync handler, so bcrypt runs in the threadpool.
    """
    admin = admins.find_by_email(payload.email)
    if admin is None:
        verify_password(payload.password, dummy_password_hash(settings.bcrypt_rounds))
        security_logger.login_failure(get_client_ip(request), "unknown_email", request.url.path)
        raise AuthenticationError(INVALID_CREDENTIALS)

    if not verify_password(payload.password, admin.passwordHash):
        security_logger.login_failure(get_client_ip(request), "bad_password", request.url.path)
        raise AuthenticationError(INVALID_CREDENTIALS)

    token = tokens.issue(admin.id)
    logger.info(f"Admin {admin.id} logged in")
    return LoginResponse(token=token, user=LoginUser(id=admin.id, email=admin.email))


@router.get(
    "/verify",
    response_model=LoginUser,
    responses={401: {"model": ErrorResponse}},
)
async def verify_token(admin: Admin = Depends(require_admin)) -> LoginUser:
    """Return the administrator the presented token belongs to."""
    return LoginUser(id=admin.id, email=admin.email)
