"""Administrator accounts router.

Endpoints (all require an admin token):
    GET   /api/admins       - List administrators
    POST  /api/admins       - Create an administrator
    PATCH /api/admins/{id}  - Change an administrator's email and/or password

Administrators cannot be deleted through the API. Plain-text passwords are
hashed before they reach the store and hashes are never returned.
Handlers that hash are sync so bcrypt runs in the threadpool.
"""

import logging

from fastapi import APIRouter, Depends, Request

from ..config import Settings
from ..dependencies import get_admin_store, get_settings, require_admin
from ..errors import NotFoundError
from ..middleware.rate_limit import rate_limit_admin_write
from ..models import (
    Admin,
    AdminCreateRequest,
    AdminInfo,
    AdminListResponse,
    AdminResponse,
    AdminUpdateRequest,
    ErrorResponse,
)
from ..security import hash_password
from ..stores import AdminStore
from ..utils.security_logger import security_logger

router = APIRouter()
logger = logging.getLogger("sorgulen_api.admins")


@router.get(
    "/admins",
    response_model=AdminListResponse,
    responses={401: {"model": ErrorResponse}},
)
async def list_admins(
    admin: Admin = Depends(require_admin),
    admins: AdminStore = Depends(get_admin_store),
) -> AdminListResponse:
    return AdminListResponse(admins=[AdminInfo.from_admin(a) for a in admins.list_all()])


@router.post(
    "/admins",
    status_code=201,
    response_model=AdminResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@rate_limit_admin_write
def create_admin(
    request: Request,
    payload: AdminCreateRequest,
    admin: Admin = Depends(require_admin),
    admins: AdminStore = Depends(get_admin_store),
    settings: Settings = Depends(get_settings),
) -> AdminResponse:
    created = admins.create(
        payload.email,
        hash_password(payload.password, rounds=settings.bcrypt_rounds),
    )
    security_logger.admin_changed(admin.id, created.id, "created")
    return AdminResponse(admin=AdminInfo.from_admin(created))


@router.patch(
    "/admins/{admin_id}",
    response_model=AdminResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@rate_limit_admin_write
def update_admin(
    request: Request,
    admin_id: str,
    payload: AdminUpdateRequest,
    admin: Admin = Depends(require_admin),
    admins: AdminStore = Depends(get_admin_store),
    settings: Settings = Depends(get_settings),
) -> AdminResponse:
    password_hash = None
    if payload.password:
        password_hash = hash_password(payload.password, rounds=settings.bcrypt_rounds)

    updated = admins.update(admin_id, email=payload.email, password_hash=password_hash)
    if updated is None:
        raise NotFoundError("Administrator not found")

    changed = [name for name, value in (("email", payload.email), ("password", password_hash)) if value]
    security_logger.admin_changed(admin.id, admin_id, f"updated:{','.join(changed) or 'nothing'}")
    return AdminResponse(admin=AdminInfo.from_admin(updated))
