"""Orders router - public submission and admin management.

Endpoints:
    POST  /api/orders       - Submit an order (public)
    GET   /api/orders       - List orders, newest first (admin)
    GET   /api/orders/{id}  - Get one order (admin)
    PATCH /api/orders/{id}  - Update status and/or priceEstimate (admin)
"""

import logging

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_dispatcher, get_order_store, require_admin
from ..errors import NotFoundError
from ..middleware.rate_limit import rate_limit_admin_write, rate_limit_submit
from ..models import (
    Admin,
    ErrorResponse,
    OrderCreatedResponse,
    OrderCreateRequest,
    OrderListResponse,
    OrderResponse,
    OrderUpdateRequest,
)
from ..notifications import NotificationDispatcher
from ..stores import OrderStore

router = APIRouter()
logger = logging.getLogger("sorgulen_api.orders")


@router.post(
    "/orders",
    status_code=201,
    response_model=OrderCreatedResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
@rate_limit_submit
async def submit_order(
    request: Request,
    payload: OrderCreateRequest,
    orders: OrderStore = Depends(get_order_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderCreatedResponse:
    """Create an order and queue its emails.

    The response does not wait for mail delivery; the outcome of the
    customer confirmation is written back to the order's emailStatus.
    """
    order = orders.create(payload)
    dispatcher.dispatch_order_created(order)
    return OrderCreatedResponse(id=order.id, status=order.status)


@router.get(
    "/orders",
    response_model=OrderListResponse,
    responses={401: {"model": ErrorResponse}},
)
async def list_orders(
    admin: Admin = Depends(require_admin),
    orders: OrderStore = Depends(get_order_store),
) -> OrderListResponse:
    """List all orders, newest first."""
    return OrderListResponse(orders=orders.list_all())


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def get_order(
    order_id: str,
    admin: Admin = Depends(require_admin),
    orders: OrderStore = Depends(get_order_store),
) -> OrderResponse:
    order = orders.find_by_id(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return OrderResponse(order=order)


@router.patch(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
@rate_limit_admin_write
async def update_order(
    request: Request,
    order_id: str,
    payload: OrderUpdateRequest,
    admin: Admin = Depends(require_admin),
    orders: OrderStore = Depends(get_order_store),
) -> OrderResponse:
    """Update an order's status and/or price estimate.

    Any other field in the body is ignored.
    """
    order = orders.update(order_id, payload.changes())
    if order is None:
        raise NotFoundError("Order not found")
    logger.info(f"Order {order_id} updated by admin {admin.id}: {sorted(payload.changes())}")
    return OrderResponse(order=order)
