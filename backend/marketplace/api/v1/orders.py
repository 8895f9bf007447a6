"""
Order API endpoints for the artisan marketplace.

This module implements the FastAPI router for the order lifecycle: placing
customer and inventory orders, listing them per role, status transitions,
payment updates, driver assignment and the finance and supplier payment
paths. Workflow errors are translated to HTTP status codes by
``to_http_exception``.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from marketplace.api.deps import CurrentActor, OrderServiceDep
from marketplace.api.errors import ORDER_ERRORS, to_http_exception
from marketplace.core.logging import get_logger
from marketplace.database.models.user import UserRole
from marketplace.schemas.orders import (
    DriverAssignmentRequest,
    FinancePaymentRequest,
    FinanceRejectRequest,
    OrderCreateRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PartySummary,
    PaymentStatusUpdate,
    SupplierPaymentRequest,
)
from marketplace.services.orders.enums import OrderStatus, OrderType

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place order",
    description="Place a customer order or an artisan's inventory order",
)
async def create_order(
    request: OrderCreateRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    """
    Place a new order.

    Raises:
        HTTPException: 400 if required fields are missing or invalid
    """
    logger.info(
        "Creating order",
        actor_id=str(actor.id),
        order_type=request.order_type.value,
    )

    try:
        order = await service.create_order(actor, **request.model_dump())
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "create order") from e

    return OrderResponse(**order)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List all orders",
    description="All orders, for admin, supervisor and finance users",
)
async def list_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
    order_type: Optional[OrderType] = Query(None, description="Filter by order type"),
    status_filter: Optional[OrderStatus] = Query(
        None, alias="status", description="Filter by order status"
    ),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum records to return"),
) -> OrderListResponse:
    try:
        result = await service.list_all_orders(
            actor,
            order_type=order_type,
            order_status=status_filter,
            skip=skip,
            limit=limit,
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list orders") from e

    return OrderListResponse(**result)


@router.get(
    "/user/{user_id}",
    response_model=OrderListResponse,
    summary="List a customer's orders",
)
async def list_user_orders(
    user_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> OrderListResponse:
    try:
        result = await service.list_user_orders(user_id, actor, skip=skip, limit=limit)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list user orders") from e

    return OrderListResponse(**result)


@router.get(
    "/driver",
    response_model=OrderListResponse,
    summary="List orders assigned to the calling driver",
)
async def list_driver_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> OrderListResponse:
    try:
        result = await service.list_driver_orders(actor, skip=skip, limit=limit)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list driver orders") from e

    return OrderListResponse(**result)


@router.get(
    "/supervisor",
    response_model=OrderListResponse,
    summary="List all orders for supervision",
)
async def list_supervisor_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> OrderListResponse:
    try:
        result = await service.list_all_orders(
            actor,
            allowed_roles=(UserRole.SUPERVISOR,),
            order_status=status_filter,
            skip=skip,
            limit=limit,
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list supervisor orders") from e

    return OrderListResponse(**result)


@router.get(
    "/inventory",
    response_model=OrderListResponse,
    summary="List inventory orders",
    description="Artisans and suppliers see their own; oversight roles see all",
)
async def list_inventory_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> OrderListResponse:
    try:
        result = await service.list_inventory_orders(
            actor, order_status=status_filter, skip=skip, limit=limit
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list inventory orders") from e

    return OrderListResponse(**result)


@router.get(
    "/drivers/list",
    response_model=list[PartySummary],
    summary="List active drivers",
)
async def list_drivers(
    actor: CurrentActor,
    service: OrderServiceDep,
) -> list[PartySummary]:
    try:
        users = await service.list_users_with_role(UserRole.DRIVER)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list drivers") from e

    return [PartySummary(**user) for user in users]


@router.get(
    "/suppliers/list",
    response_model=list[PartySummary],
    summary="List active suppliers",
)
async def list_suppliers(
    actor: CurrentActor,
    service: OrderServiceDep,
) -> list[PartySummary]:
    try:
        users = await service.list_users_with_role(UserRole.SUPPLIER)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list suppliers") from e

    return [PartySummary(**user) for user in users]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
async def get_order(
    order_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    """
    Get one order with its parties and product.

    Raises:
        HTTPException: 404 if order not found, 403 if the caller is unrelated
    """
    try:
        order = await service.get_order(order_id, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "retrieve order") from e

    return OrderResponse(**order)


@router.put(
    "/assign-driver/{order_id}",
    response_model=OrderResponse,
    summary="Assign delivery driver",
)
async def assign_driver(
    order_id: UUID,
    request: DriverAssignmentRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.assign_driver(order_id, request.driver_id, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "assign driver") from e

    return OrderResponse(**order)


@router.put(
    "/update-status/{order_id}",
    response_model=OrderResponse,
    summary="Update order status",
)
async def update_order_status(
    order_id: UUID,
    request: OrderStatusUpdate,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    """
    Move an order to a new status.

    Raises:
        HTTPException: 403 if the caller may not move this order, 409 if the
            status is unknown or not reachable
    """
    logger.info(
        "Updating order status",
        order_id=str(order_id),
        requested_status=request.status,
    )

    try:
        order = await service.transition_status(order_id, request.status, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "update order status") from e

    return OrderResponse(**order)


@router.put(
    "/update-payment-status/{order_id}",
    response_model=OrderResponse,
    summary="Update payment status",
)
async def update_payment_status(
    order_id: UUID,
    request: PaymentStatusUpdate,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.update_payment_status(
            order_id, request.payment_status, actor
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "update payment status") from e

    return OrderResponse(**order)


@router.put(
    "/mark-delivered/{order_id}",
    response_model=OrderResponse,
    summary="Supplier marks an inventory order delivered",
)
async def mark_delivered(
    order_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.mark_delivered(order_id, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "mark order delivered") from e

    return OrderResponse(**order)


@router.put(
    "/mark-received/{order_id}",
    response_model=OrderResponse,
    summary="Mark order received",
)
async def mark_received(
    order_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.mark_received(order_id, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "mark order received") from e

    return OrderResponse(**order)


@router.put(
    "/{order_id}/mark-complete",
    response_model=OrderResponse,
    summary="Supervisor marks an order completed",
)
async def mark_completed(
    order_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.mark_completed(order_id, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "mark order completed") from e

    return OrderResponse(**order)


@router.put(
    "/finance/{order_id}/approve",
    response_model=OrderResponse,
    summary="Finance approves an inventory order",
)
async def finance_approve(
    order_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.finance_approve(order_id, actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "approve order") from e

    return OrderResponse(**order)


@router.put(
    "/finance/{order_id}/reject",
    response_model=OrderResponse,
    summary="Finance rejects an inventory order",
)
async def finance_reject(
    order_id: UUID,
    actor: CurrentActor,
    service: OrderServiceDep,
    request: Optional[FinanceRejectRequest] = None,
) -> OrderResponse:
    reason = request.reason if request else None

    try:
        order = await service.finance_reject(order_id, actor, reason=reason)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "reject order") from e

    return OrderResponse(**order)


@router.post(
    "/finance/{order_id}/payment",
    response_model=OrderResponse,
    summary="Finance pays out an inventory order",
)
async def finance_process_payment(
    order_id: UUID,
    request: FinancePaymentRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.finance_process_payment(
            order_id,
            actor,
            amount=request.amount,
            payment_method=request.payment_method,
            notes=request.notes,
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "process payment") from e

    return OrderResponse(**order)


@router.put(
    "/{order_id}/payment",
    response_model=OrderResponse,
    summary="Supplier submits payment due",
)
async def submit_supplier_payment(
    order_id: UUID,
    request: SupplierPaymentRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = await service.submit_supplier_payment(
            order_id,
            actor,
            amount=request.amount,
            notes=request.notes,
            payment_status=request.payment_status,
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "submit supplier payment") from e

    return OrderResponse(**order)
