"""
Finance dashboard endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Query

from marketplace.api.deps import CurrentActor, OrderServiceDep
from marketplace.api.errors import ORDER_ERRORS, to_http_exception
from marketplace.database.models.user import UserRole
from marketplace.schemas.orders import FinanceReport, OrderListResponse
from marketplace.services.orders.enums import OrderStatus, OrderType

router = APIRouter(prefix="/finance", tags=["finance"])

FINANCE_ROLES = (UserRole.FINANCE, UserRole.ADMIN)


@router.get(
    "/orders",
    response_model=OrderListResponse,
    summary="List orders for finance review",
)
async def list_finance_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
    order_type: Optional[OrderType] = Query(None),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> OrderListResponse:
    try:
        result = await service.list_all_orders(
            actor,
            allowed_roles=FINANCE_ROLES,
            order_type=order_type,
            order_status=status_filter,
            skip=skip,
            limit=limit,
        )
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "list finance orders") from e

    return OrderListResponse(**result)


@router.get(
    "/report",
    response_model=FinanceReport,
    summary="Order totals by payment status and order type",
)
async def finance_report(
    actor: CurrentActor,
    service: OrderServiceDep,
) -> FinanceReport:
    try:
        report = await service.finance_report(actor)
    except ORDER_ERRORS as e:
        raise to_http_exception(e, "build finance report") from e

    return FinanceReport(**report)
