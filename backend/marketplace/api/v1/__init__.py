"""
Version 1 API routers.
"""

from fastapi import APIRouter

from marketplace.api.v1 import finance, orders

api_router = APIRouter()
api_router.include_router(orders.router)
api_router.include_router(finance.router)

__all__ = ["api_router"]
