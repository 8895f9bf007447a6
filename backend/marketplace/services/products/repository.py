"""
Read-only product catalog access.
"""

import uuid
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database.models.product import Product


class ProductRepository:
    """Product lookups for order display enrichment."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_products_by_ids(
        self, product_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, Product]:
        ids = set(product_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(Product).where(Product.id.in_(ids))
        )
        return {product.id: product for product in result.scalars().all()}

    async def get_product_by_id(self, product_id: uuid.UUID) -> Optional[Product]:
        return await self.session.get(Product, product_id)
