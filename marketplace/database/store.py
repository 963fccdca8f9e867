"""
Entity Store

Read-only query interface over the marketplace tables. Every call opens its
own session from the shared session factory, so independent reads can run
concurrently. Driver and SQL errors surface as DependencyFailure.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional, Sequence

import structlog
from sqlalchemy import Row, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import contains_eager, joinedload, selectinload

from marketplace.activity.exceptions import DependencyFailure
from marketplace.database.models import (
    Buyer,
    Order,
    OrderItem,
    Product,
    Review,
    Seller,
    User,
)

logger = structlog.get_logger(__name__)


class EntityStore:
    """Query-by-foreign-key access to users, buyers, sellers, orders and reviews"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Entity store query failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DependencyFailure(f"Entity store query failed: {operation}") from e

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._session("get_user") as db:
            return await db.get(User, user_id)

    async def get_buyer(self, buyer_id: int) -> Optional[Buyer]:
        async with self._session("get_buyer") as db:
            return await db.get(Buyer, buyer_id)

    async def get_buyer_for_user(self, user_id: int) -> Optional[Buyer]:
        async with self._session("get_buyer_for_user") as db:
            result = await db.execute(select(Buyer).where(Buyer.user_id == user_id))
            return result.scalar_one_or_none()

    async def get_seller(self, seller_id: int) -> Optional[Seller]:
        async with self._session("get_seller") as db:
            return await db.get(Seller, seller_id)

    async def get_seller_for_user(self, user_id: int) -> Optional[Seller]:
        async with self._session("get_seller_for_user") as db:
            result = await db.execute(select(Seller).where(Seller.user_id == user_id))
            return result.scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Buyer activity
    # -------------------------------------------------------------------------

    async def list_buyer_reviews(self, buyer_id: int) -> List[Review]:
        """Reviews by a buyer, oldest first, with the product loaded."""
        async with self._session("list_buyer_reviews") as db:
            result = await db.execute(
                select(Review)
                .options(joinedload(Review.product))
                .where(Review.buyer_id == buyer_id)
                .order_by(Review.created_at.asc(), Review.id.asc())
            )
            return list(result.scalars().all())

    async def list_buyer_orders(self, buyer_id: int) -> List[Order]:
        """Orders by a buyer, newest first, with items and products loaded."""
        async with self._session("list_buyer_orders") as db:
            result = await db.execute(
                select(Order)
                .options(selectinload(Order.items).joinedload(OrderItem.product))
                .where(Order.buyer_id == buyer_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            return list(result.scalars().all())

    async def count_buyer_orders(self, buyer_id: int) -> int:
        async with self._session("count_buyer_orders") as db:
            result = await db.execute(
                select(func.count(Order.id)).where(Order.buyer_id == buyer_id)
            )
            return result.scalar() or 0

    async def count_buyer_reviews(self, buyer_id: int) -> int:
        async with self._session("count_buyer_reviews") as db:
            result = await db.execute(
                select(func.count(Review.id)).where(Review.buyer_id == buyer_id)
            )
            return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Seller activity
    # -------------------------------------------------------------------------

    async def list_seller_order_items(
        self,
        seller_id: int,
        status: Optional[str] = None,
    ) -> List[OrderItem]:
        """
        Order items whose product belongs to the seller.

        Each item carries its order, the order's buyer and the buyer's user.
        Rows come newest order first, items in insertion order.
        """
        query = (
            select(OrderItem)
            .join(OrderItem.product)
            .join(OrderItem.order)
            .options(
                contains_eager(OrderItem.product),
                contains_eager(OrderItem.order)
                .joinedload(Order.buyer)
                .joinedload(Buyer.user),
            )
            .where(Product.seller_id == seller_id)
        )
        if status:
            query = query.where(Order.status == status)
        query = query.order_by(Order.created_at.desc(), Order.id.desc(), OrderItem.id.asc())

        async with self._session("list_seller_order_items") as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def list_seller_sale_lines(self, seller_id: int) -> Sequence[Row]:
        """(order_id, status, quantity, price) for every seller-owned order item."""
        async with self._session("list_seller_sale_lines") as db:
            result = await db.execute(
                select(Order.id, Order.status, OrderItem.quantity, OrderItem.price)
                .select_from(OrderItem)
                .join(Product, Product.id == OrderItem.product_id)
                .join(Order, Order.id == OrderItem.order_id)
                .where(Product.seller_id == seller_id)
                .order_by(Order.id, OrderItem.id)
            )
            return result.all()

    async def count_seller_products(self, seller_id: int) -> int:
        async with self._session("count_seller_products") as db:
            result = await db.execute(
                select(func.count(Product.id)).where(Product.seller_id == seller_id)
            )
            return result.scalar() or 0
