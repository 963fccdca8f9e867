"""
Demo Data Seeder

Creates the marketplace schema and loads a small, fixed dataset: two shops,
two buyers, a multi-seller order, a cancelled order and a few reviews.

Usage:
    python -m marketplace.database.seed
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Dict

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from marketplace.config import get_settings
from marketplace.config.logging import configure_logging
from marketplace.database.connection import (
    close_database,
    get_engine,
    get_session_factory,
    init_database,
)
from marketplace.database.models import (
    Base,
    Buyer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Review,
    Seller,
    User,
    UserRole,
)

logger = structlog.get_logger(__name__)


async def create_schema(engine: AsyncEngine) -> None:
    """Create all marketplace tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema created", tables=sorted(Base.metadata.tables))


async def seed_demo_data(session_factory: async_sessionmaker[AsyncSession]) -> Dict[str, int]:
    """
    Insert the demo dataset.

    Returns:
        Row counts per table
    """
    alice = User(name="Alice Nguyen", username="alice", email="alice@example.com", role=UserRole.BUYER.value)
    bao = User(name="Bao Tran", username="bao", email="bao@example.com", role=UserRole.BUYER.value)
    farm_owner = User(name="Chi Le", username="greenfarm", email="chi@example.com", role=UserRole.SELLER.value)
    baker = User(name="Duc Pham", username="bakery", email="duc@example.com", role=UserRole.SELLER.value)

    buyer_alice = Buyer(user=alice)
    buyer_bao = Buyer(user=bao)
    farm = Seller(
        user=farm_owner,
        shop_name="Green Farm",
        shop_address="12 Market Street",
        description="Vegetables and herbs picked the same morning",
    )
    bakery = Seller(user=baker, shop_name="Corner Bakery", description="Sourdough and pastries")

    tomatoes = Product(seller=farm, name="Cherry Tomatoes 500g", category="vegetables", price=Decimal("2.50"), stock=40)
    basil = Product(seller=farm, name="Fresh Basil", category="herbs", price=Decimal("1.20"), stock=25)
    sourdough = Product(seller=bakery, name="Sourdough Loaf", category="bakery", price=Decimal("4.00"), stock=12)

    async with session_factory() as session:
        async with session.begin():
            session.add_all([buyer_alice, buyer_bao, farm, bakery, tomatoes, basil, sourdough])
            await session.flush()

            orders = [
                Order(
                    buyer=buyer_alice,
                    status=OrderStatus.PAID.value,
                    total_price=Decimal("9.00"),
                    created_at=datetime(2025, 3, 1, 9, 30),
                    paid_at=datetime(2025, 3, 1, 9, 35),
                    items=[
                        OrderItem(product_id=tomatoes.id, quantity=2, price=Decimal("2.50")),
                        OrderItem(product_id=sourdough.id, quantity=1, price=Decimal("4.00")),
                    ],
                ),
                Order(
                    buyer=buyer_alice,
                    status=OrderStatus.CANCELLED.value,
                    total_price=Decimal("3.60"),
                    created_at=datetime(2025, 3, 2, 18, 0),
                    items=[OrderItem(product_id=basil.id, quantity=3, price=Decimal("1.20"))],
                ),
                Order(
                    buyer=buyer_bao,
                    status=OrderStatus.PENDING.value,
                    total_price=Decimal("2.50"),
                    created_at=datetime(2025, 3, 3, 8, 15),
                    items=[OrderItem(product_id=tomatoes.id, quantity=1, price=Decimal("2.50"))],
                ),
                Order(
                    buyer=buyer_bao,
                    status=OrderStatus.COMPLETED.value,
                    total_price=Decimal("8.00"),
                    created_at=datetime(2025, 3, 4, 12, 0),
                    items=[OrderItem(product_id=sourdough.id, quantity=2, price=Decimal("4.00"))],
                ),
            ]
            session.add_all(orders)
            session.add_all([
                Review(
                    buyer=buyer_alice,
                    product_id=tomatoes.id,
                    rating=5,
                    comment="Sweet and firm",
                    created_at=datetime(2025, 3, 5, 10, 0),
                ),
                Review(
                    buyer=buyer_alice,
                    product_id=sourdough.id,
                    rating=4,
                    comment=None,
                    created_at=datetime(2025, 3, 6, 10, 0),
                ),
            ])
            counts = {
                "users": 4,
                "buyers": 2,
                "sellers": 2,
                "products": 3,
                "orders": len(orders),
                "order_items": sum(len(o.items) for o in orders),
                "reviews": 2,
            }

    logger.info("Demo data seeded", **counts)
    return counts


async def main() -> None:
    settings = get_settings()
    configure_logging(settings)

    await init_database(settings)
    try:
        await create_schema(get_engine())
        await seed_demo_data(get_session_factory())
    finally:
        await close_database()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
