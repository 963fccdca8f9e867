"""
Test Suite Configuration
"""
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Dict

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from marketplace.activity.service import UserActivityService
from marketplace.config import ActivitySettings, Settings
from marketplace.database.connection import create_session_factory
from marketplace.database.models import (
    Base,
    Buyer,
    Order,
    OrderItem,
    Product,
    Review,
    Seller,
    User,
)
from marketplace.database.store import EntityStore

MISSING_PRODUCT_ID = 999


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite engine so concurrent sessions see the same data"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'activity.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest.fixture
def store(session_factory) -> EntityStore:
    return EntityStore(session_factory)


@pytest.fixture
def service(store) -> UserActivityService:
    return UserActivityService(store, settings=ActivitySettings())


@pytest.fixture
async def marketplace_data(session_factory) -> Dict[str, int]:
    """
    Insert the shared fixture graph and return its ids by name.

    - ana: buyer with five orders and three reviews
    - dee: buyer with no activity
    - ben / cam: sellers A and B; order o3 holds items from both
    - eli: seller with no products and no orders
    - fay: user with no buyer or seller profile
    - o5 and review r3 reference a product that does not exist
    """
    ana = User(name="Ana", username="ana", email="ana@example.com", role="buyer")
    ben = User(name="Ben", username="ben", email="ben@example.com", role="seller")
    cam = User(name="Cam", username="cam", email="cam@example.com", role="seller")
    dee = User(name="Dee", username="dee", email="dee@example.com", role="buyer")
    eli = User(name="Eli", username="eli", email="eli@example.com", role="seller")
    fay = User(name="Fay", username="fay", email="fay@example.com", role="buyer", avatar="fay.png")

    buyer_ana = Buyer(user=ana)
    buyer_dee = Buyer(user=dee)
    seller_a = Seller(user=ben, shop_name="Ben's Orchard", description="Fruit")
    seller_b = Seller(user=cam, shop_name="Cam's Bakery")
    seller_c = Seller(user=eli, shop_name="Eli's Pantry")

    apples = Product(seller=seller_a, name="Apples", category="fruit", price=Decimal("10.00"))
    pears = Product(seller=seller_a, name="Pears", category="fruit", price=Decimal("4.00"))
    bread = Product(seller=seller_b, name="Bread", category="bakery", price=Decimal("5.00"))

    async with session_factory() as session:
        async with session.begin():
            session.add_all([buyer_ana, buyer_dee, seller_a, seller_b, seller_c, fay, apples, pears, bread])
            await session.flush()

            o1 = Order(
                buyer=buyer_ana, status="paid", total_price=Decimal("20.00"),
                created_at=datetime(2025, 1, 1, 10, 0),
                items=[OrderItem(product_id=apples.id, quantity=2, price=Decimal("10.00"))],
            )
            o2 = Order(
                buyer=buyer_ana, status="cancelled", total_price=Decimal("30.00"),
                created_at=datetime(2025, 1, 2, 10, 0),
                items=[OrderItem(product_id=apples.id, quantity=3, price=Decimal("10.00"))],
            )
            o3 = Order(
                buyer=buyer_ana, status="pending", total_price=Decimal("14.00"),
                created_at=datetime(2025, 1, 3, 10, 0),
                items=[
                    OrderItem(product_id=pears.id, quantity=1, price=Decimal("4.00")),
                    OrderItem(product_id=bread.id, quantity=2, price=Decimal("5.00")),
                ],
            )
            o4 = Order(
                buyer=buyer_ana, status="paid", total_price=Decimal("0.00"),
                created_at=datetime(2025, 1, 4, 10, 0),
                items=[],
            )
            o5 = Order(
                buyer=buyer_ana, status="completed", total_price=Decimal("12.00"),
                created_at=datetime(2025, 1, 5, 10, 0),
                items=[
                    OrderItem(product_id=bread.id, quantity=1, price=Decimal("5.00")),
                    OrderItem(product_id=MISSING_PRODUCT_ID, quantity=1, price=Decimal("7.00")),
                ],
            )
            r1 = Review(
                buyer=buyer_ana, product_id=apples.id, rating=5, comment="Crisp",
                created_at=datetime(2025, 1, 6, 10, 0),
            )
            r2 = Review(
                buyer=buyer_ana, product_id=bread.id, rating=3, comment=None,
                created_at=datetime(2025, 1, 7, 10, 0),
            )
            r3 = Review(
                buyer=buyer_ana, product_id=MISSING_PRODUCT_ID, rating=4, comment="Gone now",
                created_at=datetime(2025, 1, 8, 10, 0),
            )
            session.add_all([o1, o2, o3, o4, o5, r1, r2, r3])
            await session.flush()

            return {
                "ana": ana.id,
                "ben": ben.id,
                "cam": cam.id,
                "dee": dee.id,
                "eli": eli.id,
                "fay": fay.id,
                "buyer_ana": buyer_ana.id,
                "buyer_dee": buyer_dee.id,
                "seller_a": seller_a.id,
                "seller_b": seller_b.id,
                "seller_c": seller_c.id,
                "apples": apples.id,
                "pears": pears.id,
                "bread": bread.id,
                "o1": o1.id,
                "o2": o2.id,
                "o3": o3.id,
                "o4": o4.id,
                "o5": o5.id,
                "r1": r1.id,
                "r2": r2.id,
                "r3": r3.id,
            }
