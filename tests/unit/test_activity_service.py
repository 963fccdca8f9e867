"""
Unit Tests - User Activity Service
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from marketplace.activity import service as service_module
from marketplace.activity.exceptions import DependencyFailure, InvalidArgument, NotFound
from marketplace.activity.service import UserActivityService
from marketplace.config import ActivitySettings
from marketplace.database.connection import create_session_factory
from marketplace.database.models import Order, OrderItem, Product
from marketplace.database.store import EntityStore

MISSING_PRODUCT_ID = 999


@pytest.fixture
def integrity_warnings(monkeypatch):
    """Collect DataIntegrityWarnings reported by the service"""
    reported = []
    monkeypatch.setattr(service_module, "_report", reported.append)
    return reported


class TestUserReviews:
    """Tests for get_user_reviews"""

    async def test_reviews_oldest_first(self, service, marketplace_data):
        """Test reviews come back in creation order with products inlined"""
        result = await service.get_user_reviews(marketplace_data["ana"])

        assert result.user_id == marketplace_data["ana"]
        assert [r.id for r in result.reviews] == [
            marketplace_data["r1"],
            marketplace_data["r2"],
            marketplace_data["r3"],
        ]

        first = result.reviews[0]
        assert first.product_id == marketplace_data["apples"]
        assert first.product_name == "Apples"
        assert first.rating == 5
        assert first.comment == "Crisp"
        assert first.created_at == datetime(2025, 1, 6, 10, 0)

        assert result.reviews[1].comment is None

    async def test_missing_product_placeholder(self, service, marketplace_data, integrity_warnings):
        """Test a review of a deleted product renders with a placeholder"""
        result = await service.get_user_reviews(marketplace_data["ana"])

        orphan = result.reviews[2]
        assert orphan.product_id == MISSING_PRODUCT_ID
        assert orphan.product_name == "Unknown Product"

        assert len(integrity_warnings) == 1
        warning = integrity_warnings[0]
        assert warning.details["entity"] == "review"
        assert warning.details["entity_id"] == marketplace_data["r3"]
        assert warning.details["missing"] == "product"
        assert warning.details["missing_id"] == MISSING_PRODUCT_ID

    async def test_buyer_without_reviews(self, service, marketplace_data):
        """Test a buyer with no reviews gets an empty list"""
        result = await service.get_user_reviews(marketplace_data["dee"])

        assert result.user_id == marketplace_data["dee"]
        assert result.reviews == []

    async def test_user_without_buyer_profile(self, service, marketplace_data):
        """Test a seller-only user has no reviews view"""
        with pytest.raises(NotFound):
            await service.get_user_reviews(marketplace_data["ben"])

    async def test_unknown_user(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.get_user_reviews(9999)

    async def test_reviews_idempotent(self, service, marketplace_data):
        """Test repeated calls without writes return identical results"""
        first = await service.get_user_reviews(marketplace_data["ana"])
        second = await service.get_user_reviews(marketplace_data["ana"])

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


class TestBuyerOrders:
    """Tests for get_buyer_orders and get_user_orders"""

    async def test_orders_newest_first(self, service, marketplace_data):
        """Test orders come back newest first with items inlined"""
        result = await service.get_buyer_orders(marketplace_data["buyer_ana"])

        assert result.buyer_id == marketplace_data["buyer_ana"]
        assert [o.id for o in result.orders] == [
            marketplace_data["o5"],
            marketplace_data["o4"],
            marketplace_data["o3"],
            marketplace_data["o2"],
            marketplace_data["o1"],
        ]

    async def test_order_items_inlined(self, service, marketplace_data):
        """Test an order shows every item, whichever seller owns it"""
        result = await service.get_buyer_orders(marketplace_data["buyer_ana"])
        orders = {o.id: o for o in result.orders}

        mixed = orders[marketplace_data["o3"]]
        assert mixed.status == "pending"
        assert mixed.total_price == 14.0
        assert mixed.item_count == 2
        assert [(i.product_name, i.quantity, i.price) for i in mixed.items] == [
            ("Pears", 1, 4.0),
            ("Bread", 2, 5.0),
        ]

    async def test_order_without_items(self, service, marketplace_data):
        """Test an order with no items has an empty item list"""
        result = await service.get_buyer_orders(marketplace_data["buyer_ana"])
        empty = next(o for o in result.orders if o.id == marketplace_data["o4"])

        assert empty.items == []
        assert empty.item_count == 0

    async def test_item_with_missing_product(self, service, marketplace_data, integrity_warnings):
        """Test an item whose product is gone keeps its row with a placeholder"""
        result = await service.get_buyer_orders(marketplace_data["buyer_ana"])
        order = next(o for o in result.orders if o.id == marketplace_data["o5"])

        names = {i.product_id: i.product_name for i in order.items}
        assert names[marketplace_data["bread"]] == "Bread"
        assert names[MISSING_PRODUCT_ID] == "Unknown Product"
        assert [w.details["entity"] for w in integrity_warnings] == ["order_item"]

    async def test_buyer_without_orders(self, service, marketplace_data):
        result = await service.get_buyer_orders(marketplace_data["buyer_dee"])

        assert result.orders == []

    async def test_unknown_buyer(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.get_buyer_orders(9999)

    async def test_user_orders(self, service, marketplace_data):
        """Test orders resolved through the user id match the buyer view"""
        by_user = await service.get_user_orders(marketplace_data["ana"])
        by_buyer = await service.get_buyer_orders(marketplace_data["buyer_ana"])

        assert by_user.user_id == marketplace_data["ana"]
        assert by_user.buyer_id == marketplace_data["buyer_ana"]
        assert by_user.orders == by_buyer.orders

    async def test_user_orders_without_buyer_profile(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.get_user_orders(marketplace_data["fay"])

    async def test_buyer_orders_idempotent(self, service, marketplace_data):
        first = await service.get_buyer_orders(marketplace_data["buyer_ana"])
        second = await service.get_buyer_orders(marketplace_data["buyer_ana"])

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


class TestSellerOrders:
    """Tests for get_seller_orders and get_user_sales"""

    async def test_seller_scoped_items(self, service, marketplace_data):
        """Test a multi-seller order shows only each seller's own items"""
        seller_a = await service.get_seller_orders(marketplace_data["seller_a"])
        seller_b = await service.get_seller_orders(marketplace_data["seller_b"])

        shared_a = next(o for o in seller_a.orders if o.order_id == marketplace_data["o3"])
        shared_b = next(o for o in seller_b.orders if o.order_id == marketplace_data["o3"])

        assert [(i.product_id, i.quantity) for i in shared_a.items] == [(marketplace_data["pears"], 1)]
        assert [(i.product_id, i.quantity) for i in shared_b.items] == [(marketplace_data["bread"], 2)]

        assert shared_a.total_price == 14.0
        assert shared_b.total_price == 14.0
        assert shared_a.seller_total == 4.0
        assert shared_b.seller_total == 10.0
        assert shared_b.items[0].subtotal == 10.0

    async def test_seller_orders_newest_first(self, service, marketplace_data):
        result = await service.get_seller_orders(marketplace_data["seller_a"])

        assert result.seller_id == marketplace_data["seller_a"]
        assert result.total == 3
        assert result.has_more is False
        assert [o.order_id for o in result.orders] == [
            marketplace_data["o3"],
            marketplace_data["o2"],
            marketplace_data["o1"],
        ]
        assert all(o.buyer_name == "Ana" for o in result.orders)

    async def test_unresolvable_items_excluded(self, service, marketplace_data):
        """Test items whose product is missing belong to no seller"""
        result = await service.get_seller_orders(marketplace_data["seller_b"])

        assert [o.order_id for o in result.orders] == [marketplace_data["o5"], marketplace_data["o3"]]
        latest = result.orders[0]
        assert [i.product_id for i in latest.items] == [marketplace_data["bread"]]
        assert latest.seller_total == 5.0

    async def test_seller_without_orders(self, service, marketplace_data):
        result = await service.get_seller_orders(marketplace_data["seller_c"])

        assert result.orders == []
        assert result.total == 0
        assert result.has_more is False

    async def test_status_filter(self, service, marketplace_data):
        """Test the status filter is case-insensitive"""
        result = await service.get_seller_orders(marketplace_data["seller_a"], status="PAID")

        assert [o.order_id for o in result.orders] == [marketplace_data["o1"]]
        assert result.total == 1

    async def test_unknown_status_rejected(self, service, marketplace_data):
        with pytest.raises(InvalidArgument):
            await service.get_seller_orders(marketplace_data["seller_a"], status="lost")

    async def test_pagination(self, service, marketplace_data):
        """Test limit/offset page over whole orders"""
        first = await service.get_seller_orders(marketplace_data["seller_a"], limit=2)
        second = await service.get_seller_orders(marketplace_data["seller_a"], limit=2, offset=2)

        assert [o.order_id for o in first.orders] == [marketplace_data["o3"], marketplace_data["o2"]]
        assert first.has_more is True
        assert first.total == 3

        assert [o.order_id for o in second.orders] == [marketplace_data["o1"]]
        assert second.has_more is False

    async def test_offset_past_end(self, service, marketplace_data):
        result = await service.get_seller_orders(marketplace_data["seller_a"], offset=10)

        assert result.orders == []
        assert result.total == 3

    async def test_page_size_limit(self, service, marketplace_data):
        with pytest.raises(InvalidArgument):
            await service.get_seller_orders(marketplace_data["seller_a"], limit=1000)

    async def test_unknown_seller(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.get_seller_orders(9999)

    async def test_missing_buyer_placeholder(self, service, session_factory, marketplace_data, integrity_warnings):
        """Test an order whose buyer is gone shows a placeholder buyer name"""
        async with session_factory() as session:
            async with session.begin():
                product = Product(
                    seller_id=marketplace_data["seller_c"],
                    name="Jam",
                    category="pantry",
                    price=Decimal("3.00"),
                )
                session.add(product)
                await session.flush()
                session.add(Order(
                    buyer_id=4242,
                    status="paid",
                    total_price=Decimal("3.00"),
                    created_at=datetime(2025, 2, 1, 10, 0),
                    items=[OrderItem(product_id=product.id, quantity=1, price=Decimal("3.00"))],
                ))

        result = await service.get_seller_orders(marketplace_data["seller_c"])

        assert result.orders[0].buyer_name == "Unknown Buyer"
        assert integrity_warnings[0].details["missing"] == "buyer"
        assert integrity_warnings[0].details["missing_id"] == 4242

    async def test_user_sales(self, service, marketplace_data):
        """Test seller orders resolved through the user id"""
        result = await service.get_user_sales(marketplace_data["ben"], limit=1)

        assert result.user_id == marketplace_data["ben"]
        assert result.seller_id == marketplace_data["seller_a"]
        assert result.total == 3
        assert result.has_more is True
        assert [o.order_id for o in result.orders] == [marketplace_data["o3"]]

    async def test_user_sales_without_seller_profile(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.get_user_sales(marketplace_data["ana"])

    @pytest.mark.parametrize("seller", ["seller_a", "seller_b", "seller_c"])
    async def test_seller_orders_idempotent(self, service, marketplace_data, seller):
        first = await service.get_seller_orders(marketplace_data[seller])
        second = await service.get_seller_orders(marketplace_data[seller])

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


class TestSellerStats:
    """Tests for compute_seller_stats"""

    async def test_revenue_excludes_cancelled(self, service, marketplace_data):
        """Test paid 2x10 counts, cancelled 3x10 and pending do not"""
        stats = await service.compute_seller_stats(marketplace_data["seller_a"])

        assert stats.seller_id == marketplace_data["seller_a"]
        assert stats.total_orders == 3
        assert stats.total_revenue == 20.0
        assert stats.total_products == 2
        assert stats.pending_orders == 1
        assert stats.completed_orders == 0
        assert stats.cancelled_orders == 1
        assert stats.average_order_value == 20.0
        assert stats.orders_by_status == {"cancelled": 1, "paid": 1, "pending": 1}

    async def test_shared_order_split_by_seller(self, service, marketplace_data):
        """Test the other seller in a shared order only gets its own lines"""
        stats = await service.compute_seller_stats(marketplace_data["seller_b"])

        assert stats.total_orders == 2
        assert stats.total_revenue == 5.0
        assert stats.total_products == 1
        assert stats.pending_orders == 1
        assert stats.completed_orders == 1

    async def test_new_seller_has_zero_stats(self, service, marketplace_data):
        """Test a seller with no products or orders is not an error"""
        stats = await service.compute_seller_stats(marketplace_data["seller_c"])

        assert stats.total_orders == 0
        assert stats.total_revenue == 0.0
        assert stats.total_products == 0
        assert stats.pending_orders == 0
        assert stats.average_order_value == 0.0
        assert stats.orders_by_status == {}

    async def test_unknown_seller(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.compute_seller_stats(9999)

    async def test_stats_idempotent(self, service, marketplace_data):
        """Test repeated calls without writes return identical results"""
        first = await service.compute_seller_stats(marketplace_data["seller_a"])
        second = await service.compute_seller_stats(marketplace_data["seller_a"])

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)

    async def test_stats_follow_new_orders(self, service, session_factory, marketplace_data):
        """Test stats are recomputed from current data on every call"""
        before = await service.compute_seller_stats(marketplace_data["seller_a"])

        async with session_factory() as session:
            async with session.begin():
                session.add(Order(
                    buyer_id=marketplace_data["buyer_dee"],
                    status="shipped",
                    total_price=Decimal("8.00"),
                    created_at=datetime(2025, 2, 1, 10, 0),
                    items=[OrderItem(product_id=marketplace_data["pears"], quantity=2, price=Decimal("4.00"))],
                ))

        after = await service.compute_seller_stats(marketplace_data["seller_a"])

        assert after.total_orders == before.total_orders + 1
        assert after.total_revenue == 28.0
        assert after.pending_orders == before.pending_orders

    async def test_paid_order_not_pending(self, service, marketplace_data):
        """Test a paid order counts as revenue but not as pending"""
        stats = await service.compute_seller_stats(marketplace_data["seller_a"])

        assert stats.orders_by_status["paid"] == 1
        assert stats.pending_orders == stats.orders_by_status["pending"]

    async def test_custom_pending_policy(self, store, marketplace_data):
        """Test pending statuses come from settings"""
        settings = ActivitySettings(pending_statuses=["pending", "paid", "shipped"])
        custom = UserActivityService(store, settings=settings)

        stats = await custom.compute_seller_stats(marketplace_data["seller_a"])

        assert stats.pending_orders == 2

    async def test_custom_revenue_policy(self, store, marketplace_data):
        """Test revenue statuses come from settings"""
        settings = ActivitySettings(revenue_statuses=["pending"])
        custom = UserActivityService(store, settings=settings)

        stats = await custom.compute_seller_stats(marketplace_data["seller_a"])

        assert stats.total_revenue == 4.0


class TestUserProfile:
    """Tests for get_user_profile"""

    async def test_buyer_profile(self, service, marketplace_data):
        profile = await service.get_user_profile(marketplace_data["ana"])

        assert profile.id == marketplace_data["ana"]
        assert profile.name == "Ana"
        assert profile.username == "ana"
        assert profile.email == "ana@example.com"
        assert profile.role == "buyer"
        assert profile.buyer.id == marketplace_data["buyer_ana"]
        assert profile.buyer.total_orders == 5
        assert profile.buyer.total_reviews == 3
        assert profile.seller is None

    async def test_seller_profile(self, service, marketplace_data):
        """Test the seller summary embeds the same stats as the stats view"""
        profile = await service.get_user_profile(marketplace_data["ben"])
        stats = await service.compute_seller_stats(marketplace_data["seller_a"])

        assert profile.buyer is None
        assert profile.seller.id == marketplace_data["seller_a"]
        assert profile.seller.shop_name == "Ben's Orchard"
        assert profile.seller.description == "Fruit"
        assert profile.seller.stats == stats

    async def test_user_without_profiles(self, service, marketplace_data):
        """Test a plain user still has a profile"""
        profile = await service.get_user_profile(marketplace_data["fay"])

        assert profile.avatar == "fay.png"
        assert profile.buyer is None
        assert profile.seller is None

    async def test_buyer_without_activity(self, service, marketplace_data):
        profile = await service.get_user_profile(marketplace_data["dee"])

        assert profile.buyer.total_orders == 0
        assert profile.buyer.total_reviews == 0

    async def test_unknown_user(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.get_user_profile(9999)

    async def test_out_of_range_id(self, service, marketplace_data):
        """Test an id past the INTEGER column range is rejected, not sent to the store"""
        with pytest.raises(InvalidArgument):
            await service.get_user_profile(10 ** 30)
        with pytest.raises(InvalidArgument):
            await service.compute_seller_stats(2 ** 31)

    async def test_profile_idempotent(self, service, marketplace_data):
        first = await service.get_user_profile(marketplace_data["ben"])
        second = await service.get_user_profile(marketplace_data["ben"])

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


class TestOwnership:
    """Tests for owner lookups"""

    async def test_owner_of_buyer(self, service, marketplace_data):
        assert await service.owner_of_buyer(marketplace_data["buyer_ana"]) == marketplace_data["ana"]

    async def test_owner_of_seller(self, service, marketplace_data):
        assert await service.owner_of_seller(marketplace_data["seller_b"]) == marketplace_data["cam"]

    async def test_unknown_subjects(self, service, marketplace_data):
        with pytest.raises(NotFound):
            await service.owner_of_buyer(9999)
        with pytest.raises(NotFound):
            await service.owner_of_seller(9999)


class TestInvalidArguments:
    """Tests that malformed ids never reach the store"""

    @pytest.fixture
    def mock_store(self):
        return AsyncMock(spec=EntityStore)

    @pytest.mark.parametrize("bad_id", [0, -1, True, "7", 2 ** 31, 10 ** 30])
    async def test_rejected_before_store(self, mock_store, bad_id):
        service = UserActivityService(mock_store)

        calls = [
            service.get_user_reviews,
            service.get_buyer_orders,
            service.get_user_orders,
            service.get_seller_orders,
            service.get_user_sales,
            service.get_user_profile,
            service.compute_seller_stats,
        ]
        for call in calls:
            with pytest.raises(InvalidArgument):
                await call(bad_id)

        assert mock_store.mock_calls == []

    async def test_bad_page_rejected_before_store(self, mock_store):
        service = UserActivityService(mock_store)

        with pytest.raises(InvalidArgument):
            await service.get_seller_orders(1, limit=0)
        with pytest.raises(InvalidArgument):
            await service.get_user_sales(1, offset=-5)

        assert mock_store.mock_calls == []


class TestDependencyFailure:
    """Tests for store failures"""

    @pytest.fixture
    async def broken_service(self, tmp_path):
        # No tables: every query fails inside the driver
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        yield UserActivityService(EntityStore(create_session_factory(engine)))
        await engine.dispose()

    async def test_store_error_wrapped(self, broken_service):
        with pytest.raises(DependencyFailure) as exc_info:
            await broken_service.get_user_profile(1)

        assert exc_info.value.__cause__ is not None

    async def test_stats_store_error_wrapped(self, broken_service):
        with pytest.raises(DependencyFailure):
            await broken_service.compute_seller_stats(1)

    async def test_store_failure_from_mock(self):
        """Test a failure raised by the store propagates unchanged"""
        store = AsyncMock(spec=EntityStore)
        store.get_seller.side_effect = DependencyFailure("Entity store query failed: get_seller")
        service = UserActivityService(store)

        with pytest.raises(DependencyFailure):
            await service.compute_seller_stats(1)
