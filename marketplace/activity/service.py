"""
User Activity Service

Aggregates users, buyers, sellers, orders, order items, products and reviews
into the activity views served by the endpoint layer, and computes seller
statistics on demand.

The service is built once at startup around an EntityStore and keeps no
mutable state, so one instance serves every request concurrently.
"""

import asyncio
from collections import OrderedDict
from decimal import Decimal
from typing import List, Optional

import structlog

from marketplace.activity.exceptions import (
    DataIntegrityWarning,
    InvalidArgument,
    NotFound,
)
from marketplace.activity.schemas import (
    BuyerOrder,
    BuyerOrders,
    BuyerSummary,
    OrderLine,
    ReviewEntry,
    SellerOrder,
    SellerOrderLine,
    SellerOrders,
    SellerStats,
    SellerSummary,
    UserOrders,
    UserProfile,
    UserReviews,
    UserSales,
)
from marketplace.activity.stats import (
    OrderStatusPolicy,
    SaleLine,
    line_total,
    summarize_sales,
    to_money,
)
from marketplace.activity.validation import ensure_page, ensure_subject_id
from marketplace.config.settings import ActivitySettings
from marketplace.database.models import Buyer, Order, OrderItem, OrderStatus, Review, Seller
from marketplace.database.store import EntityStore

logger = structlog.get_logger(__name__)


class UserActivityService:
    """
    Read views over a user's marketplace activity.

    Views:
    - reviews written by a user's buyer profile
    - orders placed by a buyer (by buyer id or user id)
    - seller-scoped orders (by seller id or user id)
    - user profile with buyer and seller summaries
    - seller statistics
    """

    def __init__(
        self,
        store: EntityStore,
        policy: Optional[OrderStatusPolicy] = None,
        settings: Optional[ActivitySettings] = None,
    ):
        self._store = store
        self._settings = settings or ActivitySettings()
        self._policy = policy or OrderStatusPolicy.from_settings(self._settings)

    @property
    def policy(self) -> OrderStatusPolicy:
        return self._policy

    # =========================================================================
    # REVIEWS
    # =========================================================================

    async def get_user_reviews(self, user_id: int) -> UserReviews:
        """Reviews authored by the buyer profile of `user_id`, oldest first."""
        user_id = ensure_subject_id(user_id, "userId")
        buyer = await self._require_buyer_for_user(user_id)

        reviews = await self._store.list_buyer_reviews(buyer.id)
        logger.debug("User reviews loaded", user_id=user_id, buyer_id=buyer.id, count=len(reviews))

        return UserReviews(
            user_id=user_id,
            reviews=[self._review_entry(review) for review in reviews],
        )

    # =========================================================================
    # BUYER ORDERS
    # =========================================================================

    async def get_buyer_orders(self, buyer_id: int) -> BuyerOrders:
        """Orders placed by a buyer, newest first, items inlined."""
        buyer_id = ensure_subject_id(buyer_id, "buyerId")
        buyer = await self._store.get_buyer(buyer_id)
        if buyer is None:
            raise NotFound("Buyer not found", details={"buyer_id": buyer_id})

        return BuyerOrders(buyer_id=buyer.id, orders=await self._buyer_orders(buyer))

    async def get_user_orders(self, user_id: int) -> UserOrders:
        """Buyer orders resolved through the user's buyer profile."""
        user_id = ensure_subject_id(user_id, "userId")
        buyer = await self._require_buyer_for_user(user_id)

        return UserOrders(
            user_id=user_id,
            buyer_id=buyer.id,
            orders=await self._buyer_orders(buyer),
        )

    async def _buyer_orders(self, buyer: Buyer) -> List[BuyerOrder]:
        orders = await self._store.list_buyer_orders(buyer.id)
        logger.debug("Buyer orders loaded", buyer_id=buyer.id, count=len(orders))
        return [self._buyer_order(order) for order in orders]

    # =========================================================================
    # SELLER ORDERS
    # =========================================================================

    async def get_seller_orders(
        self,
        seller_id: int,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> SellerOrders:
        """
        Orders containing the seller's products, one seller-scoped view each.

        An order holding items from several sellers shows only this seller's
        items. `limit`/`offset` page over whole orders, newest first.
        """
        seller_id = ensure_subject_id(seller_id, "sellerId")
        status = self._check_listing_args(status, limit, offset)
        seller = await self._store.get_seller(seller_id)
        if seller is None:
            raise NotFound("Seller not found", details={"seller_id": seller_id})

        orders = await self._seller_orders(seller, status)
        page, has_more = _paginate(orders, limit, offset)
        return SellerOrders(seller_id=seller.id, total=len(orders), has_more=has_more, orders=page)

    async def get_user_sales(
        self,
        user_id: int,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> UserSales:
        """Seller orders resolved through the user's seller profile."""
        user_id = ensure_subject_id(user_id, "userId")
        status = self._check_listing_args(status, limit, offset)
        seller = await self._store.get_seller_for_user(user_id)
        if seller is None:
            raise NotFound("Seller profile not found for this user", details={"user_id": user_id})

        orders = await self._seller_orders(seller, status)
        page, has_more = _paginate(orders, limit, offset)
        return UserSales(
            user_id=user_id,
            seller_id=seller.id,
            total=len(orders),
            has_more=has_more,
            orders=page,
        )

    async def _seller_orders(self, seller: Seller, status: Optional[str]) -> List[SellerOrder]:
        items = await self._store.list_seller_order_items(seller.id, status=status)

        # Items arrive grouped by order, newest order first
        grouped: "OrderedDict[int, List[OrderItem]]" = OrderedDict()
        for item in items:
            grouped.setdefault(item.order_id, []).append(item)

        orders = [self._seller_order(order_items) for order_items in grouped.values()]
        logger.debug(
            "Seller orders loaded",
            seller_id=seller.id,
            status=status,
            orders=len(orders),
            items=len(items),
        )
        return orders

    def _check_listing_args(self, status: Optional[str], limit: Optional[int], offset: int) -> Optional[str]:
        ensure_page(limit, offset, self._settings.max_page_size)
        if status is None:
            return None
        normalized = status.strip().lower()
        allowed = [s.value for s in OrderStatus]
        if normalized not in allowed:
            raise InvalidArgument(
                f"status must be one of: {allowed}",
                details={"field": "status", "value": status},
            )
        return normalized

    # =========================================================================
    # PROFILE AND STATS
    # =========================================================================

    async def get_user_profile(self, user_id: int) -> UserProfile:
        """User identity plus buyer and seller summaries where those profiles exist."""
        user_id = ensure_subject_id(user_id, "userId")
        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFound("User not found", details={"user_id": user_id})

        buyer_summary, seller_summary = await asyncio.gather(
            self._buyer_summary(user_id),
            self._seller_summary(user_id),
        )

        return UserProfile(
            id=user.id,
            name=user.name,
            username=user.username,
            email=user.email,
            role=user.role,
            avatar=user.avatar,
            buyer=buyer_summary,
            seller=seller_summary,
        )

    async def _buyer_summary(self, user_id: int) -> Optional[BuyerSummary]:
        buyer = await self._store.get_buyer_for_user(user_id)
        if buyer is None:
            return None

        total_orders, total_reviews = await asyncio.gather(
            self._store.count_buyer_orders(buyer.id),
            self._store.count_buyer_reviews(buyer.id),
        )
        return BuyerSummary(id=buyer.id, total_orders=total_orders, total_reviews=total_reviews)

    async def _seller_summary(self, user_id: int) -> Optional[SellerSummary]:
        seller = await self._store.get_seller_for_user(user_id)
        if seller is None:
            return None

        return SellerSummary(
            id=seller.id,
            shop_name=seller.shop_name,
            shop_address=seller.shop_address,
            shop_phone=seller.shop_phone,
            description=seller.description,
            stats=await self._seller_stats(seller.id),
        )

    async def compute_seller_stats(self, seller_id: int) -> SellerStats:
        """
        Seller performance recomputed from current data.

        A seller with no orders and no products gets all-zero stats; only an
        unknown seller id fails.
        """
        seller_id = ensure_subject_id(seller_id, "sellerId")
        seller = await self._store.get_seller(seller_id)
        if seller is None:
            raise NotFound("Seller not found", details={"seller_id": seller_id})

        return await self._seller_stats(seller.id)

    async def _seller_stats(self, seller_id: int) -> SellerStats:
        rows, product_count = await asyncio.gather(
            self._store.list_seller_sale_lines(seller_id),
            self._store.count_seller_products(seller_id),
        )
        lines = [
            SaleLine(
                order_id=order_id,
                status=status,
                quantity=quantity,
                unit_price=Decimal(str(price)),
            )
            for order_id, status, quantity, price in rows
        ]
        summary = summarize_sales(lines, product_count, self._policy)

        logger.debug(
            "Seller stats computed",
            seller_id=seller_id,
            total_orders=summary.total_orders,
            pending_orders=summary.pending_orders,
        )

        return SellerStats(
            seller_id=seller_id,
            total_orders=summary.total_orders,
            total_revenue=to_money(summary.total_revenue),
            total_products=summary.total_products,
            pending_orders=summary.pending_orders,
            completed_orders=summary.completed_orders,
            cancelled_orders=summary.cancelled_orders,
            average_order_value=to_money(summary.average_order_value),
            orders_by_status=summary.orders_by_status,
        )

    # =========================================================================
    # OWNERSHIP
    # =========================================================================

    async def owner_of_buyer(self, buyer_id: int) -> int:
        """User id owning a buyer profile."""
        buyer_id = ensure_subject_id(buyer_id, "buyerId")
        buyer = await self._store.get_buyer(buyer_id)
        if buyer is None:
            raise NotFound("Buyer not found", details={"buyer_id": buyer_id})
        return buyer.user_id

    async def owner_of_seller(self, seller_id: int) -> int:
        """User id owning a seller profile."""
        seller_id = ensure_subject_id(seller_id, "sellerId")
        seller = await self._store.get_seller(seller_id)
        if seller is None:
            raise NotFound("Seller not found", details={"seller_id": seller_id})
        return seller.user_id

    # =========================================================================
    # SHAPING
    # =========================================================================

    async def _require_buyer_for_user(self, user_id: int) -> Buyer:
        buyer = await self._store.get_buyer_for_user(user_id)
        if buyer is None:
            raise NotFound("Buyer profile not found for this user", details={"user_id": user_id})
        return buyer

    def _review_entry(self, review: Review) -> ReviewEntry:
        product_name = self._product_name(review.product, "review", review.id, review.product_id)
        return ReviewEntry(
            id=review.id,
            product_id=review.product_id,
            product_name=product_name,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )

    def _buyer_order(self, order: Order) -> BuyerOrder:
        items = [
            OrderLine(
                product_id=item.product_id,
                product_name=self._product_name(item.product, "order_item", item.id, item.product_id),
                quantity=item.quantity,
                price=to_money(item.price),
            )
            for item in order.items or []
        ]
        return BuyerOrder(
            id=order.id,
            total_price=to_money(order.total_price),
            status=order.status,
            created_at=order.created_at,
            item_count=len(items),
            items=items,
        )

    def _seller_order(self, items: List[OrderItem]) -> SellerOrder:
        order = items[0].order
        lines = []
        seller_total = Decimal("0")
        for item in items:
            subtotal = line_total(item.quantity, item.price)
            seller_total += subtotal
            lines.append(
                SellerOrderLine(
                    product_id=item.product_id,
                    product_name=self._product_name(item.product, "order_item", item.id, item.product_id),
                    quantity=item.quantity,
                    price=to_money(item.price),
                    subtotal=to_money(subtotal),
                )
            )

        return SellerOrder(
            order_id=order.id,
            buyer_name=self._buyer_name(order),
            total_price=to_money(order.total_price),
            seller_total=to_money(seller_total),
            status=order.status,
            created_at=order.created_at,
            items=lines,
        )

    def _product_name(self, product, entity: str, entity_id: int, product_id: int) -> str:
        if product is not None:
            return product.name
        _report(DataIntegrityWarning(
            "Product reference does not resolve",
            entity=entity,
            entity_id=entity_id,
            missing="product",
            missing_id=product_id,
        ))
        return self._settings.unknown_product_name

    def _buyer_name(self, order: Order) -> str:
        buyer = order.buyer
        if buyer is not None and buyer.user is not None:
            return buyer.user.name
        _report(DataIntegrityWarning(
            "Buyer reference does not resolve",
            entity="order",
            entity_id=order.id,
            missing="buyer",
            missing_id=order.buyer_id,
        ))
        return self._settings.unknown_buyer_name


def _report(warning: DataIntegrityWarning) -> None:
    logger.warning(warning.message, kind=type(warning).__name__, **warning.details)


def _paginate(orders: List[SellerOrder], limit: Optional[int], offset: int):
    if limit is None:
        page = orders[offset:]
    else:
        page = orders[offset:offset + limit]
    return page, offset + len(page) < len(orders)
