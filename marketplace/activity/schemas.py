"""
Activity Response Models

One explicit model per response shape. Fields are snake_case in Python and
serialized with camelCase aliases.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ActivityModel(BaseModel):
    """Base model for activity responses"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REVIEWS
# =============================================================================

class ReviewEntry(ActivityModel):
    """Review row with the reviewed product inlined"""
    id: int
    product_id: int
    product_name: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class UserReviews(ActivityModel):
    """Reviews authored through a user's buyer profile"""
    user_id: int
    reviews: List[ReviewEntry] = Field(default_factory=list)


# =============================================================================
# ORDERS
# =============================================================================

class OrderLine(ActivityModel):
    """Order item with the product inlined"""
    product_id: int
    product_name: str
    quantity: int
    price: float


class BuyerOrder(ActivityModel):
    """Order as seen by the buyer who placed it"""
    id: int
    total_price: float
    status: str
    created_at: datetime
    item_count: int = 0
    items: List[OrderLine] = Field(default_factory=list)


class BuyerOrders(ActivityModel):
    """All orders placed by a buyer"""
    buyer_id: int
    orders: List[BuyerOrder] = Field(default_factory=list)


class UserOrders(BuyerOrders):
    """Buyer orders resolved from a user id"""
    user_id: int


class SellerOrderLine(OrderLine):
    """Seller-owned order item"""
    subtotal: float


class SellerOrder(ActivityModel):
    """Seller-scoped view of an order: only this seller's items"""
    order_id: int
    buyer_name: str
    total_price: float
    seller_total: float
    status: str
    created_at: datetime
    items: List[SellerOrderLine] = Field(default_factory=list)


class SellerOrders(ActivityModel):
    """Orders containing a seller's products"""
    seller_id: int
    total: int = 0
    has_more: bool = False
    orders: List[SellerOrder] = Field(default_factory=list)


class UserSales(SellerOrders):
    """Seller orders resolved from a user id"""
    user_id: int


# =============================================================================
# STATS AND PROFILE
# =============================================================================

class SellerStats(ActivityModel):
    """Seller performance derived from current order and catalog data"""
    seller_id: int
    total_orders: int = 0
    total_revenue: float = 0.0
    total_products: int = 0
    pending_orders: int = 0
    completed_orders: int = 0
    cancelled_orders: int = 0
    average_order_value: float = 0.0
    orders_by_status: Dict[str, int] = Field(default_factory=dict)


class BuyerSummary(ActivityModel):
    """Buyer section of a profile: counts only"""
    id: int
    total_orders: int = 0
    total_reviews: int = 0


class SellerSummary(ActivityModel):
    """Seller section of a profile"""
    id: int
    shop_name: Optional[str] = None
    shop_address: Optional[str] = None
    shop_phone: Optional[str] = None
    description: Optional[str] = None
    stats: SellerStats


class UserProfile(ActivityModel):
    """User identity with optional buyer and seller sections"""
    id: int
    name: str
    username: str
    email: str
    role: str
    avatar: Optional[str] = None
    buyer: Optional[BuyerSummary] = None
    seller: Optional[SellerSummary] = None


class ErrorResponse(BaseModel):
    """Error body returned by the endpoint layer"""
    error: str
    detail: str
