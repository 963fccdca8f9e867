"""
Database Models - Marketplace Entities

Relational schema of the grocery marketplace as seen by the activity service:

Accounts:
- User: identity attributes
- Buyer: purchasing profile of a User (one-to-one)
- Seller: shop profile of a User (one-to-one)

Catalog and commerce:
- Product: listed by a Seller
- Order: placed by a Buyer, holds OrderItems
- OrderItem: product, quantity and unit price captured at purchase time
- Review: written by a Buyer about a Product

The activity service only reads these tables; checkout, catalog and review
workflows own the writes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserRole(str, Enum):
    """User role enumeration"""
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# ACCOUNTS
# =============================================================================

class User(Base):
    """Marketplace account identity"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.BUYER.value)
    avatar: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    address: Mapped[Optional[str]] = mapped_column(Text)

    buyer: Mapped[Optional["Buyer"]] = relationship(back_populates="user", uselist=False)
    seller: Mapped[Optional["Seller"]] = relationship(back_populates="user", uselist=False)


class Buyer(Base):
    """Purchasing profile of a user"""
    __tablename__ = "buyers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), unique=True, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="buyer")
    orders: Mapped[List["Order"]] = relationship(back_populates="buyer")
    reviews: Mapped[List["Review"]] = relationship(back_populates="buyer")


class Seller(Base):
    """Shop profile of a user"""
    __tablename__ = "sellers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), unique=True, nullable=False
    )
    shop_name: Mapped[Optional[str]] = mapped_column(String(255))
    shop_address: Mapped[Optional[str]] = mapped_column(Text)
    shop_phone: Mapped[Optional[str]] = mapped_column(String(20))
    description: Mapped[Optional[str]] = mapped_column(Text)

    user: Mapped["User"] = relationship(back_populates="seller")
    products: Mapped[List["Product"]] = relationship(back_populates="seller")


# =============================================================================
# CATALOG AND COMMERCE
# =============================================================================

class Product(Base):
    """Grocery product listed by a seller"""
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    seller_id: Mapped[int] = mapped_column(Integer, ForeignKey("sellers.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="other")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    stock: Mapped[int] = mapped_column(Integer, default=0)

    seller: Mapped["Seller"] = relationship(back_populates="products")

    __table_args__ = (
        Index("ix_products_seller", "seller_id"),
        Index("ix_products_category", "category"),
    )


class Order(Base):
    """
    Checkout order placed by a buyer.

    Items may come from several sellers; seller-facing views split the order
    per seller.
    """
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    buyer_id: Mapped[int] = mapped_column(Integer, ForeignKey("buyers.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    note: Mapped[Optional[str]] = mapped_column(String(255))
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100))
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    buyer: Mapped["Buyer"] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order", order_by="OrderItem.id"
    )

    __table_args__ = (
        Index("ix_orders_buyer_created", "buyer_id", "created_at"),
        Index("ix_orders_status", "status"),
        CheckConstraint("total_price >= 0", name="ck_orders_total_non_negative"),
    )


class OrderItem(Base):
    """Order line item; unit price is captured at purchase time"""
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id"), nullable=False)
    # Not a hard foreign key: products can be removed from the catalog while
    # historical orders keep pointing at them.
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped[Optional["Product"]] = relationship(
        primaryjoin="foreign(OrderItem.product_id) == Product.id",
        viewonly=True,
    )

    __table_args__ = (
        Index("ix_order_items_order", "order_id"),
        Index("ix_order_items_product", "product_id"),
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_order_items_price_non_negative"),
    )


class Review(Base):
    """Product review written by a buyer"""
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    buyer_id: Mapped[int] = mapped_column(Integer, ForeignKey("buyers.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    buyer: Mapped["Buyer"] = relationship(back_populates="reviews")
    product: Mapped[Optional["Product"]] = relationship(
        primaryjoin="foreign(Review.product_id) == Product.id",
        viewonly=True,
    )

    __table_args__ = (
        Index("ix_reviews_buyer_created", "buyer_id", "created_at"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
