"""
Seller Statistics

Derives seller performance figures from raw sale lines (one per seller-owned
order item). Nothing here touches the store: the service fetches the lines and
the product count, this module only does the arithmetic.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, FrozenSet, Iterable, NamedTuple, Set

from marketplace.config.settings import ActivitySettings

CENT = Decimal("0.01")


@dataclass(frozen=True)
class OrderStatusPolicy:
    """Which order statuses count as revenue, pending and completed"""
    revenue_statuses: FrozenSet[str] = frozenset({"paid", "shipped", "completed"})
    pending_statuses: FrozenSet[str] = frozenset({"pending"})
    completed_statuses: FrozenSet[str] = frozenset({"completed"})
    cancelled_status: str = "cancelled"

    @classmethod
    def from_settings(cls, settings: ActivitySettings) -> "OrderStatusPolicy":
        policy = cls(
            revenue_statuses=frozenset(s.lower() for s in settings.revenue_statuses),
            pending_statuses=frozenset(s.lower() for s in settings.pending_statuses),
            completed_statuses=frozenset(s.lower() for s in settings.completed_statuses),
        )
        if policy.cancelled_status in policy.revenue_statuses:
            raise ValueError("cancelled orders can never count as revenue")
        return policy

    def counts_as_revenue(self, status: str) -> bool:
        return status in self.revenue_statuses

    def is_pending(self, status: str) -> bool:
        return status in self.pending_statuses

    def is_completed(self, status: str) -> bool:
        return status in self.completed_statuses


class SaleLine(NamedTuple):
    """One seller-owned order item"""
    order_id: int
    status: str
    quantity: int
    unit_price: Decimal


@dataclass
class SalesSummary:
    """Figures derived from a seller's sale lines"""
    total_orders: int = 0
    total_revenue: Decimal = Decimal("0")
    total_products: int = 0
    pending_orders: int = 0
    completed_orders: int = 0
    cancelled_orders: int = 0
    average_order_value: Decimal = Decimal("0")
    orders_by_status: Dict[str, int] = field(default_factory=dict)


def to_money(value: Decimal) -> float:
    """Round to cents and convert for JSON output."""
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def line_total(quantity: int, unit_price) -> Decimal:
    return Decimal(quantity) * Decimal(str(unit_price))


def summarize_sales(
    lines: Iterable[SaleLine],
    total_products: int,
    policy: OrderStatusPolicy,
) -> SalesSummary:
    """
    Compute seller statistics from sale lines.

    An order is counted once however many of the seller's items it holds.
    Revenue only includes lines whose order status counts as revenue.
    """
    order_status: Dict[int, str] = {}
    revenue = Decimal("0")
    revenue_orders: Set[int] = set()

    for line in lines:
        order_status[line.order_id] = line.status
        if policy.counts_as_revenue(line.status):
            revenue += line_total(line.quantity, line.unit_price)
            revenue_orders.add(line.order_id)

    by_status: Dict[str, int] = defaultdict(int)
    for status in order_status.values():
        by_status[status] += 1

    average = revenue / len(revenue_orders) if revenue_orders else Decimal("0")

    return SalesSummary(
        total_orders=len(order_status),
        total_revenue=revenue,
        total_products=max(total_products, 0),
        pending_orders=sum(1 for s in order_status.values() if policy.is_pending(s)),
        completed_orders=sum(1 for s in order_status.values() if policy.is_completed(s)),
        cancelled_orders=by_status.get(policy.cancelled_status, 0),
        average_order_value=average,
        orders_by_status=dict(sorted(by_status.items())),
    )
