"""Figures derived on the client from backend payloads.

Payload values arrive as loosely typed JSON; anything that is not a number
counts as zero, the way the screens display it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

LOW_STOCK_THRESHOLD = 10


class PaymentStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


@dataclass
class StockSummary:
    total_products: int = 0
    total_stock: int = 0
    total_sales_value: float = 0.0
    total_profit: float = 0.0
    low_stock_count: int = 0


@dataclass
class DeliveryTotals:
    quantity: int = 0
    delivered: int = 0
    returned: int = 0
    value: float = 0.0

    @property
    def outstanding(self) -> int:
        """Units neither delivered nor returned yet."""
        return self.quantity - self.delivered - self.returned


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def unit_margin(price: Any, purchase_price: Any) -> float:
    return _number(price) - _number(purchase_price)


def margin_percent(price: Any, purchase_price: Any) -> float:
    """Margin as a percentage of the purchase price (0 when it is not positive)."""
    cost = _number(purchase_price)
    if cost <= 0:
        return 0.0
    return unit_margin(price, cost) / cost * 100


def stock_summary(
    products: Iterable[dict[str, Any]],
    low_stock_threshold: int = LOW_STOCK_THRESHOLD,
) -> StockSummary:
    """Aggregate value and potential profit of the stock on hand."""
    summary = StockSummary()
    for product in products:
        price = _number(product.get("price"))
        cost = _number(product.get("purchasePrice"))
        stock = int(_number(product.get("stock")))

        summary.total_products += 1
        summary.total_stock += stock
        summary.total_sales_value += price * stock
        summary.total_profit += (price - cost) * stock
        if stock < low_stock_threshold:
            summary.low_stock_count += 1
    return summary


def delivery_totals(items: Iterable[dict[str, Any]]) -> DeliveryTotals:
    """Sum a delivery's product lines; value counts delivered units only."""
    totals = DeliveryTotals()
    for item in items:
        delivered = int(_number(item.get("deliveredQuantity")))
        product = item.get("product") or {}

        totals.quantity += int(_number(item.get("quantity")))
        totals.delivered += delivered
        totals.returned += int(_number(item.get("returnedQuantity")))
        totals.value += delivered * _number(product.get("price"))
    return totals


def validate_delivery_line(quantity: int, delivered: int, returned: int) -> list[str]:
    """Return the problems with one delivery line (empty when valid)."""
    errors = []
    if quantity <= 0:
        errors.append("Quantity must be greater than 0")
    if delivered < 0:
        errors.append("Delivered quantity must be 0 or more")
    if returned < 0:
        errors.append("Returned quantity must be 0 or more")
    if delivered + returned > quantity:
        errors.append("Delivered plus returned cannot exceed the quantity")
    return errors


def payment_status(total_price: Any, amount_paid: Any) -> PaymentStatus:
    paid = _number(amount_paid)
    if paid >= _number(total_price):
        return PaymentStatus.PAID
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def validate_credit_payment(amount: Any, due_amount: Any) -> str | None:
    """Check a payment against a credit sale; returns the problem or None.

    Accepts a comma as decimal separator.
    """
    if isinstance(amount, str):
        amount = amount.strip().replace(",", ".")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return "Amount must be a valid number"

    if not math.isfinite(value):
        return "Amount must be a valid number"
    if value <= 0:
        return "Amount must be greater than zero"
    if value > _number(due_amount):
        return "Amount cannot exceed the amount due"
    return None


def total_pages(page_payload: Any) -> int:
    """Page count of a paginated response, at least 1.

    Deliveries report ``totalPage`` while customers and orders report
    ``totalPages``.
    """
    if not isinstance(page_payload, dict):
        return 1
    raw = page_payload.get("totalPages", page_payload.get("totalPage"))
    return max(1, int(_number(raw)))


def can_go_to_page(page: int, current_page: int, pages: int) -> bool:
    """Whether moving to ``page`` is a real change within bounds."""
    return 1 <= page <= pages and page != current_page
