"""
Bucketing rules shared by the store and the analytics projector.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from inventory_ledger.domain.models import PriceCategory, PriceSegment, StockStatus

BUDGET_PERCENTILE = 0.25
MID_RANGE_PERCENTILE = 0.75
LOW_STOCK_RATIO = Decimal("0.5")

_CENTS = Decimal("0.01")

Number = Union[Decimal, int]


def percentage_of(value: Number, reference: Number) -> Optional[Decimal]:
    """``value`` as a percentage of ``reference``, rounded to 2 places; None for a zero reference."""
    reference = Decimal(reference)
    if reference == 0:
        return None
    return (Decimal(value) / reference * 100).quantize(_CENTS, rounding=ROUND_HALF_UP)


def percentage_change(current: Number, previous: Optional[Number]) -> Optional[Decimal]:
    if previous is None:
        return None
    previous = Decimal(previous)
    if previous == 0:
        return None
    return ((Decimal(current) - previous) / previous * 100).quantize(_CENTS, rounding=ROUND_HALF_UP)


def price_category(price: Decimal, average: Decimal) -> PriceCategory:
    if price > average:
        return PriceCategory.ABOVE_AVERAGE
    if price < average:
        return PriceCategory.BELOW_AVERAGE
    return PriceCategory.AVERAGE


def price_segment(percentile: float) -> PriceSegment:
    if percentile <= BUDGET_PERCENTILE:
        return PriceSegment.BUDGET
    if percentile <= MID_RANGE_PERCENTILE:
        return PriceSegment.MID_RANGE
    return PriceSegment.PREMIUM


def stock_status(stock: int, threshold: int, average_stock: Number) -> StockStatus:
    # Critical wins over Low when both apply.
    if stock <= threshold:
        return StockStatus.CRITICAL
    if stock <= Decimal(average_stock) * LOW_STOCK_RATIO:
        return StockStatus.LOW
    return StockStatus.ADEQUATE


__all__ = [
    "percentage_change",
    "percentage_of",
    "price_category",
    "price_segment",
    "stock_status",
]
