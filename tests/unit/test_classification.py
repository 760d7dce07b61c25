from __future__ import annotations

from decimal import Decimal

import pytest

from inventory_ledger.domain.classification import (
    percentage_change,
    percentage_of,
    price_category,
    price_segment,
    stock_status,
)
from inventory_ledger.domain.models import PriceCategory, PriceSegment, StockStatus

CATALOG_STOCK = [1, 2, 3, 10, 20]


@pytest.mark.parametrize(
    ("price", "expected"),
    [
        ("20", PriceCategory.ABOVE_AVERAGE),
        ("10", PriceCategory.BELOW_AVERAGE),
        ("15", PriceCategory.AVERAGE),
    ],
)
def test_price_category_against_average(price: str, expected: PriceCategory) -> None:
    assert price_category(Decimal(price), Decimal("15.00")) is expected


@pytest.mark.parametrize(
    ("percentile", "expected"),
    [
        (0.0, PriceSegment.BUDGET),
        (0.25, PriceSegment.BUDGET),
        (0.26, PriceSegment.MID_RANGE),
        (0.75, PriceSegment.MID_RANGE),
        (0.76, PriceSegment.PREMIUM),
        (1.0, PriceSegment.PREMIUM),
    ],
)
def test_price_segment_boundaries(percentile: float, expected: PriceSegment) -> None:
    assert price_segment(percentile) is expected


def test_low_stock_scenario_marks_everything_at_or_below_threshold_critical() -> None:
    average = Decimal(sum(CATALOG_STOCK)) / len(CATALOG_STOCK)
    threshold = 3

    statuses = {
        stock: stock_status(stock, threshold, average)
        for stock in CATALOG_STOCK
        if stock <= threshold
    }

    assert statuses == {
        1: StockStatus.CRITICAL,
        2: StockStatus.CRITICAL,
        3: StockStatus.CRITICAL,
    }


def test_low_applies_only_above_threshold_and_within_half_the_average() -> None:
    average = Decimal("7.2")

    assert stock_status(3, 1, average) is StockStatus.LOW
    assert stock_status(4, 1, average) is StockStatus.ADEQUATE
    assert stock_status(1, 1, average) is StockStatus.CRITICAL


def test_percentage_of_rounds_to_cents_and_handles_zero_reference() -> None:
    assert percentage_of(Decimal("10"), Decimal("15")) == Decimal("66.67")
    assert percentage_of(3, Decimal("7.2")) == Decimal("41.67")
    assert percentage_of(Decimal("10"), Decimal("0")) is None


def test_percentage_change() -> None:
    assert percentage_change(Decimal("12.50"), Decimal("10.00")) == Decimal("25.00")
    assert percentage_change(Decimal("5"), Decimal("10")) == Decimal("-50.00")
    assert percentage_change(Decimal("5"), None) is None
    assert percentage_change(Decimal("5"), Decimal("0")) is None
