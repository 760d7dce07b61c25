from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import psycopg
import pytest

from inventory_ledger.analytics import AnalyticsProjector
from inventory_ledger.domain.models import PriceSegment, StockStatus
from inventory_ledger.errors import ConnectionError, TransactionError
from inventory_ledger.infrastructure.connection import ConnectionManager

NOW = datetime(2026, 1, 2, tzinfo=timezone.utc)


def _row(item_id: int, price: str, stock: int, **extra: Any) -> dict[str, Any]:
    row = {
        "id": item_id,
        "name": f"Item {item_id}",
        "description": None,
        "price": Decimal(price),
        "stock_quantity": stock,
        "created_at": NOW,
        "modified_at": None,
    }
    row.update(extra)
    return row


class _FakeCursor:
    def __init__(self, conn: "_FakeConnection") -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> None:
        self._conn.executed.append((sql, params))
        if self._conn.error is not None:
            raise self._conn.error

    async def fetchall(self) -> list:
        return [dict(row) for row in self._conn.rows]

    async def __aenter__(self) -> "_FakeCursor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _FakeConnection:
    def __init__(self, rows: list, error: Exception | None = None) -> None:
        self.rows = rows
        self.error = error
        self.executed: list[tuple[str, tuple]] = []
        self.closed = False

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    async def close(self) -> None:
        self.closed = True


def _projector(rows: list, error: Exception | None = None) -> tuple[AnalyticsProjector, _FakeConnection]:
    conn = _FakeConnection(rows, error)

    async def connect(conninfo: str, **kwargs: Any) -> _FakeConnection:
        return conn

    manager = ConnectionManager(conninfo="postgresql://fake", connect=connect)
    return AnalyticsProjector(manager), conn


@pytest.mark.asyncio
async def test_price_range_buckets_percentiles_into_segments() -> None:
    projector, conn = _projector(
        [
            _row(1, "5.00", 1, price_rank=1, price_percentile=0.0),
            _row(2, "10.00", 1, price_rank=2, price_percentile=0.25),
            _row(3, "10.00", 1, price_rank=2, price_percentile=0.25),
            _row(4, "20.00", 1, price_rank=4, price_percentile=0.75),
            _row(5, "50.00", 1, price_rank=5, price_percentile=1.0),
        ]
    )

    items = await projector.by_price_range(Decimal("0"), Decimal("100"))

    assert conn.executed[0][1] == (Decimal("0"), Decimal("100"))
    assert [i.price_rank for i in items] == [1, 2, 2, 4, 5]
    assert [i.price_segment for i in items] == [
        PriceSegment.BUDGET,
        PriceSegment.BUDGET,
        PriceSegment.BUDGET,
        PriceSegment.MID_RANGE,
        PriceSegment.PREMIUM,
    ]


@pytest.mark.asyncio
async def test_price_range_with_no_matches_is_empty() -> None:
    projector, _ = _projector([])

    assert await projector.by_price_range(Decimal("100"), Decimal("1")) == []


@pytest.mark.asyncio
async def test_low_stock_uses_catalog_wide_average() -> None:
    stats = {"average_stock": Decimal("7.2"), "min_stock": 1, "max_stock": 20}
    projector, conn = _projector(
        [_row(1, "1.00", 1, **stats), _row(2, "1.00", 2, **stats), _row(3, "1.00", 3, **stats)]
    )

    items = await projector.low_stock(3)

    assert conn.executed[0][1] == (3,)
    assert [i.stock_status for i in items] == [StockStatus.CRITICAL] * 3
    assert [i.stock_percentage_of_average for i in items] == [
        Decimal("13.89"),
        Decimal("27.78"),
        Decimal("41.67"),
    ]
    assert all((i.min_stock, i.max_stock) == (1, 20) for i in items)


@pytest.mark.asyncio
async def test_lost_connection_is_reported_as_connection_error() -> None:
    projector, _ = _projector([], error=psycopg.OperationalError("terminating connection"))

    with pytest.raises(ConnectionError):
        await projector.low_stock(5)


@pytest.mark.asyncio
async def test_other_database_errors_are_reported_as_transaction_error() -> None:
    projector, _ = _projector(
        [], error=psycopg.errors.InsufficientPrivilege("permission denied for table items")
    )

    with pytest.raises(TransactionError) as excinfo:
        await projector.by_price_range(Decimal("0"), Decimal("10"))

    assert isinstance(excinfo.value.__cause__, psycopg.errors.InsufficientPrivilege)
