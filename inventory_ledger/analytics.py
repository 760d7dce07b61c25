"""
Read-only analytical projections over the item catalog.

Ranking and distribution statistics are computed by PostgreSQL window functions
over the current data set; the bucketing rules live in
``inventory_ledger.domain.classification``. Reads run outside any transaction
and see whatever the engine's default isolation shows them.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

import psycopg

from inventory_ledger.domain.classification import percentage_of, price_segment, stock_status
from inventory_ledger.domain.models import RankedItem, StockAnnotatedItem
from inventory_ledger.errors import ConnectionError, TransactionError
from inventory_ledger.infrastructure.connection import ConnectionManager
from inventory_ledger.utils.logging import get_logger

log = get_logger(__name__)

_PRICE_RANGE_SQL = """
    SELECT i.id, i.name, i.description, i.price, i.stock_quantity, i.created_at, i.modified_at,
           RANK() OVER (ORDER BY i.price) AS price_rank,
           PERCENT_RANK() OVER (ORDER BY i.price) AS price_percentile
    FROM items i
    WHERE i.price BETWEEN %s AND %s
    ORDER BY price_rank, i.id
"""

_LOW_STOCK_SQL = """
    WITH stock_analysis AS (
        SELECT i.id, i.name, i.description, i.price, i.stock_quantity, i.created_at,
               i.modified_at,
               AVG(i.stock_quantity) OVER () AS average_stock,
               MIN(i.stock_quantity) OVER () AS min_stock,
               MAX(i.stock_quantity) OVER () AS max_stock
        FROM items i
    )
    SELECT *
    FROM stock_analysis
    WHERE stock_quantity <= %s
    ORDER BY stock_quantity, id
"""


class AnalyticsProjector:
    """
    Classifies items relative to the rest of the catalog.

    Shares the store's ConnectionManager, so projections wait for an in-flight
    mutation on the same handle to finish.
    """

    def __init__(self, connections: ConnectionManager) -> None:
        self.connections = connections

    async def _fetch(self, sql: str, params: tuple) -> List[dict]:
        async with self.connections.lease() as conn:
            try:
                async with conn.cursor() as cur:
                    await cur.execute(sql, params)
                    return await cur.fetchall()
            except psycopg.OperationalError as exc:
                raise ConnectionError("Connection lost while reading.") from exc
            except psycopg.Error as exc:
                raise TransactionError("Reading from the catalog failed.") from exc

    async def by_price_range(self, min_price: Decimal, max_price: Decimal) -> List[RankedItem]:
        """
        Items priced within ``[min_price, max_price]``, cheapest first.

        Each item carries its RANK (ties share a rank) and PERCENT_RANK within the
        filtered set, bucketed into Budget / Mid-Range / Premium. An inverted
        range selects nothing.
        """
        rows = await self._fetch(_PRICE_RANGE_SQL, (min_price, max_price))
        log.debug(
            "Price range projection",
            extra={"min_price": str(min_price), "max_price": str(max_price), "rows": len(rows)},
        )
        return [
            RankedItem(**row, price_segment=price_segment(row["price_percentile"])) for row in rows
        ]

    async def low_stock(self, threshold: int) -> List[StockAnnotatedItem]:
        """
        Items with stock at or below ``threshold``, lowest stock first.

        Status and percentage are measured against the whole catalog's average
        stock, not just the returned items.
        """
        rows = await self._fetch(_LOW_STOCK_SQL, (threshold,))
        log.debug("Low stock projection", extra={"threshold": threshold, "rows": len(rows)})
        return [
            StockAnnotatedItem(
                **row,
                stock_status=stock_status(row["stock_quantity"], threshold, row["average_stock"]),
                stock_percentage_of_average=percentage_of(
                    row["stock_quantity"], row["average_stock"]
                ),
            )
            for row in rows
        ]


__all__ = ["AnalyticsProjector"]
