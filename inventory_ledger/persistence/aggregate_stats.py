"""
Access to the singleton `aggregate_stats` row.

The row is read with ``FOR UPDATE`` at the start of every mutation so that
concurrent writers (other processes sharing the database) queue behind each
other and every incremental update starts from a committed base.
"""

from __future__ import annotations

from psycopg import AsyncCursor

from inventory_ledger.domain.models import AggregateStats
from inventory_ledger.errors import TransactionError

STAT_ID = 1


class AggregateStatsRecord:
    _SELECT_SQL = """
        SELECT total_items, average_price, last_updated
        FROM aggregate_stats
        WHERE stat_id = %s
    """

    _UPDATE_SQL = """
        UPDATE aggregate_stats
        SET total_items = %s, average_price = %s, last_updated = now()
        WHERE stat_id = %s
        RETURNING total_items, average_price, last_updated
    """

    async def lock(self, cur: AsyncCursor) -> AggregateStats:
        """Read the row and hold its lock until the transaction ends."""
        await cur.execute(self._SELECT_SQL + " FOR UPDATE", (STAT_ID,))
        return self._from_row(await cur.fetchone())

    async def write(self, cur: AsyncCursor, stats: AggregateStats) -> AggregateStats:
        await cur.execute(self._UPDATE_SQL, (stats.total_items, stats.average_price, STAT_ID))
        return self._from_row(await cur.fetchone())

    async def read(self, cur: AsyncCursor) -> AggregateStats:
        await cur.execute(self._SELECT_SQL, (STAT_ID,))
        return self._from_row(await cur.fetchone())

    @staticmethod
    def _from_row(row) -> AggregateStats:
        if row is None:
            raise TransactionError(
                "aggregate_stats row is missing; run `inventory-ledger init-db`."
            )
        return AggregateStats(**row)


__all__ = ["AggregateStatsRecord", "STAT_ID"]
