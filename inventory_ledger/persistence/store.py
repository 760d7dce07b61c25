"""
Transactional store for the Inventory Ledger.

Every mutation runs as one PostgreSQL transaction with a fixed shape:

    Begin -> lock aggregate row -> mutate item -> append history
          -> update aggregate -> Commit

The item mutation produces a ``Changeset``; ``Mutation.record`` is the only way
to write history and aggregate state, and a mutation that finishes without
recording exactly one changeset is rolled back. Any failure rolls back all three
effects before the error propagates.

Usage:
    async with TransactionalStore(ConnectionManager()) as store:
        item_id = await store.create(ItemInput(name="Widget", price=Decimal("10"), stock_quantity=5))
        item = await store.get_by_id(item_id)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, List, Optional

import psycopg
from psycopg import AsyncCursor

from inventory_ledger.domain.changeset import Changeset, Snapshot, apply_changeset
from inventory_ledger.domain.classification import (
    percentage_change,
    percentage_of,
    price_category,
)
from inventory_ledger.domain.models import (
    AggregateStats,
    AnnotatedItem,
    HistoryEntry,
    ItemDetail,
    ItemInput,
    ItemUpdate,
)
from inventory_ledger.errors import (
    ConnectionError,
    InventoryError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from inventory_ledger.infrastructure.connection import ConnectionManager
from inventory_ledger.persistence.aggregate_stats import AggregateStatsRecord
from inventory_ledger.persistence.audit_log import AuditLog
from inventory_ledger.utils.logging import get_logger

log = get_logger(__name__)

_ITEM_COLUMNS = "i.id, i.name, i.description, i.price, i.stock_quantity, i.created_at, i.modified_at"


class Mutation:
    """
    One open mutation transaction.

    Holds the cursor and the locked aggregate; ``record`` appends the history
    entry and writes the new aggregate for the item change.
    """

    def __init__(
        self,
        cursor: AsyncCursor,
        stats: AggregateStats,
        audit_log: AuditLog,
        aggregates: AggregateStatsRecord,
    ) -> None:
        self.cursor = cursor
        self.stats_before = stats
        self._audit_log = audit_log
        self._aggregates = aggregates
        self.changeset: Optional[Changeset] = None
        self.history_entry: Optional[HistoryEntry] = None
        self.stats_after: Optional[AggregateStats] = None

    async def record(self, changeset: Changeset) -> AggregateStats:
        if self.changeset is not None:
            raise RuntimeError("a mutation records exactly one changeset")
        self.changeset = changeset
        self.history_entry = await self._audit_log.append(self.cursor, changeset.history_entry())
        self.stats_after = await self._aggregates.write(
            self.cursor, apply_changeset(self.stats_before, changeset)
        )
        return self.stats_after


class TransactionalStore:
    """
    Create/read/update/delete over the item catalog.

    Parameters
    ----------
    connections : ConnectionManager
        Owner of the single connection handle; the store leases it per operation.
    audit_log : AuditLog, optional
    aggregates : AggregateStatsRecord, optional
    """

    def __init__(
        self,
        connections: ConnectionManager,
        audit_log: Optional[AuditLog] = None,
        aggregates: Optional[AggregateStatsRecord] = None,
    ) -> None:
        self.connections = connections
        self.audit_log = audit_log or AuditLog()
        self.aggregates = aggregates or AggregateStatsRecord()

    async def __aenter__(self) -> "TransactionalStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.connections.close()

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _require_non_negative(price: Decimal, stock_quantity: int) -> None:
        if price < 0:
            raise ValidationError("Item price cannot be negative.")
        if stock_quantity < 0:
            raise ValidationError("Item stock quantity cannot be negative.")

    @asynccontextmanager
    async def _mutation(self, operation: str) -> AsyncIterator[Mutation]:
        async with self.connections.lease() as conn:
            try:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        mutation = Mutation(
                            cur, await self.aggregates.lock(cur), self.audit_log, self.aggregates
                        )
                        yield mutation
                        if mutation.changeset is None:
                            raise RuntimeError(f"{operation} finished without recording a change")
            except InventoryError:
                log.warning("Mutation rolled back", extra={"operation": operation})
                raise
            except psycopg.OperationalError as exc:
                log.warning("Mutation rolled back", extra={"operation": operation})
                raise ConnectionError(
                    f"Connection lost during {operation}; the change was rolled back."
                ) from exc
            except Exception as exc:  # noqa: BLE001 - every failure is reported as a rollback
                log.warning("Mutation rolled back", extra={"operation": operation})
                raise TransactionError(f"{operation} failed and was rolled back.") from exc

        change = mutation.changeset
        log.info(
            f"[{change.action.value.upper()}] item {change.item_id}",
            extra={
                "operation": operation,
                "item_id": change.item_id,
                "action": change.action.value,
                "total_items": mutation.stats_after.total_items,
            },
        )

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[AsyncCursor]:
        async with self.connections.lease() as conn:
            try:
                async with conn.cursor() as cur:
                    yield cur
            except psycopg.OperationalError as exc:
                raise ConnectionError("Connection lost while reading.") from exc
            except psycopg.Error as exc:
                raise TransactionError("Reading from the catalog failed.") from exc

    # --------------------------------------------------------------- mutations

    async def create(self, item: ItemInput) -> int:
        """
        Insert ``item`` and return its new id.

        Raises
        ------
        ValidationError
            If price or stock is negative; raised before any I/O.
        """
        self._require_non_negative(item.price, item.stock_quantity)

        async with self._mutation("create") as mutation:
            await mutation.cursor.execute(
                """
                INSERT INTO items (name, description, price, stock_quantity)
                VALUES (%s, %s, %s, %s)
                RETURNING id, price, stock_quantity
                """,
                (item.name, item.description, item.price, item.stock_quantity),
            )
            row = await mutation.cursor.fetchone()
            await mutation.record(
                Changeset.insert(row["id"], Snapshot(row["price"], row["stock_quantity"]))
            )
        return row["id"]

    async def update(self, item: ItemUpdate) -> None:
        """
        Replace the fields of an existing item.

        The pre-update price and stock are read under a row lock inside the
        same transaction.
        """
        if item.id is None:
            raise ValidationError("Item ID is required for an update.")
        self._require_non_negative(item.price, item.stock_quantity)

        async with self._mutation("update") as mutation:
            before = await self._lock_item(mutation.cursor, item.id)
            await mutation.cursor.execute(
                """
                UPDATE items
                SET name = %s, description = %s, price = %s, stock_quantity = %s,
                    modified_at = now()
                WHERE id = %s
                RETURNING price, stock_quantity
                """,
                (item.name, item.description, item.price, item.stock_quantity, item.id),
            )
            row = await mutation.cursor.fetchone()
            await mutation.record(
                Changeset.update(item.id, before, Snapshot(row["price"], row["stock_quantity"]))
            )

    async def delete(self, item_id: int) -> None:
        async with self._mutation("delete") as mutation:
            before = await self._lock_item(mutation.cursor, item_id)
            await mutation.cursor.execute("DELETE FROM items WHERE id = %s", (item_id,))
            await mutation.record(Changeset.delete(item_id, before))

    async def update_stock(self, item_id: int, quantity: int) -> None:
        """Set the stock of an item through the full update path."""
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative.")
        item = await self.get_by_id(item_id)
        if item is None:
            raise NotFoundError(item_id)
        await self.update(item.as_update(stock_quantity=quantity))

    @staticmethod
    async def _lock_item(cur: AsyncCursor, item_id: int) -> Snapshot:
        await cur.execute(
            "SELECT price, stock_quantity FROM items WHERE id = %s FOR UPDATE", (item_id,)
        )
        row = await cur.fetchone()
        if row is None:
            raise NotFoundError(item_id)
        return Snapshot(row["price"], row["stock_quantity"])

    # ------------------------------------------------------------------- reads

    async def get_by_id(self, item_id: int) -> Optional[ItemDetail]:
        """
        Fetch one item with its previous price and stock.

        "Previous" is the history entry immediately before the most recent one.
        Returns None when the item does not exist.
        """
        async with self._reading() as cur:
            await cur.execute(
                f"""
                SELECT {_ITEM_COLUMNS},
                       prev.new_price AS previous_price,
                       prev.new_stock AS previous_stock
                FROM items i
                LEFT JOIN LATERAL (
                    SELECT h.new_price, h.new_stock
                    FROM item_history h
                    WHERE h.item_id = i.id
                    ORDER BY h.action_at DESC, h.entry_id DESC
                    OFFSET 1 LIMIT 1
                ) prev ON TRUE
                WHERE i.id = %s
                """,
                (item_id,),
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return ItemDetail(
            **row,
            price_change_percentage=percentage_change(row["price"], row["previous_price"]),
        )

    async def get_all(self) -> List[AnnotatedItem]:
        """
        Every item classified against the current aggregate average price.

        Above-average items come first; each group is sorted by name.
        """
        async with self._reading() as cur:
            await cur.execute(
                f"""
                SELECT {_ITEM_COLUMNS}, s.average_price
                FROM items i
                CROSS JOIN aggregate_stats s
                WHERE s.stat_id = 1
                ORDER BY CASE WHEN i.price > s.average_price THEN 1 ELSE 2 END, i.name, i.id
                """
            )
            rows = await cur.fetchall()

        items: List[AnnotatedItem] = []
        for row in rows:
            average = row.pop("average_price")
            items.append(
                AnnotatedItem(
                    **row,
                    price_category=price_category(row["price"], average),
                    price_percentage_of_average=percentage_of(row["price"], average),
                )
            )
        return items

    async def get_stats(self) -> AggregateStats:
        async with self._reading() as cur:
            return await self.aggregates.read(cur)

    async def history(self, item_id: int) -> List[HistoryEntry]:
        """Audit entries for ``item_id``, oldest first; available after deletion."""
        async with self._reading() as cur:
            return await self.audit_log.entries_for(cur, item_id)


__all__ = ["Mutation", "TransactionalStore"]
