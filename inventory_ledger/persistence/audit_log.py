"""
Append-only audit trail stored in `item_history`.
"""

from __future__ import annotations

from typing import List

from psycopg import AsyncCursor

from inventory_ledger.domain.models import HistoryEntry


class AuditLog:
    """
    Writes history entries inside the caller's transaction; never updates or
    deletes them. Entries reference item ids weakly and survive item deletion.
    """

    _APPEND_SQL = """
        INSERT INTO item_history (item_id, action, old_price, new_price, old_stock, new_stock)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING entry_id, action_at
    """

    _ENTRIES_SQL = """
        SELECT entry_id, item_id, action, old_price, new_price, old_stock, new_stock, action_at
        FROM item_history
        WHERE item_id = %s
        ORDER BY action_at, entry_id
    """

    async def append(self, cur: AsyncCursor, entry: HistoryEntry) -> HistoryEntry:
        """Insert ``entry`` and return it with its sequence number and timestamp."""
        await cur.execute(
            self._APPEND_SQL,
            (
                entry.item_id,
                entry.action.value,
                entry.old_price,
                entry.new_price,
                entry.old_stock,
                entry.new_stock,
            ),
        )
        row = await cur.fetchone()
        return entry.model_copy(update={"entry_id": row["entry_id"], "action_at": row["action_at"]})

    async def entries_for(self, cur: AsyncCursor, item_id: int) -> List[HistoryEntry]:
        """Every entry for ``item_id``, oldest first."""
        await cur.execute(self._ENTRIES_SQL, (item_id,))
        rows = await cur.fetchall()
        return [HistoryEntry(**row) for row in rows]


__all__ = ["AuditLog"]
