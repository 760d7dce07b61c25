"""
PostgreSQL schema for the Inventory Ledger.

Three tables: `items`, the append-only `item_history` (no foreign key, entries
outlive the items they describe) and the single-row `aggregate_stats`.
"""

from __future__ import annotations

from psycopg import AsyncConnection

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS items (
    id              SERIAL PRIMARY KEY,
    name            TEXT NOT NULL CHECK (length(btrim(name)) > 0),
    description     TEXT NULL,
    price           NUMERIC(18, 2) NOT NULL CHECK (price >= 0),
    stock_quantity  INTEGER NOT NULL CHECK (stock_quantity >= 0),
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    modified_at     TIMESTAMPTZ NULL
);

CREATE TABLE IF NOT EXISTS item_history (
    entry_id    BIGSERIAL PRIMARY KEY,
    item_id     INTEGER NOT NULL,
    action      TEXT NOT NULL CHECK (action IN ('Insert', 'Update', 'Delete')),
    old_price   NUMERIC(18, 2) NULL,
    new_price   NUMERIC(18, 2) NULL,
    old_stock   INTEGER NULL,
    new_stock   INTEGER NULL,
    action_at   TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
);

CREATE INDEX IF NOT EXISTS item_history_item_id_idx
    ON item_history (item_id, action_at, entry_id);

CREATE TABLE IF NOT EXISTS aggregate_stats (
    stat_id        INTEGER PRIMARY KEY CHECK (stat_id = 1),
    total_items    INTEGER NOT NULL DEFAULT 0 CHECK (total_items >= 0),
    average_price  NUMERIC NOT NULL DEFAULT 0,
    last_updated   TIMESTAMPTZ NOT NULL DEFAULT now()
);

INSERT INTO aggregate_stats (stat_id, total_items, average_price)
VALUES (1, 0, 0)
ON CONFLICT (stat_id) DO NOTHING;
"""

RESET_SQL = """
TRUNCATE TABLE items, item_history RESTART IDENTITY;
UPDATE aggregate_stats SET total_items = 0, average_price = 0, last_updated = now()
WHERE stat_id = 1;
"""


async def apply_schema(conn: AsyncConnection) -> None:
    """Create the tables and seed the aggregate row (idempotent)."""
    async with conn.transaction():
        await conn.execute(SCHEMA_SQL)


async def reset_data(conn: AsyncConnection) -> None:
    """Remove every item and history entry and zero the aggregate."""
    async with conn.transaction():
        await conn.execute(RESET_SQL)


__all__ = ["SCHEMA_SQL", "RESET_SQL", "apply_schema", "reset_data"]
