"""
Catalog seeding script for the Inventory Ledger.

Generates a deterministic pseudo-random catalog and loads it through the
transactional store, so every seeded item gets its Insert history entry and is
counted in the aggregate statistics.
"""

from __future__ import annotations

import asyncio
import random
import sys
import time
from decimal import Decimal
from typing import List

import typer

from inventory_ledger.domain.models import ItemInput
from inventory_ledger.infrastructure.connection import ConnectionManager
from inventory_ledger.infrastructure.schema import apply_schema
from inventory_ledger.persistence.store import TransactionalStore

app = typer.Typer(help="Seed the item catalog with synthetic items.")

_ADJECTIVES = ["Compact", "Deluxe", "Heavy-Duty", "Portable", "Smart", "Classic", "Eco"]
_NOUNS = ["Widget", "Gadget", "Lamp", "Kettle", "Drill", "Router", "Backpack", "Blender"]


def _generate_items(count: int, seed: int) -> List[ItemInput]:
    rng = random.Random(seed)
    items: List[ItemInput] = []
    for index in range(count):
        name = f"{rng.choice(_ADJECTIVES)} {rng.choice(_NOUNS)} {index + 1:04d}"
        price = Decimal(f"{rng.uniform(1, 500):.2f}")
        items.append(
            ItemInput(
                name=name,
                description=rng.choice([None, f"Synthetic item #{index + 1}"]),
                price=price,
                stock_quantity=rng.randint(0, 200),
            )
        )
    return items


async def _load(items: List[ItemInput], dsn: str | None) -> List[int]:
    async with TransactionalStore(ConnectionManager(conninfo=dsn)) as store:
        await apply_schema(await store.connections.acquire())
        return [await store.create(item) for item in items]


@app.command()
def main(
    count: int = typer.Option(
        50,
        "--count",
        "-n",
        help="Number of items to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional connection string override.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Only print the generated items; do not load them.",
    ),
) -> None:
    """
    Generate synthetic items and load them through the store.
    """
    items = _generate_items(count, seed)
    if dry_run:
        for item in items:
            typer.echo(f"{item.name} | ${item.price} | stock {item.stock_quantity}")
        return

    if not items:
        typer.echo("Nothing to load.")
        return

    start = time.perf_counter()
    ids = asyncio.run(_load(items, dsn))
    duration = time.perf_counter() - start
    typer.echo(f"Loaded {len(ids)} items in {duration:.2f}s (ids {ids[0]}..{ids[-1]}).")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
