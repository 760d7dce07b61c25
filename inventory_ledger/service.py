"""
Business-facing service for the Inventory Ledger.

Validates caller input (name, price, stock) before handing it to the
transactional store, and exposes the store and analytics operations to the CLI.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from inventory_ledger.analytics import AnalyticsProjector
from inventory_ledger.domain.models import (
    AggregateStats,
    AnnotatedItem,
    HistoryEntry,
    ItemDetail,
    ItemInput,
    ItemUpdate,
    RankedItem,
    StockAnnotatedItem,
)
from inventory_ledger.errors import ValidationError
from inventory_ledger.infrastructure.connection import ConnectionManager
from inventory_ledger.persistence.store import TransactionalStore


def validate_item(item: ItemInput) -> None:
    """Raise ValidationError for the first invalid field of ``item``."""
    if not item.name or not item.name.strip():
        raise ValidationError("Item name is required.")
    if item.price < 0:
        raise ValidationError("Item price cannot be negative.")
    if item.stock_quantity < 0:
        raise ValidationError("Item stock quantity cannot be negative.")


class InventoryService:
    def __init__(
        self,
        store: TransactionalStore,
        projector: Optional[AnalyticsProjector] = None,
    ) -> None:
        self.store = store
        self.projector = projector or AnalyticsProjector(store.connections)

    @classmethod
    def from_connections(cls, connections: ConnectionManager) -> "InventoryService":
        return cls(TransactionalStore(connections), AnalyticsProjector(connections))

    async def close(self) -> None:
        await self.store.connections.close()

    async def __aenter__(self) -> "InventoryService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def list_items(self) -> List[AnnotatedItem]:
        return await self.store.get_all()

    async def get_item(self, item_id: int) -> Optional[ItemDetail]:
        return await self.store.get_by_id(item_id)

    async def create_item(self, item: ItemInput) -> int:
        validate_item(item)
        return await self.store.create(item)

    async def update_item(self, item: ItemUpdate) -> None:
        validate_item(item)
        await self.store.update(item)

    async def delete_item(self, item_id: int) -> None:
        await self.store.delete(item_id)

    async def update_stock(self, item_id: int, quantity: int) -> None:
        await self.store.update_stock(item_id, quantity)

    async def items_in_price_range(
        self, min_price: Decimal, max_price: Decimal
    ) -> List[RankedItem]:
        return await self.projector.by_price_range(min_price, max_price)

    async def low_stock_items(self, threshold: int) -> List[StockAnnotatedItem]:
        return await self.projector.low_stock(threshold)

    async def stats(self) -> AggregateStats:
        return await self.store.get_stats()

    async def history(self, item_id: int) -> List[HistoryEntry]:
        return await self.store.history(item_id)


__all__ = ["InventoryService", "validate_item"]
