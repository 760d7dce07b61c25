"""
Domain package for the Inventory Ledger.

Exports the records, read models and changeset types used by the store and the
analytics projector. Keep this package free of I/O.
"""

from inventory_ledger.domain.changeset import Changeset, Snapshot, apply_changeset
from inventory_ledger.domain.models import (
    AggregateStats,
    AnnotatedItem,
    HistoryAction,
    HistoryEntry,
    Item,
    ItemDetail,
    ItemInput,
    ItemUpdate,
    PriceCategory,
    PriceSegment,
    RankedItem,
    StockAnnotatedItem,
    StockStatus,
)

__all__ = [
    "AggregateStats",
    "AnnotatedItem",
    "Changeset",
    "HistoryAction",
    "HistoryEntry",
    "Item",
    "ItemDetail",
    "ItemInput",
    "ItemUpdate",
    "PriceCategory",
    "PriceSegment",
    "RankedItem",
    "Snapshot",
    "StockAnnotatedItem",
    "StockStatus",
    "apply_changeset",
]
