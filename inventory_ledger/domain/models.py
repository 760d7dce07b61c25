"""
Domain models for the Inventory Ledger.

Defines the records stored in the `items`, `item_history` and
`aggregate_stats` tables plus the annotated read models returned by the store
and the analytics projector. Input models deliberately carry no numeric
constraints: the store enforces its own preconditions and reports them as
``inventory_ledger.errors.ValidationError``.
"""
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

_RECORD_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "arbitrary_types_allowed": False,
}


class HistoryAction(str, enum.Enum):
    INSERT = "Insert"
    UPDATE = "Update"
    DELETE = "Delete"


class PriceCategory(str, enum.Enum):
    ABOVE_AVERAGE = "Above Average"
    BELOW_AVERAGE = "Below Average"
    AVERAGE = "Average"


class PriceSegment(str, enum.Enum):
    BUDGET = "Budget"
    MID_RANGE = "Mid-Range"
    PREMIUM = "Premium"


class StockStatus(str, enum.Enum):
    CRITICAL = "Critical"
    LOW = "Low"
    ADEQUATE = "Adequate"


class ItemInput(BaseModel):
    """
    Caller-supplied fields of an item.
    """

    name: str = Field(..., description="Display name; must be non-empty.")
    description: Optional[str] = Field(None, description="Free-form description.")
    price: Decimal = Field(..., description="Unit price; must be non-negative.")
    stock_quantity: int = Field(..., description="Units in stock; must be non-negative.")


class ItemUpdate(ItemInput):
    """
    Replacement values for an existing item. ``id`` is required by the store.
    """

    id: Optional[int] = Field(None, description="Identifier of the item to update.")


class Item(BaseModel):
    """
    Representation of a single row in the `items` table.
    """

    id: int = Field(..., description="Primary key assigned by the store.")
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_quantity: int
    created_at: datetime = Field(..., description="Row creation timestamp.")
    modified_at: Optional[datetime] = Field(
        None, description="Last mutation timestamp; None until the first update."
    )

    model_config = _RECORD_CONFIG

    def as_update(self, **changes: object) -> ItemUpdate:
        """Build an ItemUpdate from this item, overriding ``changes``."""
        values = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock_quantity": self.stock_quantity,
        }
        values.update(changes)
        return ItemUpdate(**values)

    def describe(self) -> str:
        """Multi-line human-readable rendering used by the CLI."""
        modified = self.modified_at.strftime("%Y-%m-%d %H:%M") if self.modified_at else "N/A"
        return (
            f"ID: {self.id}\n"
            f"Name: {self.name}\n"
            f"Description: {self.description or 'N/A'}\n"
            f"Price: ${self.price:.2f}\n"
            f"Stock: {self.stock_quantity}\n"
            f"Created: {self.created_at:%Y-%m-%d %H:%M}\n"
            f"Modified: {modified}"
        )


class ItemDetail(Item):
    """
    An item with its change relative to the preceding history entry.
    """

    previous_price: Optional[Decimal] = None
    previous_stock: Optional[int] = None
    price_change_percentage: Optional[Decimal] = None


class AnnotatedItem(Item):
    """
    An item classified against the current aggregate average price.
    """

    price_category: PriceCategory
    price_percentage_of_average: Optional[Decimal] = None


class RankedItem(Item):
    """
    An item ranked by price within a price range.
    """

    price_rank: int = Field(..., description="1 = cheapest; ties share a rank.")
    price_percentile: float = Field(..., description="PERCENT_RANK within the range.")
    price_segment: PriceSegment


class StockAnnotatedItem(Item):
    """
    An item classified against the catalog-wide stock distribution.
    """

    stock_status: StockStatus
    stock_percentage_of_average: Optional[Decimal] = None
    average_stock: Decimal
    min_stock: int
    max_stock: int


class HistoryEntry(BaseModel):
    """
    Representation of a single row in the `item_history` table.
    """

    entry_id: Optional[int] = Field(None, description="Sequence number; set by the database.")
    item_id: int = Field(..., description="Item the entry describes; may no longer exist.")
    action: HistoryAction
    old_price: Optional[Decimal] = None
    new_price: Optional[Decimal] = None
    old_stock: Optional[int] = None
    new_stock: Optional[int] = None
    action_at: Optional[datetime] = None

    model_config = _RECORD_CONFIG


class AggregateStats(BaseModel):
    """
    Representation of the singleton row in the `aggregate_stats` table.
    """

    total_items: int = 0
    average_price: Decimal = Decimal("0")
    last_updated: Optional[datetime] = None

    model_config = _RECORD_CONFIG


__all__ = [
    "AggregateStats",
    "AnnotatedItem",
    "HistoryAction",
    "HistoryEntry",
    "Item",
    "ItemDetail",
    "ItemInput",
    "ItemUpdate",
    "PriceCategory",
    "PriceSegment",
    "RankedItem",
    "StockAnnotatedItem",
    "StockStatus",
]
