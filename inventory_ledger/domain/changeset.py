"""
Changesets: the unit a mutation applies to the ledger.

A changeset records one item mutation as a tagged before/after pair. The store
turns it into exactly one history entry and one incremental aggregate update,
inside the transaction that mutated the item.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from inventory_ledger.domain.models import AggregateStats, HistoryAction, HistoryEntry

PRICE_SCALE = Decimal("0.01")
AVERAGE_SCALE = Decimal("0.000000000001")


@dataclass(frozen=True)
class Snapshot:
    """Price and stock of an item at one point in time."""

    price: Decimal
    stock_quantity: int


@dataclass(frozen=True)
class Changeset:
    item_id: int
    action: HistoryAction
    before: Optional[Snapshot] = None
    after: Optional[Snapshot] = None

    def __post_init__(self) -> None:
        expected = {
            HistoryAction.INSERT: (False, True),
            HistoryAction.UPDATE: (True, True),
            HistoryAction.DELETE: (True, False),
        }[self.action]
        actual = (self.before is not None, self.after is not None)
        if actual != expected:
            raise ValueError(
                f"{self.action.value} changeset requires before={expected[0]}, after={expected[1]}"
            )

    @classmethod
    def insert(cls, item_id: int, after: Snapshot) -> "Changeset":
        return cls(item_id=item_id, action=HistoryAction.INSERT, after=after)

    @classmethod
    def update(cls, item_id: int, before: Snapshot, after: Snapshot) -> "Changeset":
        return cls(item_id=item_id, action=HistoryAction.UPDATE, before=before, after=after)

    @classmethod
    def delete(cls, item_id: int, before: Snapshot) -> "Changeset":
        return cls(item_id=item_id, action=HistoryAction.DELETE, before=before)

    def history_entry(self) -> HistoryEntry:
        return HistoryEntry(
            item_id=self.item_id,
            action=self.action,
            old_price=self.before.price if self.before else None,
            new_price=self.after.price if self.after else None,
            old_stock=self.before.stock_quantity if self.before else None,
            new_stock=self.after.stock_quantity if self.after else None,
        )


def _price_total(stats: AggregateStats) -> Decimal:
    # Prices are stored to the cent, so the exact total is average * count rounded to cents.
    return (stats.average_price * stats.total_items).quantize(PRICE_SCALE, rounding=ROUND_HALF_UP)


def apply_changeset(
    stats: AggregateStats, changeset: Changeset, now: Optional[datetime] = None
) -> AggregateStats:
    """
    Return the aggregate after ``changeset``, using the incremental formulas.

    Insert: avg' = (avg * n + p) / (n + 1), n' = n + 1
    Update: avg' = (avg * n - p_old + p_new) / n
    Delete: avg' = (avg * n - p_old) / (n - 1), or 0 when the last item goes

    ``avg * n`` is recovered to the cent before each step and the new average is
    rounded to ``AVERAGE_SCALE``, so the stored average is always the exact mean
    of the current prices rounded to that scale.
    """
    count = stats.total_items
    total = _price_total(stats)

    if changeset.action is HistoryAction.INSERT:
        new_count = count + 1
        total += changeset.after.price
    elif changeset.action is HistoryAction.UPDATE:
        if count < 1:
            raise ValueError("cannot apply an update to an empty aggregate")
        new_count = count
        total += changeset.after.price - changeset.before.price
    else:
        if count < 1:
            raise ValueError("cannot apply a delete to an empty aggregate")
        new_count = count - 1
        total -= changeset.before.price

    if new_count:
        new_average = (total / new_count).quantize(AVERAGE_SCALE, rounding=ROUND_HALF_UP)
    else:
        new_average = Decimal("0")

    return AggregateStats(
        total_items=new_count,
        average_price=new_average,
        last_updated=now if now is not None else stats.last_updated,
    )


__all__ = ["AVERAGE_SCALE", "Changeset", "Snapshot", "apply_changeset"]
