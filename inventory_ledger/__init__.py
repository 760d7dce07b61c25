"""
Inventory Ledger - transactional item catalog with an audit trail and aggregates.

This package keeps three things consistent in PostgreSQL:

- The item catalog (name, description, price, stock)
- An append-only history of every insert, update and delete
- A running item count and average price, updated incrementally

Every mutation touches all three inside one transaction. Read-side projections
classify items against the aggregate (above/below average price, price
segments by percentile, low-stock status).
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from inventory_ledger.analytics import AnalyticsProjector
from inventory_ledger.config import Settings, get_settings
from inventory_ledger.domain import (
    AggregateStats,
    AnnotatedItem,
    HistoryAction,
    HistoryEntry,
    Item,
    ItemDetail,
    ItemInput,
    ItemUpdate,
    RankedItem,
    StockAnnotatedItem,
)
from inventory_ledger.errors import (
    ConnectionError,
    ErrorKind,
    InventoryError,
    NotFoundError,
    Result,
    TransactionError,
    ValidationError,
    capture,
)
from inventory_ledger.infrastructure import ConnectionManager, apply_schema
from inventory_ledger.persistence import TransactionalStore
from inventory_ledger.service import InventoryService
from inventory_ledger.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Core components
    "ConnectionManager",
    "TransactionalStore",
    "AnalyticsProjector",
    "InventoryService",
    "apply_schema",
    # Domain
    "AggregateStats",
    "AnnotatedItem",
    "HistoryAction",
    "HistoryEntry",
    "Item",
    "ItemDetail",
    "ItemInput",
    "ItemUpdate",
    "RankedItem",
    "StockAnnotatedItem",
    # Errors
    "ErrorKind",
    "InventoryError",
    "ValidationError",
    "NotFoundError",
    "ConnectionError",
    "TransactionError",
    "Result",
    "capture",
    # Logging
    "configure_logging",
    "get_logger",
]
