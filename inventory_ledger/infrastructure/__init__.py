"""
Infrastructure package for the Inventory Ledger.

Centralizes database connectivity and schema concerns. Keep this layer focused
on I/O and resource management, decoupled from store and analytics logic.
"""

from inventory_ledger.infrastructure.connection import ConnectionManager, acquire_with_retry
from inventory_ledger.infrastructure.schema import apply_schema, reset_data

__all__ = [
    "ConnectionManager",
    "acquire_with_retry",
    "apply_schema",
    "reset_data",
]
