"""
Persistence package for the Inventory Ledger.

The transactional store and the two records it keeps in lockstep with the item
table: the audit log and the aggregate statistics row.
"""

from inventory_ledger.persistence.aggregate_stats import AggregateStatsRecord
from inventory_ledger.persistence.audit_log import AuditLog
from inventory_ledger.persistence.store import Mutation, TransactionalStore

__all__ = [
    "AggregateStatsRecord",
    "AuditLog",
    "Mutation",
    "TransactionalStore",
]
