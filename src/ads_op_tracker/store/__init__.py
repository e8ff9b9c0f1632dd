"""Operation record stores."""

from ads_op_tracker.store.base import OperationFilter, OperationStore, apply_filter
from ads_op_tracker.store.memory import InMemoryOperationStore
from ads_op_tracker.store.sqlite import SqliteOperationStore

__all__ = [
    "InMemoryOperationStore",
    "OperationFilter",
    "OperationStore",
    "SqliteOperationStore",
    "apply_filter",
]
