"""Record store abstraction and implementations.

The Cassandra implementation lives in ``coursestream.store.cassandra`` and is
imported only when that backend is selected.
"""

from .base import Record, RecordStore
from .errors import StoreError, StoreErrorKind
from .memory import InMemoryRecordStore
from .tables import TABLES, TableSpec


__all__ = [
    "TABLES",
    "InMemoryRecordStore",
    "Record",
    "RecordStore",
    "StoreError",
    "StoreErrorKind",
    "TableSpec",
]
