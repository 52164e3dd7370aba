"""Record stores and the versioned document store built on top of them.

Example:
    >>> from docversion.stores import MemoryRecordStore, MigratingStore
    >>>
    >>> store = MigratingStore(MemoryRecordStore(), Customer, service)
    >>> store.save(customer)
    >>> store.load(customer.id)  # migrated if needed
"""

from docversion.stores.base import (
    IncompatibleVersionError,
    RecordStore,
    StoreConfig,
    StoreError,
    StoreNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from docversion.stores.filesystem import FileSystemRecordStore
from docversion.stores.memory import MemoryRecordStore
from docversion.stores.migrating import LoadResult, MigratingStore

__all__ = [
    # Base classes
    "RecordStore",
    "StoreConfig",
    # Errors
    "StoreError",
    "StoreNotFoundError",
    "StoreReadError",
    "StoreWriteError",
    "IncompatibleVersionError",
    # Backends
    "MemoryRecordStore",
    "FileSystemRecordStore",
    # Versioned store
    "MigratingStore",
    "LoadResult",
]
