"""In-memory record store.

Data is not persisted between sessions. Useful for testing and development.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any

from docversion.stores.base import RecordStore, StoreConfig, StoreNotFoundError


@dataclass
class MemoryConfig(StoreConfig):
    """Configuration for memory store.

    Attributes:
        deep_copy: Whether to deep copy records on put/get.
    """

    deep_copy: bool = True


class MemoryRecordStore(RecordStore):
    """Keeps raw records in a dictionary.

    Example:
        >>> store = MemoryRecordStore()
        >>> store.put_record("c-1", {"name": "Ada"})
        >>> store.get_record("c-1")
        {'name': 'Ada'}
    """

    def __init__(self, deep_copy: bool = True, namespace: str = "default") -> None:
        super().__init__(MemoryConfig(namespace=namespace, deep_copy=deep_copy))
        self._data: dict[str, dict[str, Any]] = {}

    @classmethod
    def _default_config(cls) -> MemoryConfig:
        return MemoryConfig()

    def _copy(self, record: dict[str, Any]) -> dict[str, Any]:
        return deepcopy(record) if self._config.deep_copy else record

    def get_record(self, record_id: str) -> dict[str, Any]:
        self.initialize()
        if record_id not in self._data:
            raise StoreNotFoundError("Record", record_id)
        return self._copy(self._data[record_id])

    def put_record(self, record_id: str, record: dict[str, Any]) -> None:
        self.initialize()
        self._data[record_id] = self._copy(record)

    def delete(self, record_id: str) -> bool:
        self.initialize()
        return self._data.pop(record_id, None) is not None

    def list_ids(self) -> list[str]:
        self.initialize()
        return list(self._data.keys())

    def exists(self, record_id: str) -> bool:
        self.initialize()
        return record_id in self._data
