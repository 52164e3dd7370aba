"""Base classes for raw record stores.

A record store persists untyped ``dict`` records by identifier. It knows
nothing about versions; :class:`docversion.stores.migrating.MigratingStore`
adds versioning on top of any record store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


# =============================================================================
# Exceptions
# =============================================================================


class StoreError(Exception):
    """Base exception for all store-related errors."""

    pass


class StoreNotFoundError(StoreError):
    """Raised when a requested record is not found in the store."""

    def __init__(self, item_type: str, identifier: str) -> None:
        self.item_type = item_type
        self.identifier = identifier
        super().__init__(f"{item_type} not found: {identifier}")


class StoreWriteError(StoreError):
    """Raised when writing to store fails."""

    pass


class StoreReadError(StoreError):
    """Raised when reading from store fails."""

    pass


class IncompatibleVersionError(StoreError):
    """Raised when a record is out of date and auto-migration is off."""

    def __init__(self, identifier: str, record_version: str, target_version: str) -> None:
        self.identifier = identifier
        self.record_version = record_version
        self.target_version = target_version
        super().__init__(
            f"Record {identifier} is at version {record_version}, "
            f"expected {target_version}"
        )


# =============================================================================
# Configuration and protocols
# =============================================================================


@dataclass
class StoreConfig:
    """Base configuration for all stores.

    Attributes:
        namespace: Namespace isolating collections of records.
        metadata: Additional metadata for the backend.
    """

    namespace: str = "default"
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Serializable(Protocol):
    """Protocol for documents that can be converted to/from records."""

    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Serializable": ...


# =============================================================================
# Abstract record store
# =============================================================================


class RecordStore(ABC):
    """Abstract base class for raw record stores."""

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or self._default_config()
        self._initialized = False

    @classmethod
    def _default_config(cls) -> StoreConfig:
        return StoreConfig()

    @property
    def config(self) -> StoreConfig:
        """Get the store configuration."""
        return self._config

    def initialize(self) -> None:
        """Initialize the store on first use."""
        if not self._initialized:
            self._do_initialize()
            self._initialized = True

    def _do_initialize(self) -> None:
        """Perform actual initialization. Override in subclasses."""
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass

    def __enter__(self) -> "RecordStore":
        self.initialize()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @abstractmethod
    def get_record(self, record_id: str) -> dict[str, Any]:
        """Retrieve a record.

        Raises:
            StoreNotFoundError: If the record doesn't exist.
            StoreReadError: If reading fails.
        """
        pass

    @abstractmethod
    def put_record(self, record_id: str, record: dict[str, Any]) -> None:
        """Insert or replace a record.

        Raises:
            StoreWriteError: If writing fails.
        """
        pass

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Delete a record; returns False if it didn't exist."""
        pass

    @abstractmethod
    def list_ids(self) -> list[str]:
        """List all record identifiers."""
        pass

    def exists(self, record_id: str) -> bool:
        """Check if a record exists."""
        return record_id in self.list_ids()

    def count(self) -> int:
        return len(self.list_ids())
