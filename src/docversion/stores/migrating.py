"""Versioned document store.

:class:`MigratingStore` wraps a :class:`RecordStore`. Records are migrated
lazily when they are loaded; documents are version-checked and stamped when
they are saved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, TypeVar

from docversion.base import DocumentVersion, DocumentVersionError, document_type_of
from docversion.config import MigrationSettings
from docversion.runner import DocumentMigrationRunner
from docversion.serialization import MigrationInterceptor, SerializerRegistry
from docversion.service import VersionService
from docversion.stores.base import (
    IncompatibleVersionError,
    RecordStore,
    StoreError,
    StoreWriteError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class LoadResult(Generic[T]):
    """Documents loaded by :meth:`MigratingStore.load_many`.

    Attributes:
        documents: Loaded documents by identifier.
        errors: Error message per identifier that failed to load.
    """

    documents: dict[str, T] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors


class MigratingStore(Generic[T]):
    """A typed document store with lazy, per-document migration.

    Documents must have an ``id`` and a ``version`` attribute and implement
    ``to_dict``/``from_dict``. The version is kept in the record under the
    configured version field name.

    Example:
        >>> store = MigratingStore(MemoryRecordStore(), Customer, service, runner)
        >>> store.save(Customer(id="c-1", name="Ada Lovelace"))
        >>> store.load("c-1").version
        '1.1.0'
    """

    def __init__(
        self,
        base_store: RecordStore,
        document_cls: type[T],
        service: VersionService,
        runner: DocumentMigrationRunner | None = None,
        settings: MigrationSettings | None = None,
        registry: SerializerRegistry | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            base_store: The underlying record store.
            document_cls: Document class built from loaded records.
            service: Version service.
            runner: Migration runner (built from ``service`` if None).
            settings: ``auto_migrate`` and ``write_back`` are read from it.
            registry: Registry asked for the load/save interceptor of the
                document type. A plain interceptor is used otherwise.
        """
        self._base_store = base_store
        self._document_cls = document_cls
        self._document_type = document_type_of(document_cls)
        self._service = service
        self._runner = runner or DocumentMigrationRunner(service)
        self._settings = settings or MigrationSettings()
        interceptor = (
            registry.lookup_interceptor(self._document_type) if registry else None
        )
        self._interceptor = interceptor or MigrationInterceptor(
            self._document_type, service, self._runner
        )

    @property
    def document_type(self) -> str:
        return self._document_type

    @property
    def collection_version(self) -> DocumentVersion:
        """Version reported for the whole collection."""
        return self._service.get_collection_version(self._document_type)

    def save(self, item: T) -> str:
        """Check or stamp the version of ``item`` and persist it.

        Returns:
            The identifier of the saved document.

        Raises:
            VersionViolationError: If the document's version is not
                recognised.
        """
        self._interceptor.on_save(item)

        record = item.to_dict()  # type: ignore[attr-defined]
        record.pop("version", None)
        self._service.set_version(record, DocumentVersion.coerce(item.version))  # type: ignore[attr-defined]

        item_id = str(item.id)  # type: ignore[attr-defined]
        self._base_store.put_record(item_id, record)
        return item_id

    def load(self, item_id: str) -> T:
        """Load a document, migrating its record when it is out of date.

        Raises:
            StoreNotFoundError: If the record doesn't exist.
            IncompatibleVersionError: If the record is out of date and
                ``auto_migrate`` is off.
            MigrationError: If the record cannot be migrated.
        """
        record = self._base_store.get_record(item_id)

        if self._runner.needs_migration(self._document_type, record):
            if not self._settings.auto_migrate:
                target = self._runner.default_target(self._document_type)
                raise IncompatibleVersionError(
                    item_id,
                    str(self._service.get_version_or_default(record)),
                    str(target),
                )

            self._interceptor.on_load(record)

            if self._settings.write_back:
                try:
                    self._base_store.put_record(item_id, record)
                except StoreWriteError as e:
                    logger.warning(f"Failed to save migrated record {item_id}: {e}")

        return self._build(record)

    def load_many(self, item_ids: Iterable[str] | None = None) -> LoadResult[T]:
        """Load several documents; a failing document does not stop the rest."""
        result: LoadResult[T] = LoadResult()
        ids = self._base_store.list_ids() if item_ids is None else list(item_ids)

        for item_id in ids:
            try:
                result.documents[item_id] = self.load(item_id)
            except (StoreError, DocumentVersionError) as e:
                logger.error(f"Failed to load {self._document_type} {item_id}: {e}")
                result.errors[item_id] = str(e)

        return result

    def delete(self, item_id: str) -> bool:
        return self._base_store.delete(item_id)

    def exists(self, item_id: str) -> bool:
        return self._base_store.exists(item_id)

    def get_migration_status(self) -> dict[str, Any]:
        """Summarize stamped versions across the stored records."""
        version_counts: dict[str, int] = {}
        needs_migration = 0
        ids = self._base_store.list_ids()

        for item_id in ids:
            record = self._base_store.get_record(item_id)
            try:
                version = str(self._service.get_version_or_default(record))
                stale = self._runner.needs_migration(self._document_type, record)
            except DocumentVersionError:
                version, stale = "invalid", True

            needs_migration += int(stale)
            version_counts[version] = version_counts.get(version, 0) + 1

        return {
            "document_type": self._document_type,
            "collection_version": str(self.collection_version),
            "current_version": str(
                self._service.get_current_or_latest_migration_version(self._document_type)
            ),
            "total_items": len(ids),
            "needs_migration": needs_migration,
            "version_distribution": version_counts,
        }

    def _build(self, record: dict[str, Any]) -> T:
        version = self._service.get_version_or_default(record)
        data = dict(record)
        data.pop(self._service.version_field_name, None)
        data["version"] = str(version)
        return self._document_cls.from_dict(data)  # type: ignore[attr-defined]

    def close(self) -> None:
        self._base_store.close()

    def __enter__(self) -> "MigratingStore[T]":
        self._base_store.initialize()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
