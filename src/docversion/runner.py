"""Lazy, per-record migration.

:class:`DocumentMigrationRunner` walks a raw record along its type's
migration chain until it reaches the target version, stamping each
intermediate version. It runs when a record is loaded; there is no bulk
backfill.

A version between two migrations has the schema of the migration below it,
so records and targets may sit anywhere up to the latest migration version.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

from docversion.base import (
    DocumentVersion,
    Migration,
    MigrationFailedError,
    MigrationPathNotFoundError,
    VersionLike,
    document_type_of,
)
from docversion.locators import MigrationLocator
from docversion.service import VersionService

logger = logging.getLogger(__name__)


class DocumentMigrationRunner:
    """Migrates raw records up or down their migration chain.

    Example:
        >>> runner = DocumentMigrationRunner(service, locator)
        >>> record = {"name": "Ada Lovelace"}
        >>> runner.run("customer", record)
        DocumentVersion(major=1, minor=1, revision=0)
        >>> record["Version"]
        '1.1.0'
    """

    def __init__(
        self,
        service: VersionService,
        migration_locator: MigrationLocator | None = None,
    ) -> None:
        self._service = service
        self._locator = migration_locator or service.migration_locator

    def default_target(self, document_type: Any) -> DocumentVersion:
        """Get the version records of a type are migrated to by default.

        This is the runtime version of the type, capped at its latest
        migration version.
        """
        document_type = document_type_of(document_type)
        current = self._service.get_current_or_latest_migration_version(document_type)
        latest = self._locator.get_latest_version(document_type)
        return current if current < latest else latest

    def _target(self, document_type: str, target: VersionLike | None) -> DocumentVersion:
        if target is None:
            return self.default_target(document_type)
        return DocumentVersion.coerce(target)

    def needs_migration(
        self,
        document_type: Any,
        record: MutableMapping[str, Any],
        target: VersionLike | None = None,
    ) -> bool:
        """Check whether a record is off its target version."""
        document_type = document_type_of(document_type)
        version = self._service.get_version_or_default(record)
        return version != self._target(document_type, target)

    def pending_migrations(
        self,
        document_type: Any,
        record: MutableMapping[str, Any],
        target: VersionLike | None = None,
    ) -> list[Migration]:
        """List the steps that :meth:`run` would apply, in order.

        Steps of a downgrade are listed highest first.
        """
        document_type = document_type_of(document_type)
        version = self._service.get_version_or_default(record)
        to_version = self._target(document_type, target)

        if version < to_version:
            return self._locator.get_migrations_between(document_type, version, to_version)
        if version > to_version:
            steps = self._locator.get_migrations_between(document_type, to_version, version)
            return list(reversed(steps))
        return []

    def run(
        self,
        document_type: Any,
        record: MutableMapping[str, Any],
        target: VersionLike | None = None,
    ) -> DocumentVersion:
        """Migrate a record in place to ``target``.

        Args:
            document_type: Type identifier, document class or instance.
            record: Raw record; mutated and re-stamped.
            target: Version to reach. Defaults to :meth:`default_target`.

        Returns:
            The version the record ends at.

        Raises:
            VersionFormatError: If the record's stamp is malformed.
            MigrationPathNotFoundError: If the record or an explicit target
                lies beyond the latest migration of the type.
            MigrationFailedError: If a migration step raises.
        """
        document_type = document_type_of(document_type)
        version = self._service.get_version_or_default(record)
        to_version = self._target(document_type, target)

        if version == to_version:
            return version

        latest = self._locator.get_latest_version(document_type)
        if version > latest or to_version > latest:
            raise MigrationPathNotFoundError(document_type, version, to_version)

        if version < to_version:
            self._migrate_up(document_type, record, version, to_version)
        else:
            self._migrate_down(document_type, record, version, to_version)

        self._service.set_version(record, to_version)
        return to_version

    def _migrate_up(
        self,
        document_type: str,
        record: MutableMapping[str, Any],
        version: DocumentVersion,
        to_version: DocumentVersion,
    ) -> None:
        steps = self._locator.get_migrations_between(document_type, version, to_version)

        for migration in steps:
            _apply(migration, "up", record)
            self._service.set_version(record, migration.version)
            logger.debug(f"Applied migration: {document_type} -> {migration.version}")

    def _migrate_down(
        self,
        document_type: str,
        record: MutableMapping[str, Any],
        version: DocumentVersion,
        to_version: DocumentVersion,
    ) -> None:
        steps = list(
            reversed(
                self._locator.get_migrations_between(document_type, to_version, version)
            )
        )

        for index, migration in enumerate(steps):
            _apply(migration, "down", record)
            # The last step leaves the record at the target itself
            last_version = self._service.determine_last_version(to_version, steps, index)
            self._service.set_version(record, last_version)
            logger.debug(
                f"Reverted migration: {document_type} {migration.version} -> {last_version}"
            )


def _apply(migration: Migration, direction: str, record: MutableMapping[str, Any]) -> None:
    try:
        getattr(migration, direction)(record)
    except Exception as e:
        raise MigrationFailedError(
            migration.document_type, migration.version, f"{direction}: {e}"
        ) from e
