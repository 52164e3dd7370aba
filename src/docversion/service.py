"""Version resolution for documents and raw records.

:class:`VersionService` decides which version a document has, which version
it should be at, and which version a record reaches after the next migration
step. It keeps no state between calls apart from the version field name.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Sequence

from docversion.base import (
    Document,
    DocumentVersion,
    Migration,
    VersionViolationError,
    document_type_of,
)
from docversion.config import MigrationSettings
from docversion.locators import (
    MigrationLocator,
    RuntimeVersionLocator,
    StartUpVersionLocator,
    get_default_locator,
)

logger = logging.getLogger(__name__)


class VersionService:
    """Resolves and stamps document versions.

    Example:
        >>> service = VersionService(
        ...     locator, RuntimeVersionLocator(), StartUpVersionLocator()
        ... )
        >>> record = {"name": "Ada"}
        >>> service.get_version_or_default(record)
        DocumentVersion(major=0, minor=0, revision=0)
        >>> service.set_version(record, service.get_collection_version("customer"))
    """

    def __init__(
        self,
        migration_locator: MigrationLocator,
        runtime_locator: RuntimeVersionLocator,
        startup_locator: StartUpVersionLocator,
        settings: MigrationSettings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            migration_locator: Source of migration chains.
            runtime_locator: Runtime version pins.
            startup_locator: Start-up version pins.
            settings: Settings; only the version field name is read.
        """
        self._migration_locator = migration_locator
        self._runtime_locator = runtime_locator
        self._startup_locator = startup_locator
        self._version_field_name = (
            settings or MigrationSettings()
        ).resolved_version_field_name()

    @property
    def version_field_name(self) -> str:
        """The record key holding the version stamp."""
        return self._version_field_name

    @property
    def migration_locator(self) -> MigrationLocator:
        return self._migration_locator

    def get_version_field_name(self) -> str:
        """Get the record key holding the version stamp."""
        return self._version_field_name

    # -------------------------------------------------------------------------
    # Raw records
    # -------------------------------------------------------------------------

    def get_version_or_default(
        self, record: MutableMapping[str, Any]
    ) -> DocumentVersion:
        """Read the version stamp of a raw record.

        A missing, null or blank stamp yields the unset sentinel.

        Raises:
            VersionFormatError: If the stamp is present but malformed.
        """
        # A malformed non-blank stamp raises; it never reads as the sentinel
        return _read_version(record.get(self._version_field_name))

    def set_version(
        self, record: MutableMapping[str, Any], version: DocumentVersion
    ) -> None:
        """Write the version stamp of a raw record."""
        record[self._version_field_name] = str(version)

    # -------------------------------------------------------------------------
    # Type level versions
    # -------------------------------------------------------------------------

    def get_current_or_latest_migration_version(
        self, document_type: Any
    ) -> DocumentVersion:
        """Get the version the running code treats as authoritative.

        This is the runtime pin when present, else the latest migration.
        """
        current = self._runtime_locator.get_locate_or_none(document_type)
        if current is not None:
            return current
        return self._migration_locator.get_latest_version(document_type)

    def get_collection_version(self, document_type: Any) -> DocumentVersion:
        """Get the version reported for a whole collection.

        The start-up pin wins over every other version.
        """
        pinned = self._startup_locator.get_locate_or_none(document_type)
        if pinned is not None:
            return pinned
        return self.get_current_or_latest_migration_version(document_type)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def determine_version(self, instance: Document) -> None:
        """Check the version of a typed document, stamping new documents.

        Documents at the runtime version or at the latest migration version
        are left alone. Unstamped documents get the runtime version, capped
        at the latest version.

        Raises:
            VersionViolationError: If the document carries any other version.
        """
        document_type = document_type_of(instance)
        document_version = _read_version(instance.version)
        latest_version = self._migration_locator.get_latest_version(document_type)
        current_version = self._runtime_locator.get_locate_or_none(document_type)
        if current_version is None:
            current_version = latest_version

        if document_version == current_version:
            return

        if document_version == latest_version:
            return

        if document_version.is_default:
            stamp = current_version if current_version < latest_version else latest_version
            _stamp(instance, stamp)
            logger.debug(f"Stamped new {document_type} with version {stamp}")
            return

        raise VersionViolationError(current_version, document_version, latest_version)

    def determine_last_version(
        self,
        version: DocumentVersion,
        migrations: Sequence[Migration],
        current_index: int,
    ) -> DocumentVersion:
        """Get the version to stamp after the step at ``current_index``.

        Returns the version of the following migration, or ``version`` when
        ``current_index`` already points at the last migration. The caller
        keeps ``version``, ``migrations`` and ``current_index`` consistent.
        """
        if current_index != len(migrations) - 1:
            return migrations[current_index + 1].version
        return version


def _read_version(value: Any) -> DocumentVersion:
    if value is None:
        return DocumentVersion.default()
    if isinstance(value, DocumentVersion):
        return value

    text = str(value)
    if not text.strip():
        return DocumentVersion.default()
    return DocumentVersion.parse(text)


def _stamp(instance: Document, version: DocumentVersion) -> None:
    # String fields stay strings
    if isinstance(instance.version, DocumentVersion):
        instance.version = version
    else:
        instance.version = str(version)


def build_version_service(
    settings: MigrationSettings | None = None,
    migration_locator: MigrationLocator | None = None,
) -> VersionService:
    """Create a service whose locators are seeded from ``settings`` pins.

    Args:
        settings: Settings; defaults are used when omitted.
        migration_locator: Locator to use (the default locator if None).
    """
    settings = settings or MigrationSettings()
    return VersionService(
        migration_locator or get_default_locator(),
        RuntimeVersionLocator(settings.runtime_versions),
        StartUpVersionLocator(settings.startup_versions),
        settings,
    )
