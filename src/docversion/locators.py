"""Locators for migration chains and pinned versions.

The :class:`MigrationLocator` keeps the ordered chain of migrations of every
document type. :class:`RuntimeVersionLocator` and
:class:`StartUpVersionLocator` hold operator or code level pins that override
the chain's latest version.

Registration is expected to finish during start-up, before any version is
resolved. Neither locator synchronizes concurrent registration and lookup.
"""

from __future__ import annotations

import bisect
import logging
from typing import Any, Callable, Iterable, Mapping

from docversion.base import (
    DocumentVersion,
    DuplicateVersionError,
    FunctionalMigration,
    Migration,
    RecordFunc,
    VersionFormatError,
    VersionLike,
    document_type_of,
)

logger = logging.getLogger(__name__)


class MigrationLocator:
    """Registry of migration chains keyed by document type.

    Example:
        >>> locator = MigrationLocator()
        >>>
        >>> @locator.register("order", "1.1.0")
        ... def add_currency(record: dict) -> None:
        ...     record.setdefault("currency", "EUR")
        >>>
        >>> locator.get_latest_version("order")
        DocumentVersion(major=1, minor=1, revision=0)
    """

    def __init__(self) -> None:
        """Initialize the locator."""
        self._chains: dict[str, list[Migration]] = {}

    def add(self, migration: Migration) -> None:
        """Add a migration to its type's chain.

        Args:
            migration: The migration to add.

        Raises:
            DuplicateVersionError: If the type already has this version.
            VersionFormatError: If the migration targets the unset sentinel.
        """
        document_type = document_type_of(migration.document_type)
        version = migration.version

        if version.is_default:
            raise VersionFormatError(
                str(version), "the unset version cannot be a migration target"
            )

        chain = self._chains.setdefault(document_type, [])
        versions = [m.version for m in chain]
        index = bisect.bisect_left(versions, version)
        if index < len(chain) and chain[index].version == version:
            raise DuplicateVersionError(document_type, version)

        chain.insert(index, migration)
        logger.debug(f"Registered migration: {document_type} -> {version}")

    def register(
        self,
        document_type: Any,
        version: VersionLike,
        description: str = "",
        down: RecordFunc | None = None,
    ) -> Callable[[RecordFunc], RecordFunc]:
        """Decorator to register a migration function.

        Args:
            document_type: Type identifier, document class or instance.
            version: Version the record is left at.
            description: Human-readable description.
            down: Optional function reverting the migration.

        Returns:
            Decorator function.

        Example:
            >>> @locator.register("order", "2.0.0")
            ... def rename_total(record: dict) -> None:
            ...     record["amount"] = record.pop("total", 0)
        """

        def decorator(func: RecordFunc) -> RecordFunc:
            self.add(
                FunctionalMigration(
                    document_type,
                    version,
                    func,
                    down_func=down,
                    description=description or (func.__doc__ or "").strip(),
                )
            )
            return func

        return decorator

    def get_migrations(self, document_type: Any) -> list[Migration]:
        """Get the chain of a document type, ascending by version.

        Args:
            document_type: Type identifier, document class or instance.

        Returns:
            A copy of the chain; empty for unknown types.
        """
        return list(self._chains.get(document_type_of(document_type), ()))

    def get_latest_version(self, document_type: Any) -> DocumentVersion:
        """Get the highest version registered for a document type.

        Returns:
            The latest version, or the unset sentinel when the type has no
            migrations.
        """
        chain = self._chains.get(document_type_of(document_type))
        if not chain:
            return DocumentVersion.default()
        return chain[-1].version

    def get_migrations_between(
        self,
        document_type: Any,
        lower: VersionLike,
        upper: VersionLike,
    ) -> list[Migration]:
        """Get migrations with ``lower < version <= upper``, ascending."""
        low = DocumentVersion.coerce(lower)
        high = DocumentVersion.coerce(upper)
        return [
            m for m in self.get_migrations(document_type) if low < m.version <= high
        ]

    def document_types(self) -> list[str]:
        """List the document types that have migrations."""
        return sorted(t for t, chain in self._chains.items() if chain)

    def clear(self) -> None:
        """Remove every registered migration."""
        self._chains.clear()

    def __len__(self) -> int:
        """Get number of registered migrations."""
        return sum(len(chain) for chain in self._chains.values())

    def __contains__(self, document_type: Any) -> bool:
        """Check if a document type has migrations."""
        return bool(self._chains.get(document_type_of(document_type)))


class VersionLocator:
    """Pinned versions per document type.

    A pin overrides the latest migration version of a type. Lookups for a
    type without a pin return ``None``.

    Subclasses name the class attribute read by :meth:`register`.
    """

    attribute_name = "__pinned_version__"

    def __init__(self, pins: Mapping[Any, VersionLike] | None = None) -> None:
        self._pins: dict[str, DocumentVersion] = {}
        for document_type, version in (pins or {}).items():
            self.pin(document_type, version)

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, VersionLike] | None) -> "VersionLocator":
        """Build a locator from a ``{type: version}`` mapping."""
        return cls(mapping)

    def get_locate_or_none(self, document_type: Any) -> DocumentVersion | None:
        """Get the pinned version of a type, or ``None`` if it has none."""
        return self._pins.get(document_type_of(document_type))

    def pin(self, document_type: Any, version: VersionLike) -> None:
        """Pin a document type to a version."""
        key = document_type_of(document_type)
        self._pins[key] = DocumentVersion.coerce(version)
        logger.debug(f"Pinned {key} to {self._pins[key]} ({type(self).__name__})")

    def unpin(self, document_type: Any) -> None:
        """Remove the pin of a document type, if any."""
        self._pins.pop(document_type_of(document_type), None)

    def pins(self) -> dict[str, DocumentVersion]:
        """Get a copy of all pins."""
        return dict(self._pins)

    def register(self, *classes: type) -> None:
        """Pin every class that declares :attr:`attribute_name`.

        Classes without the attribute are skipped.
        """
        for cls in classes:
            version = getattr(cls, self.attribute_name, None)
            if version is not None:
                self.pin(cls, version)

    def __contains__(self, document_type: Any) -> bool:
        return document_type_of(document_type) in self._pins

    def __len__(self) -> int:
        return len(self._pins)


class RuntimeVersionLocator(VersionLocator):
    """Versions the running code targets, possibly below the latest migration."""

    attribute_name = "__runtime_version__"


class StartUpVersionLocator(VersionLocator):
    """Operator pins reported as the collection version of a type."""

    attribute_name = "__startup_version__"


def _version_decorator(attribute: str, version: VersionLike) -> Callable[[type], type]:
    parsed = DocumentVersion.coerce(version)

    def decorator(cls: type) -> type:
        setattr(cls, attribute, parsed)
        return cls

    return decorator


def runtime_version(version: VersionLike) -> Callable[[type], type]:
    """Class decorator declaring the runtime version of a document class.

    Example:
        >>> @runtime_version("1.5.0")
        ... class Order:
        ...     ...
        >>> RuntimeVersionLocator().register(Order)
    """
    return _version_decorator(RuntimeVersionLocator.attribute_name, version)


def startup_version(version: VersionLike) -> Callable[[type], type]:
    """Class decorator declaring the start-up version of a document class."""
    return _version_decorator(StartUpVersionLocator.attribute_name, version)


def register_classes(
    classes: Iterable[type],
    runtime_locator: RuntimeVersionLocator,
    startup_locator: StartUpVersionLocator,
) -> None:
    """Feed declared class versions into both locators."""
    classes = list(classes)
    runtime_locator.register(*classes)
    startup_locator.register(*classes)


# Global default locator
_default_locator = MigrationLocator()


def get_default_locator() -> MigrationLocator:
    """Get the default global migration locator."""
    return _default_locator


def register(
    document_type: Any,
    version: VersionLike,
    description: str = "",
    down: RecordFunc | None = None,
) -> Callable[[RecordFunc], RecordFunc]:
    """Register a migration in the default locator.

    Example:
        >>> from docversion import register
        >>>
        >>> @register("order", "1.1.0")
        ... def add_currency(record: dict) -> None:
        ...     record.setdefault("currency", "EUR")
    """
    return _default_locator.register(document_type, version, description, down)
