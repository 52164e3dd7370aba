"""Base classes and interfaces for document versioning.

This module defines the version value type, the migration interface and the
exceptions shared by every part of the package.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Union, runtime_checkable


# =============================================================================
# Exceptions
# =============================================================================


class DocumentVersionError(Exception):
    """Base exception for all docversion errors."""

    pass


class VersionFormatError(DocumentVersionError, ValueError):
    """Raised when a version string cannot be parsed."""

    def __init__(self, value: Any, reason: str = "") -> None:
        self.value = value
        message = f"Invalid version string: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class VersionStringTooLongError(VersionFormatError):
    """Raised when a version string has more than three components."""

    def __init__(self, value: Any) -> None:
        super().__init__(value, "at most major.minor.revision is allowed")


class VersionViolationError(DocumentVersionError):
    """Raised when a document carries a version the running code cannot place.

    The stamped version matches neither the runtime target nor the latest
    migration version, and the document is not unstamped.
    """

    def __init__(
        self,
        current_version: "DocumentVersion",
        document_version: "DocumentVersion",
        latest_version: "DocumentVersion",
    ) -> None:
        self.current_version = current_version
        self.document_version = document_version
        self.latest_version = latest_version
        super().__init__(
            f"Document version {document_version} is neither the current "
            f"version {current_version} nor the latest version {latest_version}"
        )


class DuplicateVersionError(DocumentVersionError):
    """Raised when two migrations for one document type share a version."""

    def __init__(self, document_type: str, version: "DocumentVersion") -> None:
        self.document_type = document_type
        self.version = version
        super().__init__(
            f"Migration {version} is already registered for {document_type}"
        )


class MigrationError(DocumentVersionError):
    """Base exception for errors raised while migrating a record."""

    pass


class MigrationPathNotFoundError(MigrationError):
    """Raised when no chain of migrations reaches the target version."""

    def __init__(
        self,
        document_type: str,
        from_version: "DocumentVersion",
        to_version: "DocumentVersion",
    ) -> None:
        self.document_type = document_type
        self.from_version = from_version
        self.to_version = to_version
        super().__init__(
            f"No migration path for {document_type} from version "
            f"{from_version} to version {to_version}"
        )


class MigrationFailedError(MigrationError):
    """Raised when a single migration step fails."""

    def __init__(
        self,
        document_type: str,
        version: "DocumentVersion",
        message: str,
    ) -> None:
        self.document_type = document_type
        self.version = version
        super().__init__(
            f"Migration {version} of {document_type} failed: {message}"
        )


class DuplicateSerializerError(DocumentVersionError):
    """Raised when a serializer is registered twice for the same type."""

    def __init__(self, value_type: type) -> None:
        self.value_type = value_type
        super().__init__(
            f"A serializer is already registered for {value_type.__name__}"
        )


# =============================================================================
# Version value type
# =============================================================================


_MAX_PARTS = 3


@dataclass(frozen=True, order=True)
class DocumentVersion:
    """A schema version stamped on a document.

    Versions are ``major.minor.revision`` triples ordered component by
    component. ``0.0.0`` is reserved as the "never stamped" sentinel returned
    by :meth:`default`; it sorts below every other version.

    Versions only compare equal to other versions. Strings must go through
    :meth:`parse` or :meth:`coerce` first.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        revision: Revision number.
    """

    major: int = 0
    minor: int = 0
    revision: int = 0

    def __post_init__(self) -> None:
        for part in (self.major, self.minor, self.revision):
            if not isinstance(part, int) or isinstance(part, bool) or part < 0:
                raise VersionFormatError(
                    (self.major, self.minor, self.revision),
                    "components must be non-negative integers",
                )

    def __str__(self) -> str:
        """Format as version string."""
        return f"{self.major}.{self.minor}.{self.revision}"

    @classmethod
    def parse(cls, version_str: str) -> "DocumentVersion":
        """Parse a version string.

        Args:
            version_str: Version string (e.g., "1.2.3", "2.0", "3").

        Returns:
            DocumentVersion instance.

        Raises:
            VersionFormatError: If the string is empty or malformed.
            VersionStringTooLongError: If it has more than three components.
        """
        if not isinstance(version_str, str) or not version_str.strip():
            raise VersionFormatError(version_str, "empty")

        parts = version_str.strip().split(".")
        if len(parts) > _MAX_PARTS:
            raise VersionStringTooLongError(version_str)

        numbers = []
        for part in parts:
            if not (part.isascii() and part.isdigit()):
                raise VersionFormatError(version_str, f"{part!r} is not a number")
            numbers.append(int(part))

        return cls(*numbers)

    @classmethod
    def default(cls) -> "DocumentVersion":
        """Return the "never stamped" sentinel."""
        return _DEFAULT

    @classmethod
    def coerce(cls, value: "VersionLike | None") -> "DocumentVersion":
        """Convert a version-like value to a DocumentVersion.

        ``None`` becomes the default sentinel, strings are parsed.
        """
        if value is None:
            return _DEFAULT
        if isinstance(value, DocumentVersion):
            return value
        return cls.parse(value)

    @property
    def is_default(self) -> bool:
        """Whether this is the "never stamped" sentinel."""
        return self == _DEFAULT


_DEFAULT = DocumentVersion(0, 0, 0)

VersionLike = Union[DocumentVersion, str]


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class Document(Protocol):
    """Protocol for typed documents that carry a schema version."""

    version: VersionLike


def document_type_of(obj: Any) -> str:
    """Return the stable identifier of a document type.

    Args:
        obj: A type identifier string, a document class or a document instance.

    Returns:
        The ``__document_type__`` attribute when the class defines one,
        otherwise ``"<module>.<qualname>"``. Strings are returned unchanged.
    """
    if isinstance(obj, str):
        return obj

    cls = obj if isinstance(obj, type) else type(obj)
    explicit = getattr(cls, "__document_type__", None)
    if explicit:
        return str(explicit)
    return f"{cls.__module__}.{cls.__qualname__}"


# =============================================================================
# Migrations
# =============================================================================


# A migration step mutates a raw record in place
RecordFunc = Callable[[dict[str, Any]], None]


class Migration(ABC):
    """Abstract base class for a single migration step.

    A migration belongs to one document type and leaves the record at
    :attr:`version` once :meth:`up` has run.

    Example:
        >>> class SplitName(Migration):
        ...     document_type = "customer"
        ...     version = DocumentVersion(1, 1, 0)
        ...
        ...     def up(self, record: dict) -> None:
        ...         first, _, last = record.pop("name", "").partition(" ")
        ...         record["first_name"] = first
        ...         record["last_name"] = last
    """

    document_type: str
    version: DocumentVersion

    @abstractmethod
    def up(self, record: dict[str, Any]) -> None:
        """Upgrade ``record`` in place to :attr:`version`."""
        pass

    def down(self, record: dict[str, Any]) -> None:
        """Revert :meth:`up` in place.

        Raises:
            NotImplementedError: If the migration cannot be reversed.
        """
        raise NotImplementedError(
            f"Migration {self.version} of {self.document_type} is not reversible"
        )

    @property
    def description(self) -> str:
        """Human-readable description of this migration."""
        return f"Migrate {self.document_type} to {self.version}"

    @property
    def reversible(self) -> bool:
        """Whether :meth:`down` is overridden."""
        return type(self).down is not Migration.down

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.document_type}@{self.version}>"


class FunctionalMigration(Migration):
    """A migration defined by plain functions.

    Example:
        >>> def add_currency(record: dict) -> None:
        ...     record.setdefault("currency", "EUR")
        >>>
        >>> migration = FunctionalMigration("order", "1.1.0", add_currency)
    """

    def __init__(
        self,
        document_type: Any,
        version: VersionLike,
        up_func: RecordFunc,
        down_func: RecordFunc | None = None,
        description: str = "",
    ) -> None:
        """Initialize the migration.

        Args:
            document_type: Type identifier, document class or instance.
            version: Version the record is left at after ``up_func``.
            up_func: Function mutating a record to ``version``.
            down_func: Optional function reverting ``up_func``.
            description: Human-readable description.
        """
        self.document_type = document_type_of(document_type)
        self.version = DocumentVersion.coerce(version)
        self._up_func = up_func
        self._down_func = down_func
        self._description = description

    def up(self, record: dict[str, Any]) -> None:
        self._up_func(record)

    def down(self, record: dict[str, Any]) -> None:
        if self._down_func is None:
            return super().down(record)
        self._down_func(record)

    @property
    def description(self) -> str:
        return self._description or super().description

    @property
    def reversible(self) -> bool:
        return self._down_func is not None
