"""Schema versions and lazy migrations for stored documents.

Example:
    >>> from docversion import (
    ...     MigrationLocator,
    ...     RuntimeVersionLocator,
    ...     StartUpVersionLocator,
    ...     VersionService,
    ...     DocumentMigrationRunner,
    ... )
    >>>
    >>> locator = MigrationLocator()
    >>>
    >>> @locator.register("customer", "1.0.0")
    ... def add_email(record: dict) -> None:
    ...     record.setdefault("email", None)
    >>>
    >>> @locator.register("customer", "1.1.0")
    ... def split_name(record: dict) -> None:
    ...     first, _, last = record.pop("name", "").partition(" ")
    ...     record["first_name"], record["last_name"] = first, last
    >>>
    >>> service = VersionService(
    ...     locator, RuntimeVersionLocator(), StartUpVersionLocator()
    ... )
    >>> runner = DocumentMigrationRunner(service)
    >>>
    >>> record = {"name": "Ada Lovelace"}
    >>> _ = runner.run("customer", record)
    >>> record["Version"]
    '1.1.0'
"""

from docversion.base import (
    Document,
    DocumentVersion,
    DocumentVersionError,
    DuplicateSerializerError,
    DuplicateVersionError,
    FunctionalMigration,
    Migration,
    MigrationError,
    MigrationFailedError,
    MigrationPathNotFoundError,
    VersionFormatError,
    VersionStringTooLongError,
    VersionViolationError,
    document_type_of,
)
from docversion.config import ConfigError, MigrationSettings, load_settings
from docversion.locators import (
    MigrationLocator,
    RuntimeVersionLocator,
    StartUpVersionLocator,
    VersionLocator,
    get_default_locator,
    register,
    register_classes,
    runtime_version,
    startup_version,
)
from docversion.runner import DocumentMigrationRunner
from docversion.serialization import (
    DocumentVersionSerializer,
    MigrationInterceptor,
    MigrationInterceptorProvider,
    Registrar,
    SerializerRegistry,
    get_default_registry,
    reset_default_registry,
)
from docversion.service import VersionService, build_version_service

__version__ = "0.1.0"

__all__ = [
    # Version value type
    "DocumentVersion",
    "Document",
    "document_type_of",
    # Migrations
    "Migration",
    "FunctionalMigration",
    # Errors
    "DocumentVersionError",
    "VersionFormatError",
    "VersionStringTooLongError",
    "VersionViolationError",
    "DuplicateVersionError",
    "DuplicateSerializerError",
    "MigrationError",
    "MigrationFailedError",
    "MigrationPathNotFoundError",
    "ConfigError",
    # Locators
    "MigrationLocator",
    "VersionLocator",
    "RuntimeVersionLocator",
    "StartUpVersionLocator",
    "get_default_locator",
    "register",
    "register_classes",
    "runtime_version",
    "startup_version",
    # Service and runner
    "VersionService",
    "build_version_service",
    "DocumentMigrationRunner",
    # Configuration
    "MigrationSettings",
    "load_settings",
    # Registration
    "DocumentVersionSerializer",
    "MigrationInterceptor",
    "MigrationInterceptorProvider",
    "Registrar",
    "SerializerRegistry",
    "get_default_registry",
    "reset_default_registry",
]
