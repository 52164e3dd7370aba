"""Registration hooks for the storage layer.

The storage layer looks up a serializer for :class:`DocumentVersion` values
and asks interceptor providers for load/save hooks per document type. Both are
installed once per process through :class:`Registrar`.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Protocol, runtime_checkable

from docversion.base import (
    Document,
    DocumentVersion,
    DuplicateSerializerError,
    document_type_of,
)
from docversion.runner import DocumentMigrationRunner
from docversion.service import VersionService

logger = logging.getLogger(__name__)


class DocumentVersionSerializer:
    """Converts versions to and from their stored string form."""

    value_type = DocumentVersion

    def serialize(self, version: DocumentVersion) -> str:
        return str(version)

    def deserialize(self, value: Any) -> DocumentVersion:
        """Parse a stored value; null or blank values give the unset version."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return DocumentVersion.default()
        return DocumentVersion.coerce(value)


@runtime_checkable
class Serializer(Protocol):
    """Protocol for value serializers."""

    def serialize(self, value: Any) -> Any: ...

    def deserialize(self, value: Any) -> Any: ...


class MigrationInterceptor:
    """Load and save hooks for one document type."""

    def __init__(
        self,
        document_type: str,
        service: VersionService,
        runner: DocumentMigrationRunner,
    ) -> None:
        self.document_type = document_type
        self._service = service
        self._runner = runner

    def on_load(self, record: MutableMapping[str, Any]) -> DocumentVersion:
        """Migrate a raw record that is being loaded."""
        return self._runner.run(self.document_type, record)

    def on_save(self, instance: Document) -> None:
        """Validate or stamp the version of a document that is being saved."""
        self._service.determine_version(instance)


class MigrationInterceptorProvider:
    """Hands out interceptors for document types that have migrations."""

    def __init__(self, service: VersionService, runner: DocumentMigrationRunner) -> None:
        self._service = service
        self._runner = runner

    def get_interceptor(self, document_type: Any) -> MigrationInterceptor | None:
        key = document_type_of(document_type)
        if key not in self._service.migration_locator:
            return None
        return MigrationInterceptor(key, self._service, self._runner)


class SerializerRegistry:
    """Process registry of value serializers and interceptor providers.

    Example:
        >>> registry = SerializerRegistry()
        >>> registry.register_serializer(DocumentVersion, DocumentVersionSerializer())
        >>> registry.lookup_serializer(DocumentVersion).serialize(DocumentVersion(1))
        '1.0.0'
    """

    def __init__(self) -> None:
        self._serializers: dict[type, Serializer] = {}
        self._providers: list[MigrationInterceptorProvider] = []

    def register_serializer(self, value_type: type, serializer: Serializer) -> None:
        """Register the serializer of a value type.

        Raises:
            DuplicateSerializerError: If the type already has a serializer.
        """
        if value_type in self._serializers:
            raise DuplicateSerializerError(value_type)
        self._serializers[value_type] = serializer
        logger.debug(f"Registered serializer for {value_type.__name__}")

    def register_provider(self, provider: MigrationInterceptorProvider) -> None:
        """Register an interceptor provider; a provider is only added once."""
        if provider not in self._providers:
            self._providers.append(provider)

    def lookup_serializer(self, value_type: type) -> Serializer | None:
        return self._serializers.get(value_type)

    def lookup_interceptor(self, document_type: Any) -> MigrationInterceptor | None:
        """Ask providers in registration order for an interceptor."""
        for provider in self._providers:
            interceptor = provider.get_interceptor(document_type)
            if interceptor is not None:
                return interceptor
        return None


class Registrar:
    """Installs the version serializer and interceptor provider."""

    def __init__(
        self,
        serializer: DocumentVersionSerializer,
        provider: MigrationInterceptorProvider,
        registry: SerializerRegistry | None = None,
    ) -> None:
        self._serializer = serializer
        self._provider = provider
        self._registry = registry or get_default_registry()

    @property
    def registry(self) -> SerializerRegistry:
        return self._registry

    def ensure_registered(self) -> None:
        """Register with the registry; safe to call more than once.

        A serializer that is already registered is left in place.
        """
        self._registry.register_provider(self._provider)

        try:
            self._registry.register_serializer(DocumentVersion, self._serializer)
        except DuplicateSerializerError as e:
            logger.debug(f"Keeping existing serializer: {e}")


# Process-wide registry
_default_registry = SerializerRegistry()


def get_default_registry() -> SerializerRegistry:
    """Get the process-wide serializer registry."""
    return _default_registry


def reset_default_registry() -> SerializerRegistry:
    """Replace the process-wide registry with an empty one."""
    global _default_registry
    _default_registry = SerializerRegistry()
    return _default_registry
