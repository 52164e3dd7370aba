"""Shared fixtures for the unit tests."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

import pytest

from docversion.base import DocumentVersion
from docversion.locators import (
    MigrationLocator,
    RuntimeVersionLocator,
    StartUpVersionLocator,
)
from docversion.runner import DocumentMigrationRunner
from docversion.service import VersionService


@dataclass
class Order:
    """Typed document used across the tests."""

    __document_type__ = "order"

    id: str = "o-1"
    customer: str = ""
    amount: float = 0.0
    currency: str = "EUR"
    tags: list[str] = field(default_factory=list)
    version: str = "0.0.0"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@pytest.fixture
def locator() -> MigrationLocator:
    """Order chain 1.0.0 -> 1.1.0 -> 2.0.0, registered out of order."""
    locator = MigrationLocator()

    def rename_total_down(record: dict[str, Any]) -> None:
        record["total"] = record.pop("amount")

    @locator.register("order", "2.0.0", down=rename_total_down)
    def rename_total(record: dict[str, Any]) -> None:
        record["amount"] = record.pop("total", 0.0)

    def drop_tags(record: dict[str, Any]) -> None:
        record.pop("tags", None)

    @locator.register("order", "1.0.0", down=lambda record: record.pop("currency", None))
    def add_currency(record: dict[str, Any]) -> None:
        record.setdefault("currency", "EUR")

    @locator.register("order", "1.1.0", down=drop_tags)
    def add_tags(record: dict[str, Any]) -> None:
        record.setdefault("tags", [])

    return locator


@pytest.fixture
def runtime_locator() -> RuntimeVersionLocator:
    return RuntimeVersionLocator()


@pytest.fixture
def startup_locator() -> StartUpVersionLocator:
    return StartUpVersionLocator()


@pytest.fixture
def service(
    locator: MigrationLocator,
    runtime_locator: RuntimeVersionLocator,
    startup_locator: StartUpVersionLocator,
) -> VersionService:
    return VersionService(locator, runtime_locator, startup_locator)


@pytest.fixture
def runner(service: VersionService, locator: MigrationLocator) -> DocumentMigrationRunner:
    return DocumentMigrationRunner(service, locator)


@pytest.fixture
def v() -> Any:
    """Shorthand for parsing versions."""
    return DocumentVersion.parse


@pytest.fixture
def order_cls() -> type[Order]:
    return Order
