"""Unit tests for DocumentMigrationRunner."""

from __future__ import annotations

from typing import Any

import pytest

from docversion.base import (
    DocumentVersion,
    MigrationFailedError,
    MigrationPathNotFoundError,
    VersionFormatError,
)
from docversion.locators import MigrationLocator, RuntimeVersionLocator
from docversion.runner import DocumentMigrationRunner
from docversion.service import VersionService


class _Recorder:
    """Collects the stamps written while migrating."""

    def __init__(self, service: VersionService) -> None:
        self.stamps: list[str] = []
        self._set_version = service.set_version
        service.set_version = self  # type: ignore[method-assign]

    def __call__(self, record: dict[str, Any], version: DocumentVersion) -> None:
        self.stamps.append(str(version))
        self._set_version(record, version)


class TestRunUp:
    """Tests for upgrading records."""

    def test_unstamped_record_runs_whole_chain(self, runner: DocumentMigrationRunner) -> None:
        record: dict[str, Any] = {"customer": "Ada", "total": 12.5}

        version = runner.run("order", record)

        assert version == DocumentVersion(2, 0, 0)
        assert record == {
            "customer": "Ada",
            "amount": 12.5,
            "currency": "EUR",
            "tags": [],
            "Version": "2.0.0",
        }

    def test_intermediate_versions_are_stamped(
        self, runner: DocumentMigrationRunner, service: VersionService
    ) -> None:
        recorder = _Recorder(service)

        runner.run("order", {"total": 1})

        assert recorder.stamps == ["1.0.0", "1.1.0", "2.0.0", "2.0.0"]

    def test_partially_migrated_record(self, runner: DocumentMigrationRunner) -> None:
        record = {"total": 3, "currency": "USD", "Version": "1.0.0"}

        runner.run("order", record)

        assert record == {"amount": 3, "currency": "USD", "tags": [], "Version": "2.0.0"}

    def test_up_to_date_record_is_untouched(self, runner: DocumentMigrationRunner) -> None:
        record = {"amount": 3, "Version": "2.0.0"}

        assert runner.run("order", record) == DocumentVersion(2, 0, 0)
        assert record == {"amount": 3, "Version": "2.0.0"}

    def test_runtime_pin_between_steps(
        self, runner: DocumentMigrationRunner, runtime_locator: RuntimeVersionLocator
    ) -> None:
        runtime_locator.pin("order", "1.5.0")
        record: dict[str, Any] = {"total": 7}

        runner.run("order", record)

        assert record == {"total": 7, "currency": "EUR", "tags": [], "Version": "1.5.0"}

    def test_runtime_pin_above_latest_is_capped(
        self, runner: DocumentMigrationRunner, runtime_locator: RuntimeVersionLocator
    ) -> None:
        runtime_locator.pin("order", "3.0.0")
        record: dict[str, Any] = {"total": 7}

        assert runner.default_target("order") == DocumentVersion(2, 0, 0)
        assert runner.run("order", record) == DocumentVersion(2, 0, 0)
        assert record["Version"] == "2.0.0"
        assert not runner.needs_migration("order", record)

    def test_pinned_type_without_migrations(
        self, runner: DocumentMigrationRunner, runtime_locator: RuntimeVersionLocator
    ) -> None:
        runtime_locator.pin("ghost", "1.0.0")
        record: dict[str, Any] = {"name": "x"}

        assert runner.run("ghost", record).is_default
        assert record == {"name": "x"}

    def test_explicit_target(self, runner: DocumentMigrationRunner) -> None:
        record: dict[str, Any] = {}

        runner.run("order", record, target="1.0.0")

        assert record == {"currency": "EUR", "Version": "1.0.0"}

    def test_failing_step_is_wrapped(self, service: VersionService, locator: MigrationLocator) -> None:
        @locator.register("order", "3.0.0")
        def explode(record: dict[str, Any]) -> None:
            raise KeyError("amount")

        runner = DocumentMigrationRunner(service, locator)
        record = {"amount": 1, "Version": "2.0.0"}

        with pytest.raises(MigrationFailedError) as exc_info:
            runner.run("order", record)

        assert exc_info.value.version == DocumentVersion(3, 0, 0)
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert record["Version"] == "2.0.0"


class TestRunDown:
    """Tests for downgrading records to a runtime pin."""

    def test_downgrade_to_runtime_pin(
        self,
        runner: DocumentMigrationRunner,
        service: VersionService,
        runtime_locator: RuntimeVersionLocator,
    ) -> None:
        runtime_locator.pin("order", "1.0.0")
        recorder = _Recorder(service)
        record = {"amount": 9, "currency": "EUR", "tags": ["x"], "Version": "2.0.0"}

        version = runner.run("order", record)

        assert version == DocumentVersion(1, 0, 0)
        assert record == {"total": 9, "currency": "EUR", "Version": "1.0.0"}
        assert recorder.stamps == ["1.1.0", "1.0.0", "1.0.0"]

    def test_downgrade_to_unstamped(self, runner: DocumentMigrationRunner) -> None:
        record = {"currency": "EUR", "Version": "1.0.0"}

        runner.run("order", record, target=DocumentVersion.default())

        assert record == {"Version": "0.0.0"}

    def test_irreversible_step(self, service: VersionService) -> None:
        locator = MigrationLocator()
        locator.register("invoice", "1.0.0")(lambda record: None)
        runner = DocumentMigrationRunner(service, locator)

        with pytest.raises(MigrationFailedError):
            runner.run("invoice", {"Version": "1.0.0"}, target="0.0.0")


class TestRunErrors:
    """Tests for records the runner cannot place."""

    def test_record_newer_than_latest(self, runner: DocumentMigrationRunner) -> None:
        record = {"Version": "3.0.0"}

        with pytest.raises(MigrationPathNotFoundError) as exc_info:
            runner.run("order", record)

        assert exc_info.value.from_version == DocumentVersion(3, 0, 0)
        assert exc_info.value.to_version == DocumentVersion(2, 0, 0)
        assert record == {"Version": "3.0.0"}

    def test_target_beyond_latest(self, runner: DocumentMigrationRunner) -> None:
        with pytest.raises(MigrationPathNotFoundError):
            runner.run("order", {}, target="5.0.0")

    def test_explicit_target_beyond_latest_ignores_pin(
        self, runner: DocumentMigrationRunner, runtime_locator: RuntimeVersionLocator
    ) -> None:
        runtime_locator.pin("order", "3.0.0")

        with pytest.raises(MigrationPathNotFoundError):
            runner.run("order", {"Version": "2.0.0"}, target="3.0.0")

    def test_malformed_stamp(self, runner: DocumentMigrationRunner) -> None:
        with pytest.raises(VersionFormatError):
            runner.run("order", {"Version": "v2"})

    def test_type_without_migrations(self, runner: DocumentMigrationRunner) -> None:
        record: dict[str, Any] = {"name": "x"}

        assert runner.run("ghost", record).is_default
        assert record == {"name": "x"}


class TestPendingMigrations:
    """Tests for migration planning."""

    def test_needs_migration(self, runner: DocumentMigrationRunner) -> None:
        assert runner.needs_migration("order", {})
        assert runner.needs_migration("order", {"Version": "1.1.0"})
        assert not runner.needs_migration("order", {"Version": "2.0.0"})

    def test_pending_up(self, runner: DocumentMigrationRunner) -> None:
        pending = runner.pending_migrations("order", {"Version": "1.0.0"})

        assert [str(m.version) for m in pending] == ["1.1.0", "2.0.0"]

    def test_pending_down(self, runner: DocumentMigrationRunner) -> None:
        pending = runner.pending_migrations("order", {"Version": "2.0.0"}, target="1.0.0")

        assert [str(m.version) for m in pending] == ["2.0.0", "1.1.0"]

    def test_nothing_pending(self, runner: DocumentMigrationRunner) -> None:
        assert runner.pending_migrations("order", {"Version": "2.0.0"}) == []
