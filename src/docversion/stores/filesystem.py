"""Filesystem record store.

Each record is one JSON file named after its identifier, under
``<base_path>/<namespace>/``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docversion.stores.base import (
    RecordStore,
    StoreConfig,
    StoreError,
    StoreNotFoundError,
    StoreReadError,
    StoreWriteError,
)


@dataclass
class FileSystemConfig(StoreConfig):
    """Configuration for filesystem store.

    Attributes:
        base_path: Base directory for storing files.
        create_dirs: Whether to create directories if they don't exist.
        pretty_print: Whether to format JSON with indentation.
    """

    base_path: str = ".docversion/store"
    create_dirs: bool = True
    pretty_print: bool = True

    def get_full_path(self) -> Path:
        """Get the storage directory including namespace."""
        path = Path(self.base_path)
        if self.namespace:
            path = path / self.namespace
        return path


class FileSystemRecordStore(RecordStore):
    """Stores raw records as JSON files.

    Example:
        >>> store = FileSystemRecordStore(base_path=".docversion/customers")
        >>> store.put_record("c-1", {"name": "Ada", "Version": "1.0.0"})
    """

    def __init__(
        self,
        base_path: str | Path = ".docversion/store",
        namespace: str = "default",
        pretty_print: bool = True,
        create_dirs: bool = True,
    ) -> None:
        super().__init__(
            FileSystemConfig(
                base_path=str(base_path),
                namespace=namespace,
                pretty_print=pretty_print,
                create_dirs=create_dirs,
            )
        )

    @classmethod
    def _default_config(cls) -> FileSystemConfig:
        return FileSystemConfig()

    def _do_initialize(self) -> None:
        if self._config.create_dirs:
            self._config.get_full_path().mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, record_id: str) -> Path:
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise StoreError(f"Invalid record id: {record_id!r}")
        return self._config.get_full_path() / f"{record_id}.json"

    def get_record(self, record_id: str) -> dict[str, Any]:
        self.initialize()
        path = self._get_file_path(record_id)
        if not path.exists():
            raise StoreNotFoundError("Record", record_id)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StoreReadError(f"Failed to read record {record_id}: {e}") from e

        if not isinstance(data, dict):
            raise StoreReadError(f"Record {record_id} is not a JSON object")
        return data

    def put_record(self, record_id: str, record: dict[str, Any]) -> None:
        self.initialize()
        path = self._get_file_path(record_id)
        indent = 2 if self._config.pretty_print else None

        try:
            content = json.dumps(record, indent=indent, default=str)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(content, encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise StoreWriteError(f"Failed to write record {record_id}: {e}") from e

    def delete(self, record_id: str) -> bool:
        self.initialize()
        path = self._get_file_path(record_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StoreWriteError(f"Failed to delete record {record_id}: {e}") from e
        return True

    def list_ids(self) -> list[str]:
        self.initialize()
        directory = self._config.get_full_path()
        if not directory.exists():
            return []
        return sorted(p.stem for p in directory.glob("*.json"))

    def exists(self, record_id: str) -> bool:
        self.initialize()
        return self._get_file_path(record_id).exists()

