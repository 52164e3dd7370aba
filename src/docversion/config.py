"""Configuration for document versioning.

Settings are layered: dataclass defaults, then an optional YAML or JSON
file, then environment variables with a prefix.

Usage:
    >>> from docversion.config import load_settings
    >>>
    >>> settings = load_settings("docversion.yaml")
    >>> settings.version_field_name
    'SchemaVersion'

Environment variables:
    DOCVERSION_VERSION_FIELD_NAME=SchemaVersion
    DOCVERSION_AUTO_MIGRATE=false
    DOCVERSION_WRITE_BACK=true
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_VERSION_FIELD_NAME = "Version"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(Exception):
    """Base configuration error."""

    pass


# =============================================================================
# Settings
# =============================================================================


@dataclass
class MigrationSettings:
    """Settings for version resolution and lazy migration.

    Attributes:
        version_field_name: Record key holding the version stamp. Blank means
            ``"Version"``.
        runtime_versions: Runtime pins, document type to version string.
        startup_versions: Start-up pins, document type to version string.
        auto_migrate: Migrate out-of-date records on load. When off, loading
            such a record raises instead.
        write_back: Persist records migrated on load.
    """

    version_field_name: str = ""
    runtime_versions: dict[str, str] = field(default_factory=dict)
    startup_versions: dict[str, str] = field(default_factory=dict)
    auto_migrate: bool = True
    write_back: bool = False

    def resolved_version_field_name(self) -> str:
        """Get the field name, falling back to ``"Version"`` when blank."""
        name = self.version_field_name
        if name is None or not str(name).strip():
            return DEFAULT_VERSION_FIELD_NAME
        return name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MigrationSettings":
        """Build settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for key in ("runtime_versions", "startup_versions"):
            if key in values:
                values[key] = {
                    str(t): str(v) for t, v in (values[key] or {}).items()
                }
        for key in ("auto_migrate", "write_back"):
            if key in values:
                values[key] = _parse_bool(values[key])
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version_field_name": self.version_field_name,
            "runtime_versions": dict(self.runtime_versions),
            "startup_versions": dict(self.startup_versions),
            "auto_migrate": self.auto_migrate,
            "write_back": self.write_back,
        }


# =============================================================================
# Sources
# =============================================================================


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "1", "on"):
        return True
    if text in ("false", "no", "0", "off", ""):
        return False
    raise ConfigError(f"Not a boolean value: {value!r}")


def _load_file(path: Path) -> dict[str, Any]:
    """Load a YAML or JSON settings file."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif suffix == ".json":
            data = json.loads(content)
        else:
            raise ConfigError(f"Unsupported file format: {suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    # Allow the settings to live under a top-level "docversion" section
    section = data.get("docversion", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Section 'docversion' in {path} must be a mapping")
    return section


def _load_env(prefix: str) -> dict[str, Any]:
    """Load scalar settings from environment variables."""
    result: dict[str, Any] = {}
    env_prefix = f"{prefix}_"

    for key, value in os.environ.items():
        if not key.startswith(env_prefix):
            continue
        name = key[len(env_prefix) :].lower()
        if name in ("runtime_versions", "startup_versions"):
            try:
                result[name] = json.loads(value)
            except json.JSONDecodeError as e:
                raise ConfigError(f"{key} must be a JSON object: {e}") from e
        else:
            result[name] = value

    return result


def load_settings(
    path: str | Path | None = None,
    *,
    env_prefix: str = "DOCVERSION",
) -> MigrationSettings:
    """Load settings from an optional file and the environment.

    Args:
        path: YAML or JSON file. The file must exist when given.
        env_prefix: Prefix of environment variables overriding file values.

    Returns:
        The merged settings.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    data: dict[str, Any] = {}

    if path is not None:
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigError(f"Configuration file not found: {file_path}")
        data.update(_load_file(file_path))
        logger.debug(f"Loaded settings from {file_path}")

    data.update(_load_env(env_prefix))
    return MigrationSettings.from_dict(data)
