"""Configuration management for Polish."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import PolishConfig
from .resolver import (
    assign_nested,
    extract_env_overrides,
    flatten_for_env,
    lookup_nested,
    resolve_with_precedence,
)

DEFAULT_HOME_DIR = Path("~/.polish")
DEFAULT_CONFIG_PATH = DEFAULT_HOME_DIR / "config.yaml"
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Polish configuration file
    # Values here seed the `default` profile; manage profiles with `polish profile`.
    """
)


def serialize_yaml(data: Mapping[str, Any], *, header: str = "") -> str:
    """Return YAML text for a configuration mapping with a header and update stamp."""
    serialized = yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
    stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return header + f"# Last updated: {stamp}\n" + serialized


class ConfigManager:
    """Load and persist the standalone configuration file, applying precedence rules."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def exists(self) -> bool:
        """Return whether a configuration file is present on disk."""
        return self._config_path.exists()

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> PolishConfig:
        """Load configuration data from disk, applying precedence rules."""
        if ensure_file:
            self.ensure_exists()

        file_data = self._read_file()
        env_data: Mapping[str, str] | None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env
        else:
            env_data = None

        return resolve_with_precedence(
            defaults=PolishConfig(),
            file_overrides=file_data,
            env_overrides=extract_env_overrides(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def save(self, config: PolishConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        data = self._coerce_to_dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        path = self._config_path
        if path.exists():
            return path

        self._write_file(PolishConfig().model_dump(mode="python"))
        return path

    # Internal helpers -------------------------------------------------

    def _coerce_to_dict(self, value: PolishConfig | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(value, PolishConfig):
            return value.model_dump(mode="python")
        return dict(value)

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(serialize_yaml(data, header=_CONFIG_HEADER), encoding="utf-8")


__all__ = [
    "ConfigManager",
    "DEFAULT_HOME_DIR",
    "DEFAULT_CONFIG_PATH",
    "PolishConfig",
    "resolve_with_precedence",
    "flatten_for_env",
    "extract_env_overrides",
    "assign_nested",
    "lookup_nested",
    "serialize_yaml",
    "ConfigError",
]
