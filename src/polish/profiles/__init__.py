"""Named configuration profiles stored beneath ``~/.polish``."""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml
from pydantic import ValidationError

from polish.config import DEFAULT_HOME_DIR, ConfigManager, serialize_yaml
from polish.config.exceptions import ConfigError
from polish.config.models import PolishConfig, SourceSettings
from polish.config.resolver import extract_env_overrides, resolve_with_precedence

from .errors import MissingProfileError, ProfileError
from .models import Profile, ProfileSummary

LOGGER = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
MAX_NAME_LENGTH = 50
_NAME_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
_PROFILE_HEADER = "# Polish profile\n"


class ProfileManager:
    """Create, switch, and persist named configuration profiles."""

    def __init__(
        self,
        home: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            home: Directory holding profiles and the active-profile marker.
            env: Environment used for ``POLISH__`` overrides; defaults to ``os.environ``.
        """
        self._home = (home or DEFAULT_HOME_DIR).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def home(self) -> Path:
        return self._home

    @property
    def profiles_dir(self) -> Path:
        return self._home / "profiles"

    @property
    def active_file(self) -> Path:
        return self._home / "active-profile"

    def initialize(self) -> None:
        """Ensure a default profile exists and some profile is active.

        The legacy ``config.yaml`` is migrated into the ``default`` profile when present.
        """
        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        if not any(self.profiles_dir.glob("*.yaml")):
            self._create_default_profile()

        active = self.get_active_name()
        if active is None or not self._profile_path(active).exists():
            profiles = self.list_profiles()
            if profiles:
                self.set_active(profiles[0].name)

    def create_profile(
        self,
        name: str,
        config: PolishConfig | None = None,
        description: Optional[str] = None,
    ) -> Profile:
        """Create and persist a new profile.

        Raises:
            ProfileError: If the name is invalid or already taken.
        """
        self._validate_new_name(name)
        profile = Profile(name=name, description=description, config=config or PolishConfig())
        self._write(profile)
        return profile

    def get_profile(self, name: str) -> Profile:
        """Load a profile by name.

        Raises:
            MissingProfileError: If the profile does not exist.
            ProfileError: If the stored profile cannot be parsed.
        """
        path = self._profile_path(name)
        if not path.exists():
            raise MissingProfileError(f"Profile '{name}' not found")

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ProfileError(f"Failed to parse profile '{name}': {exc}") from exc

        try:
            return Profile.model_validate(raw)
        except ValidationError as exc:
            raise ProfileError(f"Invalid profile '{name}': {exc}") from exc

    def exists(self, name: str) -> bool:
        return self._profile_path(name).exists()

    def update_profile(
        self,
        name: str,
        *,
        config: PolishConfig | None = None,
        description: Optional[str] = None,
    ) -> Profile:
        """Replace the config and/or description of a profile and bump ``last_used``."""
        profile = self.get_profile(name)
        updates: dict[str, Any] = {"last_used": datetime.now(timezone.utc)}
        if config is not None:
            updates["config"] = config
        if description is not None:
            updates["description"] = description
        updated = profile.model_copy(update=updates)
        self._write(updated)
        return updated

    def delete_profile(self, name: str) -> None:
        """Delete a profile, reactivating ``default`` if it was active.

        Raises:
            ProfileError: If asked to delete the default profile.
            MissingProfileError: If the profile does not exist.
        """
        if name == DEFAULT_PROFILE:
            raise ProfileError("Cannot delete the default profile")
        if not self.exists(name):
            raise MissingProfileError(f"Profile '{name}' not found")

        if self.get_active_name() == name:
            if self.exists(DEFAULT_PROFILE):
                self.set_active(DEFAULT_PROFILE)
            else:
                self.active_file.unlink(missing_ok=True)
        self._profile_path(name).unlink()

    def list_profiles(self) -> list[ProfileSummary]:
        """Return summaries with the active profile first, then most recently used."""
        if not self.profiles_dir.exists():
            return []

        active = self.get_active_name()
        summaries: list[ProfileSummary] = []
        for path in sorted(self.profiles_dir.glob("*.yaml")):
            try:
                profile = self.get_profile(path.stem)
            except ProfileError as exc:
                LOGGER.warning("Skipping unreadable profile %s: %s", path.name, exc)
                continue
            summaries.append(
                ProfileSummary(
                    name=profile.name,
                    description=profile.description,
                    vault_path=profile.config.vault.path,
                    originals_path=profile.config.originals.path,
                    source_count=len(profile.config.sources),
                    is_active=profile.name == active,
                    created_at=profile.created_at,
                    last_used=profile.last_used,
                )
            )

        summaries.sort(key=lambda summary: summary.last_used, reverse=True)
        summaries.sort(key=lambda summary: not summary.is_active)
        return summaries

    def get_active_name(self) -> Optional[str]:
        """Return the active profile name, or ``None`` when unset."""
        if not self.active_file.exists():
            return None
        name = self.active_file.read_text(encoding="utf-8").strip()
        return name or None

    def set_active(self, name: str) -> Profile:
        """Mark a profile as active and bump its ``last_used`` timestamp."""
        if not self.exists(name):
            raise MissingProfileError(f"Profile '{name}' not found")
        self._home.mkdir(parents=True, exist_ok=True)
        self.active_file.write_text(name, encoding="utf-8")
        return self.update_profile(name)

    def get_active_profile(self) -> Profile:
        """Return the active profile.

        Raises:
            ProfileError: If no profile is active.
        """
        name = self.get_active_name()
        if name is None:
            raise ProfileError('No active profile found. Run "polish profile create" to create one.')
        return self.get_profile(name)

    def get_active_config(
        self,
        *,
        name: Optional[str] = None,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
    ) -> PolishConfig:
        """Resolve the configuration of a profile with environment and CLI overrides.

        Args:
            name: Profile to resolve; defaults to the active profile.
            cli_overrides: Dotted-key or nested overrides supplied on the command line.
            include_env: Whether ``POLISH__`` environment variables are applied.

        Raises:
            ConfigError: If the merged values are invalid.
        """
        profile = self.get_profile(name) if name else self.get_active_profile()
        env_overrides = extract_env_overrides(self._env) if include_env else None
        return resolve_with_precedence(
            defaults=PolishConfig(),
            file_overrides=profile.config.model_dump(mode="python"),
            env_overrides=env_overrides or None,
            cli_overrides=cli_overrides,
        )

    def clone_profile(
        self, source: str, target: str, description: Optional[str] = None
    ) -> Profile:
        original = self.get_profile(source)
        return self.create_profile(
            target,
            original.config.model_copy(deep=True),
            description or f"Clone of {source}",
        )

    def rename_profile(self, old_name: str, new_name: str) -> Profile:
        """Rename a profile, keeping it active if it was.

        Raises:
            ProfileError: If renaming ``default`` or the new name is invalid or taken.
        """
        if old_name == DEFAULT_PROFILE:
            raise ProfileError("Cannot rename the default profile")
        self._validate_new_name(new_name)
        profile = self.get_profile(old_name)

        renamed = profile.model_copy(
            update={"name": new_name, "last_used": datetime.now(timezone.utc)}
        )
        self._write(renamed)
        was_active = self.get_active_name() == old_name
        self._profile_path(old_name).unlink()
        if was_active:
            self.set_active(new_name)
        return renamed

    def export_profiles(self, path: Path, names: Iterable[str] | None = None) -> list[str]:
        """Write profiles to ``path`` as a JSON array and return the exported names."""
        wanted = set(names or [])
        exported: list[dict[str, Any]] = []
        for summary in self.list_profiles():
            if wanted and summary.name not in wanted:
                continue
            exported.append(self.get_profile(summary.name).model_dump(mode="json"))

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(exported, indent=2), encoding="utf-8")
        return [entry["name"] for entry in exported]

    def import_profiles(self, path: Path, *, overwrite: bool = False) -> list[str]:
        """Import profiles from a JSON array, skipping existing names unless ``overwrite``.

        Raises:
            ProfileError: If the file is not a JSON array of profiles.
        """
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ProfileError(f"Failed to read import file: {exc}") from exc
        if not isinstance(payload, list):
            raise ProfileError("Invalid import file format")

        imported: list[str] = []
        for entry in payload:
            try:
                profile = Profile.model_validate(entry)
            except ValidationError as exc:
                raise ProfileError(f"Invalid profile in import file: {exc}") from exc

            if self.exists(profile.name):
                if not overwrite:
                    LOGGER.info("Skipping existing profile '%s'.", profile.name)
                    continue
            else:
                self._validate_new_name(profile.name)
            self._write(profile)
            imported.append(profile.name)
        return imported

    def add_source(self, name: str, path: Path, *, include_subfolders: bool = True) -> Profile:
        """Append a source directory to a profile.

        Raises:
            ProfileError: If the source is already configured.
        """
        profile = self.get_profile(name)
        resolved = str(path.expanduser().resolve())
        if any(source.path == resolved for source in profile.config.sources):
            raise ProfileError(f"Source '{resolved}' is already configured for '{name}'")

        config = profile.config.model_copy(deep=True)
        config.sources.append(
            SourceSettings(path=resolved, include_subfolders=include_subfolders)
        )
        return self.update_profile(name, config=config)

    def remove_source(self, name: str, path: Path) -> Profile:
        """Remove a source directory from a profile.

        Raises:
            ProfileError: If the source is not configured.
        """
        profile = self.get_profile(name)
        candidates = {str(path), str(path.expanduser().resolve())}
        remaining = [source for source in profile.config.sources if source.path not in candidates]
        if len(remaining) == len(profile.config.sources):
            raise ProfileError(f"Source '{path}' is not configured for '{name}'")

        config = profile.config.model_copy(deep=True)
        config.sources = remaining
        return self.update_profile(name, config=config)

    def list_sources(self, name: str) -> list[SourceSettings]:
        return list(self.get_profile(name).config.sources)

    # Internal helpers -------------------------------------------------

    def _create_default_profile(self) -> None:
        legacy = ConfigManager(self._home / "config.yaml", env={})
        if legacy.exists():
            try:
                config = legacy.load(include_env=False, ensure_file=False)
            except ConfigError as exc:
                LOGGER.warning("Failed to migrate legacy configuration: %s", exc)
            else:
                self.create_profile(
                    DEFAULT_PROFILE, config, "Migrated from legacy configuration"
                )
                self.set_active(DEFAULT_PROFILE)
                LOGGER.info("Migrated legacy configuration to the default profile.")
                return

        self.create_profile(DEFAULT_PROFILE, PolishConfig(), "Default profile")
        self.set_active(DEFAULT_PROFILE)

    def _validate_new_name(self, name: str) -> None:
        if not name or not name.strip():
            raise ProfileError("Profile name cannot be empty")
        if not _NAME_PATTERN.fullmatch(name):
            raise ProfileError(
                "Profile name can only contain letters, numbers, hyphens, and underscores"
            )
        if len(name) > MAX_NAME_LENGTH:
            raise ProfileError(f"Profile name cannot be longer than {MAX_NAME_LENGTH} characters")
        if self.exists(name):
            raise ProfileError(f"Profile '{name}' already exists")

    def _profile_path(self, name: str) -> Path:
        if not _NAME_PATTERN.fullmatch(name):
            raise ProfileError(f"Invalid profile name: {name!r}")
        return self.profiles_dir / f"{name}.yaml"

    def _write(self, profile: Profile) -> None:
        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        self._profile_path(profile.name).write_text(
            serialize_yaml(profile.model_dump(mode="json"), header=_PROFILE_HEADER),
            encoding="utf-8",
        )


__all__ = [
    "DEFAULT_PROFILE",
    "MissingProfileError",
    "Profile",
    "ProfileError",
    "ProfileManager",
    "ProfileSummary",
]
