"""Tests for named profile management."""

import json
from pathlib import Path

import pytest

from polish.config import ConfigManager, PolishConfig
from polish.profiles import MissingProfileError, ProfileError, ProfileManager


def _manager(tmp_path: Path, env: dict[str, str] | None = None) -> ProfileManager:
    manager = ProfileManager(tmp_path / ".polish", env=env or {})
    manager.initialize()
    return manager


def test_initialize_creates_and_activates_default(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    assert manager.get_active_name() == "default"
    assert (tmp_path / ".polish" / "profiles" / "default.yaml").exists()
    assert (tmp_path / ".polish" / "active-profile").read_text(encoding="utf-8") == "default"


def test_initialize_migrates_legacy_config(tmp_path: Path) -> None:
    legacy = ConfigManager(tmp_path / ".polish" / "config.yaml", env={})
    legacy.save({"vault": {"path": "/vaults/legacy"}})

    manager = _manager(tmp_path)

    profile = manager.get_profile("default")
    assert profile.config.vault.path == "/vaults/legacy"
    assert profile.description == "Migrated from legacy configuration"


@pytest.mark.parametrize("name", ["", "has space", "slash/name", "x" * 51])
def test_create_profile_rejects_invalid_names(tmp_path: Path, name: str) -> None:
    manager = _manager(tmp_path)

    with pytest.raises(ProfileError):
        manager.create_profile(name)


def test_create_profile_rejects_duplicates(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.create_profile("work")

    with pytest.raises(ProfileError, match="already exists"):
        manager.create_profile("work")


def test_list_profiles_puts_active_first(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.create_profile("work", description="Work files")
    manager.create_profile("home")
    manager.set_active("work")

    names = [summary.name for summary in manager.list_profiles()]

    assert names[0] == "work"
    assert set(names) == {"default", "work", "home"}


def test_delete_active_profile_falls_back_to_default(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.create_profile("work")
    manager.set_active("work")

    manager.delete_profile("work")

    assert manager.get_active_name() == "default"
    with pytest.raises(MissingProfileError):
        manager.get_profile("work")


def test_default_profile_cannot_be_deleted_or_renamed(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    with pytest.raises(ProfileError):
        manager.delete_profile("default")
    with pytest.raises(ProfileError):
        manager.rename_profile("default", "other")


def test_rename_keeps_active_marker(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.create_profile("work")
    manager.set_active("work")

    manager.rename_profile("work", "office")

    assert manager.get_active_name() == "office"
    assert not manager.exists("work")


def test_clone_copies_configuration(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    config = PolishConfig.model_validate({"tagging": {"max_tags": 3}})
    manager.create_profile("work", config)

    clone = manager.clone_profile("work", "work-copy")

    assert clone.config.tagging.max_tags == 3
    assert manager.get_profile("work-copy").description == "Clone of work"


def test_sources_can_be_added_listed_and_removed(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    inbox = tmp_path / "inbox"
    inbox.mkdir()

    manager.add_source("default", inbox, include_subfolders=False)

    sources = manager.list_sources("default")
    assert [(source.path, source.include_subfolders) for source in sources] == [
        (str(inbox.resolve()), False)
    ]
    with pytest.raises(ProfileError):
        manager.add_source("default", inbox)

    manager.remove_source("default", inbox)
    assert manager.list_sources("default") == []
    with pytest.raises(ProfileError):
        manager.remove_source("default", inbox)


def test_export_and_import_round_trip(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.create_profile("work", description="Work files")
    export_path = tmp_path / "profiles.json"

    exported = manager.export_profiles(export_path, ["work"])

    assert exported == ["work"]
    payload = json.loads(export_path.read_text(encoding="utf-8"))
    assert [entry["name"] for entry in payload] == ["work"]

    other = ProfileManager(tmp_path / "other", env={})
    other.initialize()
    assert other.import_profiles(export_path) == ["work"]
    assert other.get_profile("work").description == "Work files"
    # Existing profiles are skipped unless overwrite is requested.
    assert other.import_profiles(export_path) == []
    assert other.import_profiles(export_path, overwrite=True) == ["work"]


def test_import_rejects_non_array(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    bad = tmp_path / "bad.json"
    bad.write_text('{"name": "x"}', encoding="utf-8")

    with pytest.raises(ProfileError, match="Invalid import file format"):
        manager.import_profiles(bad)


def test_active_config_applies_env_and_cli_overrides(tmp_path: Path) -> None:
    manager = _manager(tmp_path, env={"POLISH__TAGGING__MAX_TAGS": "7"})

    config = manager.get_active_config(cli_overrides={"vault.path": "/tmp/vault"})

    assert config.tagging.max_tags == 7
    assert config.vault.path == "/tmp/vault"
    assert manager.get_active_config(include_env=False).tagging.max_tags == 10


@pytest.mark.parametrize("name", ["../outside", "nested/name", "default\n"])
def test_lookups_reject_names_outside_profiles_dir(tmp_path: Path, name: str) -> None:
    manager = _manager(tmp_path)
    (tmp_path / ".polish" / "outside.yaml").write_text("name: outside\n", encoding="utf-8")

    with pytest.raises(ProfileError):
        manager.get_profile(name)
    with pytest.raises(ProfileError):
        manager.set_active(name)
    with pytest.raises(ProfileError):
        manager.delete_profile(name)
    assert manager.get_active_name() == "default"
