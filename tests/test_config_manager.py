"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from polish.config import (
    ConfigError,
    ConfigManager,
    PolishConfig,
    extract_env_overrides,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env={})


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".polish" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "Polish configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, PolishConfig)
    assert config.api.mode == "local"


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save({"api": {"model": "custom-model"}, "tagging": {"max_tags": 4}})

    env = {"POLISH__TAGGING__MAX_TAGS": "6", "POLISH__API__TEMPERATURE": "0.7"}
    cli = {"api.temperature": 0.2}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.api.model == "custom-model"
    # Environment beats the file, CLI beats the environment.
    assert config.tagging.max_tags == 6
    assert config.api.temperature == pytest.approx(0.2)


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_renders_defaults() -> None:
    flat = flatten_for_env(PolishConfig())

    assert flat["POLISH__API__MODE"] == "local"
    assert flat["POLISH__PROCESSING__MAX_FILE_SIZE_MB"] == "50"
    assert flat["POLISH__ORIGINALS__ORGANIZATION_STYLE"] == "type-based"


def test_extract_env_overrides_parses_yaml_values() -> None:
    overrides = extract_env_overrides(
        {
            "POLISH__ORIGINALS__CREATE_YEAR_FOLDERS": "false",
            "POLISH__PROCESSING__SUPPORTED_FORMATS": "[pdf, md]",
            "UNRELATED": "1",
        }
    )

    assert overrides == {
        "originals": {"create_year_folders": False},
        "processing": {"supported_formats": ["pdf", "md"]},
    }


def test_custom_pattern_keys_with_dots_are_preserved() -> None:
    config = resolve_with_precedence(
        defaults=PolishConfig(),
        file_overrides={"tagging": {"custom_patterns": {r"invoice.*\.pdf": "finance/invoice"}}},
    )

    assert config.tagging.custom_patterns == {r"invoice.*\.pdf": "finance/invoice"}


def test_supported_formats_are_normalized() -> None:
    config = resolve_with_precedence(
        defaults=PolishConfig(),
        cli_overrides={"processing.supported_formats": [".PDF", "Md"]},
    )

    assert config.processing.supported_formats == ["pdf", "md"]


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PolishConfig(),
            file_overrides={"processing": {"max_file_size_mb": "not-an-int"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=PolishConfig(), file_overrides={"vault": {"colour": 1}})
