from pathlib import Path

import pytest
import yaml

from aegis.configuration.app_configuration import AppConfig, AutomodSettings


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_payload = {
        "database": {"path": str(config_path.parent / "bot.db")},
        "automod": {
            "spam_threshold": 7,
            "spam_window_ms": 2000,
            "config_cache_ttl_seconds": 60,
            "notice_delete_after_seconds": 3,
        },
    }
    config_path.write_text(yaml.safe_dump(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.get("automod")["spam_threshold"] == 7
    assert config.database_path == (config_path.parent / "bot.db").resolve()

    settings = config.automod_settings
    assert settings.spam_threshold == 7
    assert settings.spam_window_ms == 2000
    assert settings.config_cache_ttl_ms == 60_000
    assert settings.notice_delete_after_seconds == pytest.approx(3.0)
    # untouched keys keep their defaults
    assert settings.spam_timeout_ms == 300_000
    assert settings.sweep_interval_seconds == pytest.approx(10.0)


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.automod_settings == AutomodSettings()
    assert config.database_path.name == "aegis.db"


def test_app_config_malformed_yaml_returns_defaults(config_path: Path) -> None:
    config_path.write_text("automod: [unclosed", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.automod_settings == AutomodSettings()


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    assert AppConfig(config_path).data == {}


def test_invalid_automod_values_fall_back_to_defaults(config_path: Path) -> None:
    config_path.write_text(
        yaml.safe_dump({"automod": {"spam_threshold": "lots", "spam_window_ms": -5, "spam_timeout_ms": "60000"}}),
        encoding="utf-8",
    )

    settings = AppConfig(config_path).automod_settings

    assert settings.spam_threshold == 5
    assert settings.spam_window_ms == 3000
    assert settings.spam_timeout_ms == 60_000


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"automod": {"spam_threshold": 3}}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.automod_settings.spam_threshold == 3

    config_path.write_text(yaml.safe_dump({"automod": {"spam_threshold": 9}}), encoding="utf-8")
    config.reload()
    assert config.automod_settings.spam_threshold == 9


@pytest.mark.parametrize("field_name, bad_value", [
    ("spam_threshold", 0),
    ("spam_window_ms", 0),
    ("sweep_interval_seconds", 0),
    ("spam_timeout_ms", 0),
    ("config_cache_ttl_seconds", -1),
])
def test_out_of_range_automod_values_fall_back_to_defaults(config_path: Path, field_name, bad_value) -> None:
    config_path.write_text(yaml.safe_dump({"automod": {field_name: bad_value}}), encoding="utf-8")

    settings = AppConfig(config_path).automod_settings

    assert getattr(settings, field_name) == getattr(AutomodSettings(), field_name)


def test_boundary_automod_values_are_accepted(config_path: Path) -> None:
    config_path.write_text(
        yaml.safe_dump({"automod": {"spam_threshold": 1, "spam_window_ms": 1, "notice_delete_after_seconds": 0}}),
        encoding="utf-8",
    )

    settings = AppConfig(config_path).automod_settings

    assert settings.spam_threshold == 1
    assert settings.spam_window_ms == 1
    assert settings.notice_delete_after_seconds == 0
