"""Tests for configuration loading and saving."""

import json

import pytest
from pydantic import ValidationError

from config.settings import AppConfig, get_default_config, get_template_config


def test_load_json_config(tmp_path) -> None:
    """JSON files load, with omitted sections falling back to defaults."""
    path = tmp_path / "tab_config.json"
    path.write_text(json.dumps({"tab": {"draw_seed": 99, "max_judges_per_room": 5}}))

    config = AppConfig.load_from_file(path)

    assert config.tab.draw_seed == 99
    assert config.tab.max_judges_per_room == 5
    assert config.timing.for_format("AP").prep_duration == 1800.0
    assert config.system.database_path == "tournaments.db"


def test_load_yaml_config(tmp_path) -> None:
    path = tmp_path / "tab_config.yaml"
    path.write_text(
        "timing:\n"
        "  BP:\n"
        "    prep_duration: 600\n"
        "    speech_duration: 300\n"
        "system:\n"
        "  log_level: DEBUG\n"
    )

    config = AppConfig.load_from_file(path)

    assert config.timing.BP.prep_duration == 600.0
    assert config.timing.BP.speech_duration == 300.0
    assert config.system.log_level == "DEBUG"


def test_unknown_section_rejected(tmp_path) -> None:
    path = tmp_path / "tab_config.json"
    path.write_text(json.dumps({"models": {}}))

    with pytest.raises(ValueError, match="Unknown config sections"):
        AppConfig.load_from_file(path)


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        AppConfig.load_from_file(tmp_path / "absent.json")


def test_invalid_values_rejected() -> None:
    """Field constraints are enforced by the models."""
    with pytest.raises(ValidationError):
        AppConfig(tab={"round_one_draw_attempts": 0})
    with pytest.raises(ValidationError):
        AppConfig(system={"database_path": "  "})


def test_save_writes_yaml(tmp_path) -> None:
    path = tmp_path / "nested" / "saved.yaml"
    config = get_template_config()
    config.tab.draw_seed = 3

    config.save_to_file(path)
    loaded = AppConfig.load_from_file(path)

    assert loaded.tab.draw_seed == 3
    assert loaded.timing.BP.speech_duration == 420.0


def test_default_config_created_on_first_use(tmp_path, monkeypatch) -> None:
    """A missing tab_config.json is written from the template."""
    monkeypatch.chdir(tmp_path)

    config = get_default_config()

    assert (tmp_path / "tab_config.json").exists()
    assert config.tab.default_breaking_teams == 8
