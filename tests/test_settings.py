import os
import sys

import pytest
import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from settings_schema import SettingsSchema, load_settings, validate_settings


def test_yaml_round_trip(tmp_path):
    cfg = YamlConfig(str(tmp_path / "settings.yaml"))
    assert cfg.load() == {}
    cfg.save({"default_user": "alice", "session_window_hours": 6})
    assert cfg.load() == {"default_user": "alice", "session_window_hours": 6}


def test_non_mapping_file_is_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        YamlConfig(str(path)).load()


def test_load_settings_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "missing.yaml"))
    assert settings == SettingsSchema()
    assert settings.session_window_hours == 12.0
    assert settings.workout_history_limit == 100
    assert settings.exercise_history_limit == 1000
    assert settings.log_file is None


def test_load_settings_overrides(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({"session_window_hours": 3, "log_level": "DEBUG"}), encoding="utf-8")
    settings = load_settings(str(path))
    assert settings.session_window_hours == 3.0
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "data",
    [
        {"session_window_hours": 0},
        {"workout_history_limit": -1},
        {"exercise_history_limit": "many"},
    ],
)
def test_invalid_settings(data):
    with pytest.raises(ValueError):
        validate_settings(data)
