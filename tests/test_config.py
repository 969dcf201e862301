"""Tests for gatelink.config."""

import pytest

from gatelink.config import GateConfig, from_environ, load_config, load_yaml


def test_defaults():
    config = load_config(environ={})
    assert config == GateConfig()
    assert config.baud == 9600
    assert config.default_limit == 5
    assert config.default_lock_minutes == 2


def test_yaml_file(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("port: /dev/ttyACM0\ndefault_limit: 3\nread_timeout: 0.2\n")
    config = load_config(str(path), environ={})
    assert config.port == "/dev/ttyACM0"
    assert config.default_limit == 3
    assert config.read_timeout == 0.2


def test_empty_yaml(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("")
    assert load_yaml(str(path)) == {}


def test_yaml_must_be_mapping(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="expected mapping"):
        load_yaml(str(path))


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("colour: blue\n")
    with pytest.raises(ValueError, match="colour"):
        load_config(str(path), environ={})


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("default_limit: 3\n")
    config = load_config(str(path), environ={
        "GATELINK_DEFAULT_VISIT_LIMIT": "8",
        "GATELINK_DEFAULT_LOCK_TIME": "4",
        "API_KEY": "sk-test",
    })
    assert config.default_limit == 8
    assert config.default_lock_minutes == 4
    assert config.api_key == "sk-test"


def test_openai_key_takes_precedence():
    values = from_environ({"OPENAI_API_KEY": "sk-a", "API_KEY": "sk-b"})
    assert values["api_key"] == "sk-a"


def test_overrides_win_and_none_ignored():
    config = load_config(environ={"GATELINK_PORT": "/dev/ttyUSB1"}, port=None, baud=115200)
    assert config.port == "/dev/ttyUSB1"
    assert config.baud == 115200


def test_invalid_number_falls_back(caplog):
    config = load_config(environ={"GATELINK_DEFAULT_VISIT_LIMIT": "lots"})
    assert config.default_limit == 5
    assert "Ignoring invalid value" in caplog.text


def test_limits_clamped():
    config = load_config(environ={}, default_limit=0, default_lock_minutes=-3)
    assert config.default_limit == 1
    assert config.default_lock_minutes == 0
