"""Unit tests for configuration models and loading."""

import json

import pytest
from pydantic import ValidationError

from protocom.config.loader import ConfigurationError, load_config, save_config
from protocom.config.models import AppConfig, EngineConfig, LoggingConfig, SimulatorConfig


def test_defaults():
    config = AppConfig()
    assert config.engine.max_jumps == 10
    assert config.engine.hex_inline_limit == 511
    assert config.serial.port == ""
    assert config.logging.level == "INFO"
    assert not config.simulator.enabled


def test_log_level_normalized():
    assert LoggingConfig(level="debug").level == "DEBUG"
    with pytest.raises(ValidationError):
        LoggingConfig(level="verbose")


def test_engine_limits():
    with pytest.raises(ValidationError):
        EngineConfig(max_jumps=-1)
    with pytest.raises(ValidationError):
        EngineConfig(hex_inline_limit=600)


def test_firmware_version_single_line():
    with pytest.raises(ValidationError):
        SimulatorConfig(firmware_version="1.0\n2.0")


def test_unknown_fields_rejected():
    with pytest.raises(ValidationError):
        AppConfig(unknown={"x": 1})


def test_missing_file_creates_default(tmp_path):
    path = tmp_path / "protocom.json"
    config = load_config(str(path))
    assert config == AppConfig()
    assert json.loads(path.read_text(encoding="utf-8"))["engine"]["max_jumps"] == 10


def test_missing_file_without_create(tmp_path):
    path = tmp_path / "protocom.json"
    load_config(str(path), create_missing=False)
    assert not path.exists()


def test_load_partial_file(tmp_path):
    path = tmp_path / "protocom.json"
    path.write_text(json.dumps({"engine": {"max_jumps": 3}, "serial": {"port": "COM4"}}), encoding="utf-8")
    config = load_config(str(path))
    assert config.engine.max_jumps == 3
    assert config.serial.port == "COM4"
    assert config.serial.baud == 115200


def test_invalid_json(tmp_path):
    path = tmp_path / "protocom.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        load_config(str(path))


def test_validation_errors_listed(tmp_path):
    path = tmp_path / "protocom.json"
    path.write_text(json.dumps({"engine": {"max_jumps": "many"}}), encoding="utf-8")
    with pytest.raises(ConfigurationError, match="engine -> max_jumps"):
        load_config(str(path))


def test_save_and_reload(tmp_path):
    path = tmp_path / "saved.json"
    config = AppConfig()
    config.simulator.firmware_version = "2.0.0"
    save_config(config, str(path))
    assert load_config(str(path)).simulator.firmware_version == "2.0.0"
