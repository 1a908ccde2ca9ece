import os
from pathlib import Path

import pytest

from garagedoor.config import ServerConfig, SigningMode, load_config, parse_address
from garagedoor.devices import PulseSpec
from garagedoor.errors import ConfigurationError


def test_missing_secret_is_fatal():
    with pytest.raises(ConfigurationError) as exc:
        load_config({})
    assert "GARAGE_SECRET" in str(exc.value)


def test_defaults():
    config = load_config({"GARAGE_SECRET": "s3cret"})
    assert config.host == "127.0.0.1"
    assert config.port == 8225
    assert config.pulse == PulseSpec(pin=25, hold_ms=100)
    assert config.status_pin == 10
    assert config.relay_active_high is False
    assert config.status_pull_up is None
    assert config.freshness_window == 10
    assert config.signing_mode is SigningMode.HEADER
    assert config.log_path is None
    assert not config.tls_enabled


def test_overrides():
    config = load_config({
        "GARAGE_SECRET": "s3cret",
        "GARAGE_HTTP": "0.0.0.0:9000",
        "GARAGE_PIN": "17",
        "GARAGE_HOLD_MS": "250",
        "GARAGE_STATUS_PIN": "22",
        "GARAGE_RELAY_ACTIVE_HIGH": "yes",
        "GARAGE_STATUS_PULL_UP": "true",
        "GARAGE_SIGNING_MODE": "BODY",
        "GARAGE_LOG_FILE": "/var/log/garage.log",
        "GARAGE_PIN_FACTORY": "Mock",
        "GARAGE_CERT": "/ssl/garage.cert",
        "GARAGE_KEY": "/ssl/garage.key",
    })
    assert (config.host, config.port) == ("0.0.0.0", 9000)
    assert config.pulse == PulseSpec(pin=17, hold_ms=250)
    assert config.status_pin == 22
    assert config.relay_active_high is True
    assert config.status_pull_up is True
    assert config.signing_mode is SigningMode.BODY
    assert config.log_path == Path("/var/log/garage.log")
    assert config.pin_factory == "mock"
    assert config.tls_enabled


@pytest.mark.parametrize("env", [
    {"GARAGE_PIN": "twenty-five"},
    {"GARAGE_HOLD_MS": "0"},
    {"GARAGE_WINDOW": "-1"},
    {"GARAGE_SIGNING_MODE": "jwt"},
    {"GARAGE_RELAY_ACTIVE_HIGH": "maybe"},
    {"GARAGE_CERT": "/ssl/garage.cert"},
    {"GARAGE_HTTP": "8225"},
])
def test_invalid_values(env):
    with pytest.raises(ConfigurationError):
        load_config({"GARAGE_SECRET": "s3cret", **env})


def test_parse_address():
    assert parse_address("[::1]:8225") == ("[::1]", 8225)
    with pytest.raises(ConfigurationError):
        parse_address("localhost:http")


def test_config_is_frozen_and_hides_secret():
    config = ServerConfig(secret="s3cret")
    with pytest.raises(AttributeError):
        config.secret = "other"
    assert "s3cret" not in repr(config)


def test_empty_secret_is_fatal():
    with pytest.raises(ConfigurationError) as exc:
        load_config({"GARAGE_SECRET": ""})
    assert "GARAGE_SECRET" in str(exc.value)


def test_validation_errors_name_the_variable():
    with pytest.raises(ConfigurationError) as exc:
        load_config({"GARAGE_SECRET": "s3cret", "GARAGE_HOLD_MS": "-5"})
    assert "GARAGE_HOLD_MS" in str(exc.value)

    with pytest.raises(ConfigurationError) as exc:
        load_config({"GARAGE_SECRET": "s3cret", "GARAGE_KEY": "/ssl/garage.key"})
    assert "GARAGE_CERT and GARAGE_KEY must be set together" in str(exc.value)


def test_reads_process_environment(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("GARAGE_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("GARAGE_SECRET", "from-env")
    monkeypatch.setenv("GARAGE_STATUS_PIN", "4")
    monkeypatch.setenv("GARAGE_SIGNING_MODE", "body")
    config = load_config()
    assert config.secret == "from-env"
    assert config.status_pin == 4
    assert config.signing_mode is SigningMode.BODY

