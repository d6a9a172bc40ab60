"""
Settings from defaults, environment and command-line flags
"""
import pytest
from pydantic import ValidationError

from hello_server.__main__ import load_settings, parse_args
from hello_server.config import Settings

def test_defaults():
    settings = Settings()
    assert settings.host == "0.0.0.0"
    assert settings.port == 8080
    assert settings.shutdown_timeout == 10.0
    assert settings.log_level == "INFO"
    assert settings.access_log is True

def test_from_env_reads_recognized_variables():
    settings = Settings.from_env({
        "HOST": "127.0.0.1",
        "PORT": "9000",
        "SHUTDOWN_TIMEOUT": "2.5",
        "LOG_LEVEL": "debug",
        "ACCESS_LOG": "false",
    })
    assert settings.host == "127.0.0.1"
    assert settings.port == 9000
    assert settings.shutdown_timeout == 2.5
    assert settings.log_level == "DEBUG"
    assert settings.access_log is False

def test_from_env_ignores_empty_values():
    settings = Settings.from_env({"HOST": "", "PORT": ""})
    assert settings.host == "0.0.0.0"
    assert settings.port == 8080

@pytest.mark.parametrize("port", ["-1", "65536", "http"])
def test_invalid_port_is_rejected(port):
    with pytest.raises(ValidationError):
        Settings.from_env({"PORT": port})

@pytest.mark.parametrize("timeout", ["0", "-3"])
def test_non_positive_shutdown_timeout_is_rejected(timeout):
    with pytest.raises(ValidationError):
        Settings.from_env({"SHUTDOWN_TIMEOUT": timeout})

def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError):
        Settings(log_level="VERBOSE")

def test_with_overrides_skips_none():
    settings = Settings(port=9000).with_overrides(host="::1", port=None)
    assert settings.host == "::1"
    assert settings.port == 9000

def test_flags_take_precedence_over_environment(monkeypatch):
    monkeypatch.setenv("HOST", "10.1.1.1")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("ACCESS_LOG", "true")

    settings = load_settings(parse_args(["--port", "9100", "--log-level", "warning", "--no-access-log"]))

    assert settings.host == "10.1.1.1"
    assert settings.port == 9100
    assert settings.log_level == "WARNING"
    assert settings.access_log is False

def test_flags_are_validated(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    with pytest.raises(ValidationError):
        load_settings(parse_args(["--port", "70000"]))
