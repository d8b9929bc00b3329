"""Tests for environment-driven configuration."""

from __future__ import annotations

import signal

import pytest

from shellexec.config import Config
from shellexec.errors import ConfigurationError


def test_defaults():
    config = Config.load({})
    assert config.file_path == "/bin/sh"
    assert config.directory == "/"
    assert config.env == []
    assert config.user is None
    assert config.login is True
    assert config.interactive is False
    assert config.timeout_signal is None
    assert config.terminate_signal is None
    assert config.debug_level == "trace"


def test_load_from_environment(tmp_path):
    config = Config.load(
        {
            "SHELLEXEC_FILE_PATH": "/bin/sh",
            "SHELLEXEC_DIRECTORY": str(tmp_path),
            "SHELLEXEC_ENV": '{"A": "1", "B": "$HOME"}',
            "SHELLEXEC_LOGIN": "false",
            "SHELLEXEC_TIMEOUT_KILLS_PROCESS": "true",
            "SHELLEXEC_TIMEOUT_KILLS_PROCESS_SIGNAL": "sigterm",
            "SHELLEXEC_TERMINATE_KILLS_PROCESS": "yes",
            "SHELLEXEC_DEFAULT_TIMEOUT": "2.5",
            "SHELLEXEC_DEBUG_LEVEL": "INFO",
            "PORT": "9000",
        }
    )
    assert config.env == [("A", "1"), ("B", "$HOME")]
    assert config.login is False
    assert config.timeout_signal == int(signal.SIGTERM)
    assert config.terminate_signal == int(signal.SIGKILL)
    assert config.default_timeout == 2.5
    assert config.debug_level == "info"
    assert config.port == 9000
    config.validate()


@pytest.mark.parametrize(
    "value, expected",
    [("false", False), ("", False), ("true", True), ("1", True), ("PS1=''", "PS1=''")],
)
def test_interactive_values(value, expected):
    assert Config.load({"SHELLEXEC_INTERACTIVE": value}).interactive == expected


def test_invalid_number():
    with pytest.raises(ValueError):
        Config.load({"SHELLEXEC_DEFAULT_TIMEOUT": "soon"})


@pytest.mark.parametrize("value", ["not json", "[1, 2]"])
def test_invalid_env(value):
    with pytest.raises(ValueError):
        Config.load({"SHELLEXEC_ENV": value})


def test_from_env_validates(monkeypatch, tmp_path):
    monkeypatch.setenv("SHELLEXEC_DIRECTORY", str(tmp_path / "missing"))
    with pytest.raises(ConfigurationError):
        Config.from_env()


@pytest.mark.parametrize(
    "overrides",
    [
        {"file_path": "/no/such/shell"},
        {"directory": "/no/such/directory"},
        {"user": "nobody", "su_path": "/no/such/su"},
        {"env": [("", "x")]},
        {"timeout_kills_process_signal": "sigbogus"},
        {"debug_level": "verbose"},
        {"default_timeout": 0},
    ],
)
def test_validate_rejects(overrides):
    with pytest.raises(ConfigurationError):
        Config(**overrides).validate()


def test_validate_rejects_non_executable_shell(tmp_path):
    shell = tmp_path / "shell"
    shell.write_text("#!/bin/sh\n")
    shell.chmod(0o644)
    with pytest.raises(ConfigurationError):
        Config(file_path=str(shell)).validate()
