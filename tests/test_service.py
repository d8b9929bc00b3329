"""Tests for the service facade: wiring, replies and request logging."""

from __future__ import annotations

import logging

import pytest

from shellexec.config import Config
from shellexec.errors import ConfigurationError
from shellexec.logs import TRACE
from shellexec.service import ShellService, validate_response


@pytest.fixture
def service_factory(tmp_path):
    created = []

    def _make(**overrides):
        options = {"login": False, "directory": str(tmp_path), "quiescence": 0.2}
        options.update(overrides)
        service = ShellService(Config(**options), lookup={"HOME": "/home/svc"})
        created.append(service)
        return service

    yield _make
    for service in created:
        service.shutdown()


def test_isolated_reply_is_exit_status(service_factory):
    service = service_factory()
    assert service.mode == "isolated"
    assert service.handle_request("exit 3", timeout=5) == b"3"
    assert service.handle_request(b"true", timeout=5) == b"0"


def test_isolated_timeout_kill_reply(service_factory):
    service = service_factory(timeout_kills_process=True)
    assert service.handle_request("sleep 30", timeout=0.2) == b"137"


def test_validate_response():
    assert validate_response(b"0") is True
    assert validate_response("0") is True
    assert validate_response(b"1") is False
    assert validate_response("not a status") is False


def test_environment_is_expanded_and_reset(service_factory):
    service = service_factory(env=[("TOOLS", "$HOME/tools")])
    variables = service.isolated.env.variables
    assert variables[-1] == ("TOOLS", "/home/svc/tools")
    assert ("PYTHONPATH", None) in variables
    assert service.isolated.env.native is True
    output = service.execute('echo "$TOOLS"', timeout=5).output
    assert output == b"/home/svc/tools\n"


def test_switch_user_login_shell_uses_inline_environment(service_factory):
    service = service_factory(user="nobody", su_path="/bin/sh", login=True, env=[("A", "1")])
    assert service.isolated.env.native is False
    assert service.isolated.env.variables == [("A", "1")]


def test_successful_output_logged_at_debug_level(service_factory, caplog):
    caplog.set_level(TRACE, logger="shellexec")
    service = service_factory()
    service.handle_request("echo hello", timeout=5, request_info={"request": "42"})
    records = [r for r in caplog.records if r.name == "shellexec.service"]
    assert records[-1].levelno == TRACE
    assert records[-1].getMessage() == "# request: 42\necho hello = 0 (stdout/stderr below)\nhello\n"


def test_failure_logged_at_error_level(service_factory, caplog):
    caplog.set_level(TRACE, logger="shellexec")
    service = service_factory(debug=False, timeout_kills_process=True)
    service.handle_request("true", timeout=5)
    service.handle_request("sleep 30", timeout=0.2)
    records = [r for r in caplog.records if r.name == "shellexec.service"]
    assert len(records) == 1
    assert records[0].levelno == logging.ERROR
    assert records[0].getMessage() == "sleep 30 = SIGKILL"


def test_interactive_reply_is_output(service_factory, caplog):
    caplog.set_level(logging.DEBUG, logger="shellexec")
    service = service_factory(interactive=True, debug_level="debug")
    assert service.mode == "interactive"
    assert service.handle_request("echo hi", timeout=2) == b"hi\n"
    messages = [r.getMessage() for r in caplog.records if r.name == "shellexec.service"]
    assert "echo hi (stdout/stderr below)\nhi\n" in messages


def test_interactive_initial_input(service_factory):
    service = service_factory(interactive="GREETING=hey")
    assert service.handle_request('echo "$GREETING"', timeout=2) == b"hey\n"


def test_execute_requires_isolated_mode(service_factory):
    service = service_factory(interactive=True)
    with pytest.raises(ConfigurationError):
        service.execute("true")


def test_invalid_configuration_prevents_start(tmp_path):
    with pytest.raises(ConfigurationError):
        ShellService(Config(file_path=str(tmp_path / "missing")))


def test_shutdown_closes_interactive_shell(service_factory):
    service = service_factory(interactive=True)
    service.shutdown()
    service.interactive.wait(5)
    assert not service.interactive.alive
    assert service.token.cancelled
