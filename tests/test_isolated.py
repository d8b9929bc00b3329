"""
Tests for the isolated executor.

Every test runs real ``/bin/sh`` processes in a temporary directory.
"""

from __future__ import annotations

import signal
import threading
import time

import pytest

from shellexec.errors import RequestCancelled, SpawnError
from shellexec.events import CancellationToken

SIGKILL = int(signal.SIGKILL)


def test_silent_success(make_isolated):
    result = make_isolated().execute("true", timeout=5)
    assert (result.status, result.output) == (0, b"")
    assert result.timed_out is False


@pytest.mark.parametrize("code", [0, 1, 42, 127])
def test_exit_status(make_isolated, code):
    assert make_isolated().execute(f"exit {code}", timeout=5).status == code


def test_stdout_and_stderr_are_merged_in_order(make_isolated):
    result = make_isolated().execute("echo out; echo err 1>&2; echo done", timeout=5)
    assert result.output == b"out\nerr\ndone\n"


def test_status_of_last_command_is_reported(make_isolated):
    result = make_isolated().execute("echo hi; false", timeout=5)
    assert result.status == 1
    assert result.output == b"hi\n"


def test_bytes_command(make_isolated):
    assert make_isolated().execute(b"printf abc", timeout=5).output == b"abc"


def test_timeout_kills_process_group(make_isolated):
    executor = make_isolated(timeout_signal=SIGKILL)
    start = time.monotonic()
    result = executor.execute("echo started; sleep 30", timeout=0.3)
    assert time.monotonic() - start < 5
    assert result.status == 128 + SIGKILL
    assert result.timed_out is True
    assert result.output == b"started\n"


def test_timeout_without_signal_waits_for_completion(make_isolated):
    start = time.monotonic()
    result = make_isolated().execute("sleep 0.5; echo finished", timeout=0.1)
    assert time.monotonic() - start >= 0.5
    assert result.status == 0
    assert result.output == b"finished\n"
    assert result.timed_out is False


def test_each_invocation_uses_a_new_shell(make_isolated):
    executor = make_isolated()
    first = executor.execute("echo $$", timeout=5).output
    second = executor.execute("echo $$", timeout=5).output
    assert first != second


def test_native_environment_and_directory(make_isolated, tmp_path):
    executor = make_isolated(variables=[("GREETING", "hello")])
    result = executor.execute('echo "$GREETING"; pwd -P', timeout=5)
    assert result.output.decode().splitlines() == ["hello", str(tmp_path.resolve())]


def test_inline_environment_and_directory(make_isolated, tmp_path):
    executor = make_isolated(variables=[("GREETING", "hello")], native=False)
    result = executor.execute('echo "$GREETING"; pwd -P', timeout=5)
    assert result.output.decode().splitlines() == ["hello", str(tmp_path.resolve())]


def test_spawn_failure(make_isolated, tmp_path):
    executor = make_isolated(file_path=str(tmp_path / "missing-shell"))
    with pytest.raises(SpawnError):
        executor.execute("true", timeout=1)


def test_failure_does_not_affect_next_invocation(make_isolated):
    executor = make_isolated(timeout_signal=SIGKILL)
    assert executor.execute("sleep 30", timeout=0.2).status == 128 + SIGKILL
    assert executor.execute("exit 0", timeout=5).status == 0


def test_cancellation_kills_and_propagates(make_isolated):
    token = CancellationToken()
    executor = make_isolated(terminate_signal=SIGKILL, token=token)
    timer = threading.Timer(0.3, token.cancel, args=("stopping",))
    timer.start()
    start = time.monotonic()
    with pytest.raises(RequestCancelled) as excinfo:
        executor.execute("echo partial; sleep 30", timeout=30)
    timer.join()
    assert time.monotonic() - start < 5
    assert excinfo.value.reason == "stopping"
    assert excinfo.value.output == b"partial\n"


def test_cancellation_is_observed_without_kill_policy(make_isolated):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(RequestCancelled):
        make_isolated(token=token).execute("true", timeout=5)


def test_timeout_is_not_delayed_by_unread_input(make_isolated):
    executor = make_isolated(timeout_signal=SIGKILL)
    start = time.monotonic()
    result = executor.execute("sleep 4\n" + "true\n" * 40000, timeout=0.3)
    assert time.monotonic() - start < 2
    assert result.status == 128 + SIGKILL
    assert result.timed_out is True


def test_cancellation_is_not_delayed_by_unread_input(make_isolated):
    token = CancellationToken()
    executor = make_isolated(terminate_signal=SIGKILL, token=token)
    timer = threading.Timer(0.3, token.cancel)
    timer.start()
    start = time.monotonic()
    with pytest.raises(RequestCancelled):
        executor.execute("sleep 4\n" + "true\n" * 40000, timeout=30)
    timer.join()
    assert time.monotonic() - start < 2


def test_kill_request_for_another_shell_is_ignored(make_isolated, foreign_kill_token):
    executor = make_isolated(token=foreign_kill_token)
    result = executor.execute("sleep 0.3; echo done", timeout=5)
    assert result.status == 0
    assert result.output == b"done\n"
    assert result.timed_out is False
