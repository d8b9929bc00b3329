"""Shared fixtures for the shell service tests."""

from __future__ import annotations

import signal

import pytest

from shellexec.events import CancellationToken, KillRequest
from shellexec.executor import InteractiveExecutor, IsolatedExecutor, KillPolicy
from shellexec.launcher import EnvironmentPolicy, PrivilegePolicy

SHELL = "/bin/sh"


@pytest.fixture
def make_isolated(tmp_path):
    """Factory for isolated executors running ``/bin/sh`` in ``tmp_path``."""

    def _make(timeout_signal=None, terminate_signal=None, variables=None, native=True, token=None, file_path=SHELL):
        return IsolatedExecutor(
            file_path,
            str(tmp_path),
            EnvironmentPolicy(variables=list(variables or []), native=native),
            PrivilegePolicy(login=False),
            KillPolicy(timeout_signal=timeout_signal, terminate_signal=terminate_signal),
            token if token is not None else CancellationToken(),
        )

    return _make


@pytest.fixture
def make_interactive(tmp_path):
    """Factory for started interactive executors; closed after the test."""
    started = []

    def _make(timeout_signal=None, terminate_signal=None, initial_input=None, quiescence=0.2, **kwargs):
        executor = InteractiveExecutor(
            SHELL,
            str(tmp_path),
            EnvironmentPolicy(),
            PrivilegePolicy(login=False),
            KillPolicy(timeout_signal=timeout_signal, terminate_signal=terminate_signal),
            quiescence=quiescence,
            **kwargs,
        )
        executor.start(initial_input)
        started.append(executor)
        return executor

    yield _make
    for executor in started:
        executor.close()


class _ForeignKillToken(CancellationToken):
    """Posts a kill request for an unrelated pid into every subscribed mailbox."""

    def subscribe(self, mailbox):
        super().subscribe(mailbox)
        mailbox.put(KillRequest(pid=-1, signal=int(signal.SIGKILL)))


@pytest.fixture
def foreign_kill_token():
    """Token that makes each request see a kill request from a stale timer."""
    return _ForeignKillToken()
