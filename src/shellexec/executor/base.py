"""
Base interfaces and dataclasses for shell executors.

Both executors share the shell construction parameters (executable,
working directory, environment and privilege policies), the kill policy
and the cancellation token of the owning service.  Subclasses decide
how long a shell lives: one per request (:class:`IsolatedExecutor`) or
one for the lifetime of the executor (:class:`InteractiveExecutor`).

Timeouts never abort a request by themselves.  They only authorise
sending the configured kill signal to the shell's process group; the
request still finishes through the normal exit or quiescence path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import RequestCancelled
from ..events import CancellationToken, Mailbox, OutputChunk
from ..launcher import EnvironmentPolicy, PrivilegePolicy
from ..process import ProcessHandle, kill_group, signal_to_string

logger = logging.getLogger("shellexec.executor")


@dataclass(frozen=True)
class KillPolicy:
    """Signals sent to the shell's process group.

    Attributes
    ----------
    timeout_signal: int, optional
        Sent when a request's deadline expires.  ``None`` lets the
        shell run to completion.
    terminate_signal: int, optional
        Sent when the service shuts down while a shell is running.
        ``None`` only closes the shell's pipes.
    """

    timeout_signal: Optional[int] = None
    terminate_signal: Optional[int] = None


@dataclass
class ExecutionResult:
    """Result of running one command in an isolated shell.

    Attributes
    ----------
    status: int
        Exit status of the shell.  Values above 128 mean the shell was
        terminated by signal ``status - 128``.
    output: bytes
        Combined stdout/stderr in arrival order.
    duration_ms: int
        Wall-clock execution time in milliseconds.
    timed_out: bool
        Whether the deadline expired and the timeout signal was sent.
    """

    status: int
    output: bytes
    duration_ms: int
    timed_out: bool = False


class ShellExecutor:
    """Common state for executors running commands in a shell."""

    def __init__(
        self,
        file_path: str,
        directory: str,
        env: EnvironmentPolicy,
        privilege: PrivilegePolicy,
        kill: KillPolicy,
        token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Parameters
        ----------
        file_path: str
            Shell executable.
        directory: str
            Working directory of the shell.
        env: EnvironmentPolicy
            Resolved environment and its delivery mode.
        privilege: PrivilegePolicy
            User to run as and login shell flag.
        kill: KillPolicy
            Signals for timeouts and termination.
        token: CancellationToken, optional
            Cancelled by the owner when it shuts down.  A private token
            is created when omitted.
        """
        self.file_path = file_path
        self.directory = directory
        self.env = env
        self.privilege = privilege
        self.kill = kill
        self.token = token if token is not None else CancellationToken()

    def _kill_shell(self, kill_signal: Optional[int], handle: ProcessHandle) -> None:
        if kill_signal is None or not handle.alive:
            return
        logger.debug("Sending %s to shell %s", signal_to_string(kill_signal), handle.pid)
        kill_group(kill_signal, handle.pid)

    def _cancel(self, handle: ProcessHandle, reason: str, mailbox: Mailbox, output: list) -> RequestCancelled:
        """Kill the shell if configured and keep any output already read."""
        self._kill_shell(self.kill.terminate_signal, handle)
        for event in mailbox.drain():
            if isinstance(event, OutputChunk):
                output.append(event.data)
            else:
                mailbox.put(event)
        return RequestCancelled(reason, b"".join(output))
