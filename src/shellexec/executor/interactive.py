"""
Executor feeding requests to one long-lived shell.

The shell is started once and kept for the executor's lifetime.  Between
requests its output goes to a background consumer that only logs it.  A
request attaches its own mailbox as the output consumer, writes its
text, and collects output until the shell goes quiet:

* the first wait lasts for the request timeout plus a short grace;
* every output chunk shortens the wait to the quiescence window.

There is no end-of-response marker, so a pause in output is taken as
the end of the response.  The shell is not killed when the wait runs
out; only the timeout guard (when a timeout signal is configured) or a
shutdown with a terminate signal sends a signal to it.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ..errors import SessionClosed
from ..events import Cancelled, CancellationToken, Event, ExitStatus, KillRequest, Mailbox, OutputChunk
from ..guard import TimeoutGuard
from ..launcher import EnvironmentPolicy, PrivilegePolicy, launch
from ..process import ProcessHandle
from .base import KillPolicy, ShellExecutor, logger

FIRST_OUTPUT_GRACE = 0.5
DEFAULT_QUIESCENCE = 0.1


class InteractiveExecutor(ShellExecutor):
    """Execute requests in a persistent shell session."""

    def __init__(
        self,
        file_path: str,
        directory: str,
        env: EnvironmentPolicy,
        privilege: PrivilegePolicy,
        kill: KillPolicy,
        token: Optional[CancellationToken] = None,
        quiescence: float = DEFAULT_QUIESCENCE,
        on_output: Optional[Callable[[bytes], None]] = None,
        on_exit: Optional[Callable[[int], None]] = None,
    ) -> None:
        super().__init__(file_path, directory, env, privilege, kill, token)
        self.quiescence = quiescence
        self._on_output = on_output
        self._on_exit = on_exit
        self._handle: Optional[ProcessHandle] = None
        self._exit_status: Optional[int] = None
        self._attached = threading.Lock()

    @property
    def pid(self) -> Optional[int]:
        return self._handle.pid if self._handle is not None else None

    @property
    def alive(self) -> bool:
        return self._handle is not None and self._exit_status is None and self._handle.alive

    def start(self, initial_input: "str | bytes | None" = None) -> "InteractiveExecutor":
        """Launch the shell and send ``initial_input`` without waiting for output."""
        if self._handle is not None:
            raise RuntimeError("interactive shell already started")
        if initial_input is None:
            shell_input = b""
        else:
            if isinstance(initial_input, str):
                initial_input = initial_input.encode("utf-8")
            shell_input = initial_input + b"\n"
        shell_input, self._handle = launch(
            shell_input,
            self.file_path,
            self.directory,
            self.env,
            self.privilege,
            self._background,
        )
        if shell_input:
            self._handle.write(shell_input)
        logger.info("Interactive shell started (pid %s)", self._handle.pid)
        return self

    def _background(self, event: Event) -> None:
        if isinstance(event, OutputChunk):
            if self._on_output is not None:
                self._on_output(event.data)
        elif isinstance(event, ExitStatus):
            self._exit_status = event.status
            if self._on_exit is not None:
                self._on_exit(event.status)

    def execute(self, text: "str | bytes", timeout: float) -> bytes:
        """Feed ``text`` to the shell and return the output it produced.

        Only one request may be attached at a time; a concurrent call
        raises ``RuntimeError`` instead of interleaving output.
        """
        handle = self._handle
        if handle is None or not self.alive:
            raise SessionClosed(self._exit_status)
        if isinstance(text, str):
            text = text.encode("utf-8")
        if not self._attached.acquire(blocking=False):
            raise RuntimeError("interactive shell already has an attached request")
        try:
            return self._attached_request(handle, text + b"\n", timeout)
        finally:
            self._attached.release()

    def _attached_request(self, handle: ProcessHandle, shell_input: bytes, timeout: float) -> bytes:
        mailbox = Mailbox()
        output: list = []
        background = handle.connect(mailbox.put)
        guard = TimeoutGuard.start(mailbox, handle.pid, self.kill.timeout_signal, timeout)
        self.token.subscribe(mailbox)
        try:
            handle.write(shell_input)
            wait = timeout + FIRST_OUTPUT_GRACE
            while True:
                started = time.monotonic()
                event = mailbox.next_event(wait)
                if event is None:
                    break
                if isinstance(event, OutputChunk):
                    output.append(event.data)
                    wait = self.quiescence
                elif isinstance(event, KillRequest):
                    if event.pid != handle.pid:
                        wait = max(wait - (time.monotonic() - started), 0.0)
                        continue
                    logger.info("Interactive request timed out after %ss; sending signal to shell %s", timeout, handle.pid)
                    self._kill_shell(event.signal, handle)
                    break
                elif isinstance(event, Cancelled):
                    raise self._cancel(handle, event.reason, mailbox, output)
                elif isinstance(event, ExitStatus):
                    self._background(event)
                    break
        finally:
            guard.disarm()
            handle.connect(background)
            self.token.unsubscribe(mailbox)
            # late arrivals belong to the background owner
            for event in mailbox.drain():
                if isinstance(event, (OutputChunk, ExitStatus)):
                    background(event)
        return b"".join(output)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for the shell to exit and return its status."""
        if self._handle is None:
            return None
        return self._handle.wait(timeout)

    def close(self) -> None:
        """Tear down the session, signalling the shell first if configured."""
        handle = self._handle
        if handle is None:
            return
        self._kill_shell(self.kill.terminate_signal, handle)
        handle.close()
        logger.info("Interactive shell closed (pid %s)", handle.pid)
