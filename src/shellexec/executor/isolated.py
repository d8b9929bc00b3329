"""
Executor running each command in its own shell.

The shell receives ``<command>\\nexit $?\\n`` on stdin so its exit status
is the command's exit status.  Output is collected until the shell exits;
the handle is closed afterwards and never reused.
"""

from __future__ import annotations

import time

from ..events import Cancelled, ExitStatus, KillRequest, Mailbox, OutputChunk
from ..guard import TimeoutGuard
from ..launcher import launch
from .base import ExecutionResult, ShellExecutor, logger


class IsolatedExecutor(ShellExecutor):
    """Execute commands in a disposable shell."""

    def execute(self, command: "str | bytes", timeout: float) -> ExecutionResult:
        """Run ``command`` and wait for the shell to exit.

        Raises :class:`~shellexec.errors.SpawnError` if the shell cannot
        be started and :class:`~shellexec.errors.RequestCancelled` if
        the owner shuts down while waiting.
        """
        if isinstance(command, str):
            command = command.encode("utf-8")
        start_time = time.perf_counter()
        mailbox = Mailbox()
        shell_input, handle = launch(
            command + b"\nexit $?\n",
            self.file_path,
            self.directory,
            self.env,
            self.privilege,
            mailbox.put,
        )
        self.token.subscribe(mailbox)
        guard = TimeoutGuard.start(mailbox, handle.pid, self.kill.timeout_signal, timeout)
        output: list = []
        timed_out = False
        try:
            handle.write(shell_input)
            while True:
                event = mailbox.get()
                if isinstance(event, OutputChunk):
                    output.append(event.data)
                elif isinstance(event, KillRequest):
                    if event.pid != handle.pid:
                        continue
                    timed_out = True
                    logger.info("Command timed out after %ss; sending signal to shell %s", timeout, handle.pid)
                    self._kill_shell(event.signal, handle)
                elif isinstance(event, Cancelled):
                    raise self._cancel(handle, event.reason, mailbox, output)
                elif isinstance(event, ExitStatus):
                    status = event.status
                    break
        finally:
            guard.disarm()
            self.token.unsubscribe(mailbox)
            handle.close()
        duration = int((time.perf_counter() - start_time) * 1000)
        return ExecutionResult(status, b"".join(output), duration, timed_out)
