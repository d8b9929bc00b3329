"""OS process handles, signal helpers and process group termination.

A :class:`ProcessHandle` wraps a ``subprocess.Popen`` shell.  A daemon
reader thread pumps the merged stdout/stderr stream into whichever
consumer is currently connected, then reaps the process and posts its
exit status.  Because the exit status is only posted once the output
pipe reaches EOF, a consumer never sees the exit before the output that
preceded it.

Input goes the other way through a writer thread fed by a queue, so
:meth:`ProcessHandle.write` never blocks on a shell that is not reading.
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import threading
from typing import Callable, Optional

from .events import Event, ExitStatus, OutputChunk

logger = logging.getLogger("shellexec.process")

READ_CHUNK_SIZE = 65536

Consumer = Callable[[Event], None]


def signal_to_integer(value: "str | int") -> int:
    """Translate ``"sigkill"``, ``"KILL"``, ``"9"`` or ``9`` to a signal number."""
    if isinstance(value, int):
        number = value
    else:
        text = value.strip()
        if text.lstrip("-").isdigit():
            number = int(text)
        else:
            name = text.upper()
            if not name.startswith("SIG"):
                name = "SIG" + name
            try:
                return int(signal.Signals[name])
            except KeyError:
                raise ValueError(f"Unknown signal: {value}")
    try:
        return int(signal.Signals(number))
    except ValueError:
        raise ValueError(f"Unknown signal: {value}")


def signal_to_string(number: int) -> str:
    try:
        return signal.Signals(number).name
    except ValueError:
        return str(number)


def exit_status(returncode: int) -> int:
    """Shell convention: death by signal N is reported as ``128 + N``."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def status_to_string(status: int) -> str:
    if status > 128:
        try:
            return signal.Signals(status - 128).name
        except ValueError:
            pass
    return str(status)


def kill_group(sig: int, pid: int) -> bool:
    """Send ``sig`` to the process group of ``pid``.

    A process that is already gone counts as success.  Returns ``False``
    only when the signal could not be delivered for another reason.
    """
    try:
        os.killpg(os.getpgid(pid), sig)
    except ProcessLookupError:
        return True
    except PermissionError as exc:
        logger.warning("Unable to send %s to process group of %s: %s", signal_to_string(sig), pid, exc)
        return False
    logger.debug("Sent %s to process group of %s", signal_to_string(sig), pid)
    return True


class ProcessHandle:
    """A running shell with a reassignable output consumer."""

    def __init__(self, process: subprocess.Popen, consumer: Consumer) -> None:
        self._process = process
        self.pid: int = process.pid
        self.status: Optional[int] = None
        self._consumer = consumer
        self._lock = threading.Lock()
        self._exited = threading.Event()
        self._input_closed = threading.Event()
        self._pending: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self._reader = threading.Thread(
            target=self._pump,
            name=f"shellexec-reader-{self.pid}",
            daemon=True,
        )
        self._writer = threading.Thread(
            target=self._feed,
            name=f"shellexec-writer-{self.pid}",
            daemon=True,
        )

    def start(self) -> "ProcessHandle":
        self._reader.start()
        self._writer.start()
        return self

    @property
    def alive(self) -> bool:
        return not self._exited.is_set()

    def connect(self, consumer: Consumer) -> Consumer:
        """Route future events to ``consumer``; return the previous one."""
        with self._lock:
            previous = self._consumer
            self._consumer = consumer
        return previous

    def _dispatch(self, event: Event) -> None:
        with self._lock:
            consumer = self._consumer
            consumer(event)

    def write(self, data: bytes) -> bool:
        """Queue ``data`` for the shell's stdin without waiting for it to be read.

        Returns ``False`` once the input side has been closed or has failed.
        """
        if self._process.stdin is None or self._input_closed.is_set():
            return False
        if data:
            self._pending.put(data)
        return True

    def _feed(self) -> None:
        stdin = self._process.stdin
        if stdin is None:
            return
        while True:
            data = self._pending.get()
            if data is None:
                break
            view = memoryview(data)
            try:
                while view:
                    view = view[stdin.write(view):]
            except (BrokenPipeError, ValueError, OSError) as exc:
                # the shell is gone or stopped reading for good; drop the rest
                logger.debug("Write to shell %s failed: %s", self.pid, exc)
                self._input_closed.set()
                break
        try:
            stdin.close()
        except OSError:
            pass

    def _pump(self) -> None:
        stdout = self._process.stdout
        fd = stdout.fileno()
        while True:
            try:
                data = os.read(fd, READ_CHUNK_SIZE)
            except OSError:
                break
            if not data:
                break
            self._dispatch(OutputChunk(data))
        self.status = exit_status(self._process.wait())
        try:
            self._dispatch(ExitStatus(self.status))
        finally:
            self._exited.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the exit status has been delivered to the consumer."""
        self._exited.wait(timeout)
        return self.status

    def close(self, timeout: float = 1.0) -> None:
        """Close stdin and release the output pipe once the reader is done.

        Stdin is closed by the writer thread after any queued input, so a
        shell still busy with earlier input sees EOF only once it has read
        it.  A shell that keeps running after losing its input is left to
        the reader thread, which still reaps it when it exits.
        """
        if not self._input_closed.is_set():
            self._input_closed.set()
            self._pending.put(None)
        self._reader.join(timeout)
        if not self._reader.is_alive() and self._process.stdout is not None:
            self._process.stdout.close()
