"""Timeout guard delivering kill requests to a request mailbox."""

from __future__ import annotations

import threading
from typing import Optional

from .events import KillRequest, Mailbox


class TimeoutGuard:
    """Posts a single :class:`KillRequest` when a deadline expires.

    The event carries the pid it was armed for so the receiver can
    ignore a request aimed at a different process.  Once :meth:`disarm`
    returns, no kill request from this guard can be observed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._mailbox: Optional[Mailbox] = None
        self._pid: Optional[int] = None
        self._armed = False

    @classmethod
    def start(
        cls,
        mailbox: Mailbox,
        pid: int,
        kill_signal: Optional[int],
        timeout: float,
    ) -> "TimeoutGuard":
        guard = cls()
        guard.arm(mailbox, pid, kill_signal, timeout)
        return guard

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(
        self,
        mailbox: Mailbox,
        pid: int,
        kill_signal: Optional[int],
        timeout: float,
    ) -> None:
        """Start the timer.  Without a kill signal there is nothing to do."""
        if kill_signal is None:
            return
        with self._lock:
            if self._armed:
                raise RuntimeError("timeout guard is already armed")
            self._mailbox = mailbox
            self._pid = pid
            self._armed = True
            self._timer = threading.Timer(max(timeout, 0.0), self._expire, args=(kill_signal,))
            self._timer.daemon = True
            self._timer.start()

    def _expire(self, kill_signal: int) -> None:
        with self._lock:
            if not self._armed:
                return
            mailbox = self._mailbox
            pid = self._pid
            self._armed = False
            # posted under the lock so disarm can always find it
            mailbox.put(KillRequest(pid, kill_signal))

    def disarm(self) -> None:
        with self._lock:
            timer = self._timer
            mailbox = self._mailbox
            pid = self._pid
            self._armed = False
            self._timer = None
            self._mailbox = None
        if timer is None:
            return
        timer.cancel()
        mailbox.discard(lambda event: isinstance(event, KillRequest) and event.pid == pid)
