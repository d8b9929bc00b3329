"""Events exchanged between a shell process and the request waiting on it.

Every in-flight request owns a :class:`Mailbox`.  The process reader
thread, the timeout guard and the service cancellation token all post
into it, and the request consumes events one at a time until it reaches
a terminal condition.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Set, Union


@dataclass(frozen=True)
class OutputChunk:
    """Bytes read from the merged stdout/stderr stream."""

    data: bytes


@dataclass(frozen=True)
class ExitStatus:
    """The shell has exited.  Always posted after the last output chunk."""

    status: int


@dataclass(frozen=True)
class KillRequest:
    """A timeout guard expired for the process ``pid``."""

    pid: int
    signal: int


@dataclass(frozen=True)
class Cancelled:
    """The owner of the request is shutting down."""

    reason: str


Event = Union[OutputChunk, ExitStatus, KillRequest, Cancelled]


class Mailbox(queue.Queue):
    """FIFO of :data:`Event` objects with selective removal."""

    def next_event(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Return the next event, or ``None`` when ``timeout`` elapses."""
        try:
            return self.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        """Remove and return everything currently queued."""
        events = []
        while True:
            try:
                events.append(self.get_nowait())
            except queue.Empty:
                return events

    def discard(self, predicate: Callable[[Event], bool]) -> int:
        """Drop queued events matching ``predicate``; return how many."""
        with self.mutex:
            kept = [event for event in self.queue if not predicate(event)]
            removed = len(self.queue) - len(kept)
            self.queue.clear()
            self.queue.extend(kept)
            if removed:
                self.not_full.notify_all()
        return removed


class CancellationToken:
    """Broadcasts a single cancellation to every subscribed mailbox.

    A mailbox subscribing after cancellation receives the event
    immediately, so a request started during shutdown still observes it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._subscribers: Set[Mailbox] = set()

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "shutdown") -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            subscribers = list(self._subscribers)
        for mailbox in subscribers:
            mailbox.put(Cancelled(reason))

    def subscribe(self, mailbox: Mailbox) -> None:
        with self._lock:
            reason = self._reason
            if reason is None:
                self._subscribers.add(mailbox)
        if reason is not None:
            mailbox.put(Cancelled(reason))

    def unsubscribe(self, mailbox: Mailbox) -> None:
        with self._lock:
            self._subscribers.discard(mailbox)
