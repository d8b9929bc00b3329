"""Exceptions raised by the shell execution service."""

from __future__ import annotations


class ShellError(Exception):
    """Base class for all shell service errors."""


class ConfigurationError(ShellError, ValueError):
    """Invalid startup configuration.  The service must not start."""


class SpawnError(ShellError):
    """The shell process could not be created for a request."""


class RequestCancelled(ShellError):
    """The service was shut down while a request was in flight.

    ``output`` holds whatever the shell produced before the cancellation
    was observed.
    """

    def __init__(self, reason: str, output: bytes = b"") -> None:
        super().__init__(reason)
        self.reason = reason
        self.output = output


class SessionClosed(ShellError):
    """The interactive shell has exited and cannot serve more requests."""

    def __init__(self, status: int | None = None) -> None:
        message = "interactive shell is closed"
        if status is not None:
            message = f"interactive shell exited with status {status}"
        super().__init__(message)
        self.status = status
