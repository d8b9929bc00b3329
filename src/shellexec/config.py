"""Configuration loader.

The shell service reads its configuration from environment variables so
the same image can run with different shells, users and kill policies.
Defaults describe an isolated ``/bin/sh`` login shell in ``/``.

Environment variables:

``SHELLEXEC_FILE_PATH``
    Shell executable.  Defaults to ``/bin/sh``.

``SHELLEXEC_DIRECTORY``
    Working directory of the shell.  Defaults to ``/``.

``SHELLEXEC_ENV``
    JSON object of environment variables for the shell.  ``$NAME`` and
    ``${NAME}`` references to the service's own environment are
    expanded once at startup.

``SHELLEXEC_USER``
    Run the shell as this user through ``su``.  Unset by default.

``SHELLEXEC_SU_PATH``
    Location of ``su``.  Defaults to ``/bin/su``.

``SHELLEXEC_LOGIN``
    Start a login shell.  Defaults to ``true``.

``SHELLEXEC_INTERACTIVE``
    ``false`` (default) runs every request in its own shell and replies
    with the exit status.  ``true`` keeps one shell for the service's
    lifetime and replies with its output.  Any other value also keeps
    one shell and is sent to it as initial input.

``SHELLEXEC_TIMEOUT_KILLS_PROCESS`` / ``SHELLEXEC_TIMEOUT_KILLS_PROCESS_SIGNAL``
    Send a signal (default ``SIGKILL``) to the shell's process group
    when a request times out.  Disabled by default.

``SHELLEXEC_TERMINATE_KILLS_PROCESS`` / ``SHELLEXEC_TERMINATE_KILLS_PROCESS_SIGNAL``
    Send a signal (default ``SIGKILL``) to the shell's process group
    when the service shuts down.  Disabled by default; the shell's
    pipes are closed either way.

``SHELLEXEC_DEFAULT_TIMEOUT``
    Request timeout in seconds when the request does not carry one.
    Default is 5.

``SHELLEXEC_QUIESCENCE``
    Seconds of silence that end an interactive response.  Default 0.1.

``SHELLEXEC_DEBUG`` / ``SHELLEXEC_DEBUG_LEVEL``
    Log request output (default ``true``) at the given level: ``trace``
    (default), ``debug``, ``info``, ``warn``, ``error`` or ``fatal``.

``PORT``
    The port on which the API server listens.  Defaults to 8080.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError
from .process import signal_to_integer

DEBUG_LEVELS = ("trace", "debug", "info", "warn", "error", "fatal")

_TRUE = {"1", "true", "t", "yes", "y"}
_FALSE = {"0", "false", "f", "no", "n"}


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in _TRUE


def _parse_interactive(value: str | None) -> Union[bool, str]:
    if value is None or value.strip().lower() in _FALSE or not value.strip():
        return False
    if value.strip().lower() in _TRUE:
        return True
    return value


def _parse_env(value: str | None) -> List[Tuple[str, str]]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        raise ValueError(f"Invalid JSON for SHELLEXEC_ENV: {value}")
    if not isinstance(parsed, dict):
        raise ValueError("SHELLEXEC_ENV must be a JSON object")
    return list(parsed.items())


@dataclass
class Config:
    """Centralised configuration object."""

    file_path: str = "/bin/sh"
    directory: str = "/"
    env: List[Tuple[str, str]] = field(default_factory=list)
    user: Optional[str] = None
    su_path: str = "/bin/su"
    login: bool = True
    interactive: Union[bool, str] = False
    timeout_kills_process: bool = False
    timeout_kills_process_signal: str = "SIGKILL"
    terminate_kills_process: bool = False
    terminate_kills_process_signal: str = "SIGKILL"
    default_timeout: float = 5.0
    quiescence: float = 0.1
    debug: bool = True
    debug_level: str = "trace"
    port: int = 8080

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        if environ is None:
            environ = os.environ

        def _number_var(name: str, default, kind):
            val = environ.get(name)
            if val is None:
                return default
            try:
                return kind(val)
            except ValueError:
                raise ValueError(f"Invalid {kind.__name__} for {name}: {val}")

        return cls(
            file_path=environ.get("SHELLEXEC_FILE_PATH", "/bin/sh"),
            directory=environ.get("SHELLEXEC_DIRECTORY", "/"),
            env=_parse_env(environ.get("SHELLEXEC_ENV")),
            user=environ.get("SHELLEXEC_USER") or None,
            su_path=environ.get("SHELLEXEC_SU_PATH", "/bin/su"),
            login=_parse_bool(environ.get("SHELLEXEC_LOGIN"), True),
            interactive=_parse_interactive(environ.get("SHELLEXEC_INTERACTIVE")),
            timeout_kills_process=_parse_bool(environ.get("SHELLEXEC_TIMEOUT_KILLS_PROCESS"), False),
            timeout_kills_process_signal=environ.get("SHELLEXEC_TIMEOUT_KILLS_PROCESS_SIGNAL", "SIGKILL"),
            terminate_kills_process=_parse_bool(environ.get("SHELLEXEC_TERMINATE_KILLS_PROCESS"), False),
            terminate_kills_process_signal=environ.get("SHELLEXEC_TERMINATE_KILLS_PROCESS_SIGNAL", "SIGKILL"),
            default_timeout=_number_var("SHELLEXEC_DEFAULT_TIMEOUT", 5.0, float),
            quiescence=_number_var("SHELLEXEC_QUIESCENCE", 0.1, float),
            debug=_parse_bool(environ.get("SHELLEXEC_DEBUG"), True),
            debug_level=environ.get("SHELLEXEC_DEBUG_LEVEL", "trace").lower(),
            port=_number_var("PORT", 8080, int),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """
        Alternate constructor used by the API to load configuration.

        Loads from the process environment and validates the result so
        that a misconfigured service never starts.
        """
        config = cls.load()
        config.validate()
        return config

    def validate(self) -> None:
        """Check paths, user, signals and levels.

        Raises :class:`ConfigurationError` on the first problem found.
        """
        if not self.file_path or not os.path.isfile(self.file_path):
            raise ConfigurationError(f"file_path is not a file: {self.file_path!r}")
        if not os.access(self.file_path, os.X_OK):
            raise ConfigurationError(f"file_path is not executable: {self.file_path}")
        if not self.directory or not os.path.isdir(self.directory):
            raise ConfigurationError(f"directory does not exist: {self.directory!r}")
        if self.user is not None:
            if not os.path.isfile(self.su_path) or not os.access(self.su_path, os.X_OK):
                raise ConfigurationError(f"su_path is not an executable file: {self.su_path}")
        for key, value in self.env:
            if not isinstance(key, str) or not key or not isinstance(value, str):
                raise ConfigurationError(f"Invalid environment entry: {key!r}={value!r}")
        if isinstance(self.interactive, str) and not self.interactive:
            raise ConfigurationError("interactive initial input must not be empty")
        for name in ("timeout_kills_process_signal", "terminate_kills_process_signal"):
            try:
                signal_to_integer(getattr(self, name))
            except ValueError as exc:
                raise ConfigurationError(f"Invalid {name}: {exc}")
        if self.debug_level not in DEBUG_LEVELS:
            raise ConfigurationError(f"Invalid debug_level: {self.debug_level}. Use one of {', '.join(DEBUG_LEVELS)}.")
        if self.default_timeout <= 0:
            raise ConfigurationError("default_timeout must be positive")
        if self.quiescence < 0:
            raise ConfigurationError("quiescence must not be negative")

    @property
    def timeout_signal(self) -> Optional[int]:
        if not self.timeout_kills_process:
            return None
        return signal_to_integer(self.timeout_kills_process_signal)

    @property
    def terminate_signal(self) -> Optional[int]:
        if not self.terminate_kills_process:
            return None
        return signal_to_integer(self.terminate_kills_process_signal)
