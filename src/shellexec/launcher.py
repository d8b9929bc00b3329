"""
Shell process construction.

The launcher decides which executable to run (the shell itself, or a
``su`` wrapper when switching user), how the environment reaches the
shell, and then spawns it with stdin/stdout pipes and stderr merged
into stdout.

Environment delivery comes in two flavours:

* native: the environment table and working directory are passed to the
  process creation call and the shell input is sent unchanged;
* inline: the shell is spawned with the host environment and the input
  is prefixed with ``KEY=VALUE; export KEY`` lines and a ``cd``.  A
  login shell started through ``su`` rebuilds its environment from
  scratch, so this is the only way the variables survive the switch.

Each shell is started in its own session so that its process group can
be signalled without reaching this service.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from .environment import Environment, native_environment
from .errors import SpawnError
from .process import Consumer, ProcessHandle

logger = logging.getLogger("shellexec.launcher")


@dataclass(frozen=True)
class PrivilegePolicy:
    """Which user the shell runs as and whether it is a login shell."""

    user: Optional[str] = None
    su_path: str = "/bin/su"
    login: bool = True

    @property
    def switch_user(self) -> bool:
        return self.user is not None

    @property
    def native_environment(self) -> bool:
        """A login shell behind ``su`` does not keep a passed-in environment."""
        return not (self.login and self.switch_user)


@dataclass(frozen=True)
class EnvironmentPolicy:
    """Resolved environment plus how it is delivered to the shell."""

    variables: Environment = field(default_factory=list)
    native: bool = True


def shell_command(file_path: str, privilege: PrivilegePolicy) -> Tuple[str, List[str]]:
    """Return ``(executable, args)`` for the shell."""
    if privilege.user is None:
        return file_path, (["-"] if privilege.login else [])
    if privilege.login:
        return privilege.su_path, ["-s", file_path, "-", privilege.user]
    return privilege.su_path, ["-s", file_path, privilege.user]


def inline_environment(variables: Environment, directory: str, shell_input: bytes) -> bytes:
    """Prefix ``shell_input`` with export statements and a ``cd``."""
    lines = []
    for key, value in variables:
        if value is None:
            lines.append(f"unset {key}\n")
        else:
            lines.append(f"{key}={value}; export {key}\n")
    lines.append(f"cd {directory}\n")
    return "".join(lines).encode("utf-8") + shell_input


def launch(
    shell_input: bytes,
    file_path: str,
    directory: str,
    env: EnvironmentPolicy,
    privilege: PrivilegePolicy,
    consumer: Consumer,
    base_environ: Optional[Mapping[str, str]] = None,
) -> Tuple[bytes, ProcessHandle]:
    """Spawn a shell.

    Returns the bytes to write to the shell's stdin together with the
    handle.  Output may not have arrived yet when this returns; events
    are delivered to ``consumer`` until the handle is reconnected.
    """
    executable, args = shell_command(file_path, privilege)
    popen_kwargs = {}
    if env.native:
        if base_environ is None:
            base_environ = os.environ
        popen_kwargs["env"] = native_environment(env.variables, base_environ)
        popen_kwargs["cwd"] = directory
        input_data = shell_input
    else:
        input_data = inline_environment(env.variables, directory, shell_input)

    try:
        process = subprocess.Popen(
            [executable] + args,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            bufsize=0,
            close_fds=True,
            start_new_session=True,
            **popen_kwargs,
        )
    except OSError as exc:
        raise SpawnError(f"Unable to start {executable}: {exc}") from exc

    logger.debug("Started %s %s (pid %s)", executable, " ".join(args), process.pid)
    return input_data, ProcessHandle(process, consumer).start()
