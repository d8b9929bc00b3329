"""Environment variable resolution for child shells.

Configured variables may reference the host environment with ``$NAME``
or ``${NAME}``.  References are expanded once at startup; names missing
from the lookup table are left untouched so expanding an already
resolved value is a no-op.

When the environment is delivered natively (through the process
creation call) the child would otherwise inherit the variables this
service was launched with.  ``reset`` forces those bookkeeping variables
to be unset before the configured variables are layered on top.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ConfigurationError

_REFERENCE = re.compile(r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")

# Variables set by the Python interpreter, the ASGI server and this
# service's own configuration.  None of them belong in a user shell.
RESET_VARIABLES: Tuple[str, ...] = (
    "FORWARDED_ALLOW_IPS",
    "PYTHONDONTWRITEBYTECODE",
    "PYTHONEXECUTABLE",
    "PYTHONHASHSEED",
    "PYTHONHOME",
    "PYTHONINSPECT",
    "PYTHONIOENCODING",
    "PYTHONNOUSERSITE",
    "PYTHONOPTIMIZE",
    "PYTHONPATH",
    "PYTHONSAFEPATH",
    "PYTHONSTARTUP",
    "PYTHONUNBUFFERED",
    "PYTHONUSERBASE",
    "PYTHONWARNINGS",
    "SHELLEXEC_DEBUG",
    "SHELLEXEC_DEBUG_LEVEL",
    "SHELLEXEC_DEFAULT_TIMEOUT",
    "SHELLEXEC_DIRECTORY",
    "SHELLEXEC_ENV",
    "SHELLEXEC_FILE_PATH",
    "SHELLEXEC_INTERACTIVE",
    "SHELLEXEC_LOGIN",
    "SHELLEXEC_QUIESCENCE",
    "SHELLEXEC_SU_PATH",
    "SHELLEXEC_TERMINATE_KILLS_PROCESS",
    "SHELLEXEC_TERMINATE_KILLS_PROCESS_SIGNAL",
    "SHELLEXEC_TIMEOUT_KILLS_PROCESS",
    "SHELLEXEC_TIMEOUT_KILLS_PROCESS_SIGNAL",
    "SHELLEXEC_USER",
    "TMPDIR",
    "UVICORN_HOST",
    "UVICORN_LOG_LEVEL",
    "UVICORN_PORT",
    "UVICORN_WORKERS",
    "VIRTUAL_ENV",
    "WEB_CONCURRENCY",
    "__PYVENV_LAUNCHER__",
)

# Ordered name -> value pairs; ``None`` means the variable is unset.
Environment = List[Tuple[str, Optional[str]]]


def expand(text: str, lookup: Mapping[str, str]) -> str:
    """Replace ``$NAME`` / ``${NAME}`` references found in ``lookup``."""

    def _replace(match: "re.Match[str]") -> str:
        name = match.group("braced") or match.group("bare")
        if name in lookup:
            return lookup[name]
        return match.group(0)

    return _REFERENCE.sub(_replace, text)


def expand_all(env: Iterable[Tuple[str, str]], lookup: Mapping[str, str]) -> Environment:
    """Expand every key and value of ``env``.

    Raises :class:`ConfigurationError` for an empty name, or one that
    expands to the empty string.
    """
    expanded: Environment = []
    for key, value in env:
        if not isinstance(key, str) or not key:
            raise ConfigurationError(f"Invalid environment variable name: {key!r}")
        if not isinstance(value, str):
            raise ConfigurationError(f"Invalid value for environment variable {key}: {value!r}")
        key_expanded = expand(key, lookup)
        if not key_expanded:
            raise ConfigurationError(f"Environment variable name {key!r} expands to an empty string")
        expanded.append((key_expanded, expand(value, lookup)))
    return expanded


def reset(env: Environment) -> Environment:
    """Unset host launch variables, then apply ``env`` on top of them."""
    overridden = {key for key, _ in env}
    unset: Environment = [(name, None) for name in RESET_VARIABLES if name not in overridden]
    return unset + list(env)


def resolve_environment(
    env: Iterable[Tuple[str, str]],
    lookup: Mapping[str, str],
    reset_host: bool,
) -> Environment:
    """Return the environment table handed to the shell launcher."""
    expanded = expand_all(env, lookup)
    if reset_host:
        return reset(expanded)
    return expanded


def native_environment(env: Environment, base: Mapping[str, str]) -> Dict[str, str]:
    """Layer ``env`` over ``base`` the way a process environment is built."""
    result = dict(base)
    for key, value in env:
        if value is None:
            result.pop(key, None)
        else:
            result[key] = value
    return result
