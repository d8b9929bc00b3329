"""Shell execution service package.

This package runs caller-supplied shell input in OS shell processes and
returns their exit status or output.  Each request either gets its own
shell (isolated mode) or is fed to a single long-lived shell
(interactive mode).

The top-level modules include:

* ``config`` - configuration handling for environment variables.
* ``environment`` - expansion and reset of the shell environment.
* ``launcher`` - shell command line construction and process creation.
* ``process`` - process handles, signals and process group termination.
* ``events`` / ``guard`` - request mailboxes, cancellation and timeouts.
* ``executor`` - the isolated and interactive executors.
* ``service`` - wiring of configuration, executors and request logging.
* ``models`` - Pydantic models defining request and response schemas.
* ``api`` - FastAPI application exposing HTTP endpoints.
"""

from .config import Config
from .errors import ConfigurationError, RequestCancelled, SessionClosed, ShellError, SpawnError
from .service import ShellService, validate_response

__all__ = [
    "Config",
    "ConfigurationError",
    "RequestCancelled",
    "SessionClosed",
    "ShellError",
    "ShellService",
    "SpawnError",
    "validate_response",
]
