"""
Shell service wiring configuration to the executors.

A :class:`ShellService` is built from a validated :class:`Config`.  It
resolves the shell environment once, picks the isolated or interactive
executor, and exposes a single request entry point whose reply matches
the execution mode:

* isolated: the shell's exit status as a decimal string; the output is
  logged, at the debug level on success and at error level otherwise;
* interactive: the raw bytes the shell printed during the request.

:meth:`ShellService.shutdown` cancels in-flight requests and tears the
interactive shell down.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Union

from .config import Config
from .environment import resolve_environment
from .errors import ConfigurationError
from .events import CancellationToken
from .executor import ExecutionResult, InteractiveExecutor, IsolatedExecutor, KillPolicy
from .launcher import EnvironmentPolicy, PrivilegePolicy
from .logs import debug_log_level, request_info_text, status_log_level
from .process import status_to_string

logger = logging.getLogger("shellexec.service")


def validate_response(response: Union[bytes, str]) -> bool:
    """An isolated reply means success when the exit status is zero."""
    if isinstance(response, bytes):
        response = response.decode("ascii", errors="replace")
    try:
        return int(response) == 0
    except ValueError:
        return False


class ShellService:
    """Runs shell requests according to a :class:`Config`."""

    def __init__(self, config: Config, lookup: Optional[Mapping[str, str]] = None) -> None:
        config.validate()
        self.config = config
        self.token = CancellationToken()
        self.debug_level = debug_log_level(config.debug, config.debug_level)

        privilege = PrivilegePolicy(user=config.user, su_path=config.su_path, login=config.login)
        native = privilege.native_environment
        variables = resolve_environment(
            config.env,
            lookup if lookup is not None else os.environ,
            reset_host=native,
        )
        environment = EnvironmentPolicy(variables=variables, native=native)
        kill = KillPolicy(timeout_signal=config.timeout_signal, terminate_signal=config.terminate_signal)

        self.interactive: Optional[InteractiveExecutor] = None
        self.isolated: Optional[IsolatedExecutor] = None
        if config.interactive is False:
            self.isolated = IsolatedExecutor(
                config.file_path, config.directory, environment, privilege, kill, self.token
            )
        else:
            self.interactive = InteractiveExecutor(
                config.file_path,
                config.directory,
                environment,
                privilege,
                kill,
                self.token,
                quiescence=config.quiescence,
                on_output=self._log_background_output,
                on_exit=self._log_exit,
            )
            initial_input = None if config.interactive is True else config.interactive
            self.interactive.start(initial_input)

    @classmethod
    def from_env(cls) -> "ShellService":
        return cls(Config.from_env())

    @property
    def mode(self) -> str:
        return "interactive" if self.interactive is not None else "isolated"

    def _log(self, level: Optional[int], message: str, *args) -> None:
        if level is not None:
            logger.log(level, message, *args)

    def execute(self, command: Union[str, bytes], timeout: Optional[float] = None) -> ExecutionResult:
        """Run ``command`` in its own shell."""
        if self.isolated is None:
            raise ConfigurationError("service is configured for interactive requests")
        if timeout is None:
            timeout = self.config.default_timeout
        return self.isolated.execute(command, timeout)

    def evaluate(self, text: Union[str, bytes], timeout: Optional[float] = None) -> bytes:
        """Feed ``text`` to the interactive shell and return its output."""
        if self.interactive is None:
            raise ConfigurationError("service is configured for isolated requests")
        if timeout is None:
            timeout = self.config.default_timeout
        return self.interactive.execute(text, timeout)

    def handle_request(
        self,
        request: Union[str, bytes],
        timeout: Optional[float] = None,
        request_info: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        """Reply with the exit status (isolated) or the output (interactive)."""
        if self.interactive is not None:
            output = self.evaluate(request, timeout)
            text = request.decode("utf-8", errors="replace") if isinstance(request, bytes) else request
            self._log_interactive(request_info_text(request_info), text, output)
            return output
        result = self.run_isolated(request, timeout, request_info)
        return str(result.status).encode("ascii")

    def run_isolated(
        self,
        command: Union[str, bytes],
        timeout: Optional[float] = None,
        request_info: Optional[Mapping[str, str]] = None,
    ) -> ExecutionResult:
        """Like :meth:`execute`, logging the output the way requests are logged."""
        result = self.execute(command, timeout)
        text = command.decode("utf-8", errors="replace") if isinstance(command, bytes) else command
        self._log_isolated(request_info_text(request_info), text, result)
        return result

    def _log_isolated(self, info: str, text: str, result: ExecutionResult) -> None:
        level = status_log_level(result.status, self.debug_level)
        status = status_to_string(result.status)
        if not result.output:
            self._log(level, "%s%s = %s", info, text, status)
        else:
            self._log(
                level,
                "%s%s = %s (stdout/stderr below)\n%s",
                info,
                text,
                status,
                result.output.decode("utf-8", errors="replace"),
            )

    def _log_interactive(self, info: str, text: str, output: bytes) -> None:
        if not output:
            self._log(self.debug_level, "%s%s (no output)", info, text)
        else:
            self._log(
                self.debug_level,
                "%s%s (stdout/stderr below)\n%s",
                info,
                text,
                output.decode("utf-8", errors="replace"),
            )

    def _log_background_output(self, data: bytes) -> None:
        self._log(self.debug_level, "%s", data.decode("utf-8", errors="replace"))

    def _log_exit(self, status: int) -> None:
        self._log(status_log_level(status, self.debug_level), "exit %s", status_to_string(status))

    def shutdown(self, reason: str = "shutdown") -> None:
        """Cancel in-flight requests and close the interactive shell."""
        self.token.cancel(reason)
        if self.interactive is not None:
            self.interactive.close()
