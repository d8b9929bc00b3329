"""
Execution backends for the shell service.

Two executors are provided.  :class:`IsolatedExecutor` starts a new
shell for every command and reports its exit status.
:class:`InteractiveExecutor` keeps a single shell alive and returns
whatever it prints in response to each request.  Both share the
construction parameters and kill policy defined in ``base.py``.
"""

from .base import ExecutionResult, KillPolicy, ShellExecutor
from .interactive import InteractiveExecutor
from .isolated import IsolatedExecutor

__all__ = [
    "ExecutionResult",
    "KillPolicy",
    "ShellExecutor",
    "IsolatedExecutor",
    "InteractiveExecutor",
]
