"""taskshell - a portable POSIX-like shell interpreter for running task scripts.

Example:
    from taskshell import Shell

    shell = Shell()
    result = shell.run("echo hello | tr h H && cd /tmp && pwd")
    print(result.stdout)
"""

from .ast import dump_ast
from .interpreter import (
    CancellationToken,
    ExecutionCancelled,
    ProcessHandle,
    ProcessSpawner,
    ResolutionError,
    SpawnError,
    SpawnErrorKind,
)
from .parser import ParseException, parse
from .shell import Shell
from .types import CANCELLED_EXIT_CODE, Command, CommandContext, ExecResult

__version__ = "0.1.0"

__all__ = [
    "CANCELLED_EXIT_CODE",
    "CancellationToken",
    "Command",
    "CommandContext",
    "ExecResult",
    "ExecutionCancelled",
    "ParseException",
    "ProcessHandle",
    "ProcessSpawner",
    "ResolutionError",
    "Shell",
    "SpawnError",
    "SpawnErrorKind",
    "dump_ast",
    "parse",
]
