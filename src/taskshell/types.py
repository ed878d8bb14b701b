"""Core types for taskshell."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol

if TYPE_CHECKING:
    from .ast.types import ScriptNode
    from .interpreter.cancellation import CancellationToken
    from .interpreter.streams import InputStream, OutputStream
    from .interpreter.types import Environment


CANCELLED_EXIT_CODE = 130
"""Exit code reported alongside ``cancelled=True`` (128 + SIGINT)."""


@dataclass
class ExecResult:
    """Result of executing a script."""

    stdout: str = ""
    """Captured standard output (empty when the caller supplied a stream)."""

    stderr: str = ""
    """Captured standard error (empty when the caller supplied a stream)."""

    exit_code: int = 0
    """Exit code of the script, 0-255."""

    env: dict[str, str] = field(default_factory=dict)
    """Shell variables after execution."""

    cancelled: bool = False
    """True if execution stopped because cancellation was requested."""


@dataclass
class CommandContext:
    """Context handed to builtins and portable commands."""

    state: "Environment"
    """Mutable shell environment of the invoking scope."""

    stdin: "InputStream"
    stdout: "OutputStream"
    stderr: "OutputStream"

    cancellation: "CancellationToken"
    """Checked by commands at their natural yield points."""

    process_env: dict[str, str] = field(default_factory=dict)
    """Exported variables plus the command's assignment prefix."""

    execute_script: Optional[Callable[["ScriptNode"], Awaitable[int]]] = None
    """Run a script in the invoking scope (used by source)."""

    wait_for_jobs: Optional[Callable[[], Awaitable[int]]] = None
    """Join the invoking scope's background jobs (used by wait)."""

    @property
    def cwd(self) -> str:
        """Current working directory of the invoking scope."""
        return self.state.cwd

    @property
    def env(self) -> dict[str, str]:
        """Shell variables of the invoking scope."""
        return self.state.variables


class Command(Protocol):
    """Protocol for portable commands run in-process."""

    name: str

    async def execute(self, args: list[str], ctx: CommandContext) -> int:
        """Execute the command and return its exit code."""
        ...


BuiltinHandler = Callable[[CommandContext, list[str]], Awaitable[int]]
"""Signature of shell-state builtins such as cd and export."""
