"""Interpreter errors.

Execution-time failures of a single stage (ResolutionError, SpawnError,
RedirectionError, ShellEnvironmentError) are turned into exit codes at the
stage boundary and never abort a script. ExitError and ErrexitError unwind
to the nearest script scope. ExecutionCancelled unwinds through every scope.
"""

from __future__ import annotations

from enum import Enum


class ShellError(Exception):
    """Base class for interpreter errors."""


class ResolutionError(ShellError):
    """A command name matched no builtin and no executable on PATH."""

    exit_code = 127

    def __init__(self, name: str):
        super().__init__(f"{name}: command not found")
        self.name = name


class SpawnErrorKind(Enum):
    """Why a process could not be started."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


class SpawnError(ShellError):
    """The OS refused to start a process."""

    def __init__(self, kind: SpawnErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def exit_code(self) -> int:
        """127 for a missing file, 126 for everything else."""
        return 127 if self.kind is SpawnErrorKind.NOT_FOUND else 126


class RedirectionError(ShellError):
    """A redirection target could not be opened."""

    exit_code = 1


class ShellEnvironmentError(ShellError):
    """An Environment operation failed, e.g. chdir to a missing directory."""


class ExecutionCancelled(ShellError):
    """Cancellation was requested while the script was running."""

    def __init__(self, message: str = "execution cancelled"):
        super().__init__(message)


class ExitError(ShellError):
    """Raised by the exit builtin to end the enclosing script scope."""

    def __init__(self, exit_code: int):
        super().__init__(f"exit {exit_code}")
        self.exit_code = exit_code


class ErrexitError(ShellError):
    """Raised when errexit (set -e) stops a script after a failing statement."""

    def __init__(self, exit_code: int):
        super().__init__(f"errexit: exit code {exit_code}")
        self.exit_code = exit_code
