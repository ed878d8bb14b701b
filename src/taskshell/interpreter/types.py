"""Interpreter types for taskshell: the environment model and execution context."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .errors import ShellEnvironmentError

if TYPE_CHECKING:
    from ..fs import GlobMatcher, HomeDirResolver
    from ..types import BuiltinHandler, Command
    from .cancellation import CancellationToken
    from .process import ProcessSpawner


EXPORT_ATTRIBUTE = "x"


class VariableStore(dict):
    """Dict subclass that tracks per-variable attributes.

    Inherits from dict so variables read like a plain mapping. Attributes
    live in a parallel dict; the only attribute used is ``x`` (exported).
    """

    _attributes: dict[str, set[str]]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._attributes = {}

    def set_attribute(self, name: str, attr: str) -> None:
        """Set an attribute on a variable."""
        self._attributes.setdefault(name, set()).add(attr)

    def remove_attribute(self, name: str, attr: str) -> None:
        """Remove an attribute from a variable."""
        attrs = self._attributes.get(name)
        if attrs:
            attrs.discard(attr)

    def get_attributes(self, name: str) -> set[str]:
        """Get all attributes for a variable."""
        return set(self._attributes.get(name, ()))

    def clear_attributes(self, name: str) -> None:
        """Forget all attributes of a variable."""
        self._attributes.pop(name, None)

    def copy(self) -> VariableStore:
        """Copy values and attributes; the copy is independently mutable."""
        new = VariableStore(super().copy())
        new._attributes = {k: set(v) for k, v in self._attributes.items()}
        return new


@dataclass
class ShellOptions:
    """Shell options (set -e, etc.)."""

    errexit: bool = False
    """set -e: Exit immediately if a statement exits with non-zero status."""

    pipefail: bool = False
    """set -o pipefail: Return exit status of last failing command in pipeline."""

    xtrace: bool = False
    """set -x: Print commands and their arguments as they are executed."""

    def copy(self) -> ShellOptions:
        return ShellOptions(errexit=self.errexit, pipefail=self.pipefail, xtrace=self.xtrace)


@dataclass
class Environment:
    """Mutable shell state of one execution scope.

    Each subshell, multi-stage pipeline stage and background job works on
    its own fork; a sequential chain mutates its Environment in place.
    """

    variables: VariableStore = field(default_factory=VariableStore)
    """Shell variables; those with the export attribute reach child processes."""

    cwd: str = field(default_factory=os.getcwd)
    """Absolute, normalized working directory."""

    previous_dir: str = ""
    """Previous directory (for cd -)."""

    options: ShellOptions = field(default_factory=ShellOptions)
    """Shell options."""

    last_exit_code: int = 0
    """Exit code of the last pipeline, for $?."""

    def get(self, name: str) -> Optional[str]:
        """Value of a variable, or None if unset."""
        return self.variables.get(name)

    def set(self, name: str, value: str, exported: bool = False) -> None:
        """Set a variable.

        exported=True marks it for export; exported=False leaves an existing
        export attribute in place (NAME=value keeps an exported NAME exported).
        """
        self.variables[name] = value
        if exported:
            self.variables.set_attribute(name, EXPORT_ATTRIBUTE)

    def unset(self, name: str) -> None:
        """Remove a variable. Unknown names are ignored."""
        self.variables.pop(name, None)
        self.variables.clear_attributes(name)

    def is_exported(self, name: str) -> bool:
        return EXPORT_ATTRIBUTE in self.variables.get_attributes(name)

    def export(self, name: str) -> None:
        """Mark a variable as exported, creating it empty if unset."""
        if name not in self.variables:
            self.variables[name] = ""
        self.variables.set_attribute(name, EXPORT_ATTRIBUTE)

    def unexport(self, name: str) -> None:
        """Keep a variable but stop exporting it (export -n)."""
        self.variables.remove_attribute(name, EXPORT_ATTRIBUTE)

    def resolve_path(self, path: str) -> str:
        """Resolve a path against cwd, normalizing . and .. lexically."""
        return os.path.normpath(os.path.join(self.cwd, path))

    def chdir(self, path: str) -> str:
        """Change the working directory and return the new absolute path.

        Raises:
            ShellEnvironmentError: if path does not exist or is not a directory.
        """
        # Check the path as written: a missing component before .. is an error
        written = os.path.join(self.cwd, path)
        if not os.path.exists(written):
            raise ShellEnvironmentError(f"{path}: No such file or directory")
        if not os.path.isdir(written):
            raise ShellEnvironmentError(f"{path}: Not a directory")

        target = self.resolve_path(path)
        if not os.path.isdir(target):
            raise ShellEnvironmentError(f"{path}: Not a directory")

        old_dir = self.cwd
        self.previous_dir = old_dir
        self.cwd = target
        self.set("OLDPWD", old_dir)
        self.set("PWD", target)
        return target

    def fork_for_subshell(self) -> Environment:
        """Deep copy for a nested scope; later mutations are isolated."""
        return Environment(
            variables=self.variables.copy(),
            cwd=self.cwd,
            previous_dir=self.previous_dir,
            options=self.options.copy(),
            last_exit_code=self.last_exit_code,
        )

    def to_process_env(self) -> dict[str, str]:
        """Exported variables, for spawning external processes."""
        return {
            name: value
            for name, value in self.variables.items()
            if self.is_exported(name)
        }


@dataclass
class InterpreterContext:
    """Collaborators and shared state of one Interpreter."""

    state: Environment
    """Environment of the scope this interpreter runs."""

    builtins: dict[str, "BuiltinHandler"]
    """Shell-state builtins (cd, export, ...)."""

    commands: dict[str, "Command"]
    """Portable in-process commands (echo, cat, ...)."""

    spawner: "ProcessSpawner"
    """Starts external processes."""

    glob_matcher: "GlobMatcher"
    """Expands glob patterns."""

    home_dir: "HomeDirResolver"
    """Resolves ~ when $HOME is unset."""

    cancellation: "CancellationToken"
    """Shared by every scope of one script run."""
