"""Interpreter module for taskshell."""

from .builtins import BUILTINS
from .cancellation import CancellationToken
from .dispatch import (
    BuiltinInvocation,
    CommandInvocation,
    ExternalInvocation,
    Invocation,
    UnresolvedInvocation,
    resolve_invocation,
)
from .errors import (
    ErrexitError,
    ExecutionCancelled,
    ExitError,
    RedirectionError,
    ResolutionError,
    ShellEnvironmentError,
    ShellError,
    SpawnError,
    SpawnErrorKind,
)
from .interpreter import Interpreter
from .process import ProcessHandle, ProcessSpawner
from .types import EXPORT_ATTRIBUTE, Environment, InterpreterContext, ShellOptions, VariableStore

__all__ = [
    "BUILTINS",
    "BuiltinInvocation",
    "CancellationToken",
    "CommandInvocation",
    "EXPORT_ATTRIBUTE",
    "Environment",
    "ErrexitError",
    "ExecutionCancelled",
    "ExitError",
    "ExternalInvocation",
    "Interpreter",
    "InterpreterContext",
    "Invocation",
    "ProcessHandle",
    "ProcessSpawner",
    "RedirectionError",
    "ResolutionError",
    "ShellEnvironmentError",
    "ShellError",
    "ShellOptions",
    "SpawnError",
    "SpawnErrorKind",
    "UnresolvedInvocation",
    "VariableStore",
    "resolve_invocation",
]
