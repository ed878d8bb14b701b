"""Command dispatch.

A command name is resolved once per simple command into one of a closed set
of invocation variants, each exposing the same ``invoke`` contract:

- BuiltinInvocation: shell-state builtin (cd, export, exit, ...)
- CommandInvocation: portable in-process command (echo, cat, ...)
- ExternalInvocation: executable found on PATH
- UnresolvedInvocation: resolution failed; reports the error as an exit code
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from .errors import ResolutionError, SpawnError
from .process import ProcessSpawner, find_executable, wait_for_process
from .streams import OwnedFds, write_text

if TYPE_CHECKING:
    from ..types import BuiltinHandler, Command, CommandContext
    from .types import InterpreterContext

logger = logging.getLogger(__name__)

BROKEN_PIPE_EXIT_CODE = 141
"""128 + SIGPIPE, reported when a builtin's reader goes away."""


@dataclass(frozen=True)
class BuiltinInvocation:
    name: str
    handler: "BuiltinHandler"

    async def invoke(self, ctx: "CommandContext", args: list[str], owned: OwnedFds) -> int:
        try:
            return await self.handler(ctx, args)
        except BrokenPipeError:
            return BROKEN_PIPE_EXIT_CODE
        finally:
            owned.close()


@dataclass(frozen=True)
class CommandInvocation:
    name: str
    command: "Command"

    async def invoke(self, ctx: "CommandContext", args: list[str], owned: OwnedFds) -> int:
        try:
            return await self.command.execute(args, ctx)
        except BrokenPipeError:
            return BROKEN_PIPE_EXIT_CODE
        finally:
            owned.close()


@dataclass(frozen=True)
class ExternalInvocation:
    name: str
    path: str
    spawner: ProcessSpawner

    async def invoke(self, ctx: "CommandContext", args: list[str], owned: OwnedFds) -> int:
        try:
            handle = await self.spawner.spawn(
                self.path,
                args,
                env=ctx.process_env,
                cwd=ctx.cwd,
                stdin=ctx.stdin.fd,
                stdout=ctx.stdout.fd,
                stderr=ctx.stderr.fd,
            )
        except SpawnError as error:
            logger.debug("spawn of %s failed: %s", self.path, error.message)
            await write_text(ctx.stderr.fd, f"taskshell: {self.name}: {error.message}\n")
            return error.exit_code
        finally:
            # The child holds its own copies now
            owned.close()
        return await wait_for_process(handle, ctx.cancellation)


@dataclass(frozen=True)
class UnresolvedInvocation:
    name: str
    error: Union[ResolutionError, SpawnError]

    async def invoke(self, ctx: "CommandContext", args: list[str], owned: OwnedFds) -> int:
        try:
            message = str(self.error) if isinstance(self.error, ResolutionError) else (
                f"{self.name}: {self.error.message}"
            )
            await write_text(ctx.stderr.fd, f"taskshell: {message}\n")
            return self.error.exit_code
        finally:
            owned.close()


Invocation = Union[BuiltinInvocation, CommandInvocation, ExternalInvocation, UnresolvedInvocation]


def resolve_invocation(
    ctx: "InterpreterContext", name: str, process_env: dict[str, str]
) -> Invocation:
    """Resolve a command name: builtins, then portable commands, then PATH."""
    builtin = ctx.builtins.get(name)
    if builtin is not None:
        return BuiltinInvocation(name, builtin)

    command = ctx.commands.get(name)
    if command is not None:
        return CommandInvocation(name, command)

    lookup_env = dict(ctx.state.variables)
    lookup_env.update(process_env)
    try:
        path = find_executable(name, lookup_env, ctx.state.cwd)
    except (ResolutionError, SpawnError) as error:
        logger.debug("could not resolve %s: %s", name, error)
        return UnresolvedInvocation(name, error)
    return ExternalInvocation(name, path, ctx.spawner)
