"""Interpreter - AST Execution Engine.

Main interpreter class that executes taskshell AST nodes.
Delegates to specialized modules for:
- Word expansion (expansion.py)
- Redirections (redirections.py)
- Command dispatch and external processes (dispatch.py, process.py)
- Built-in commands (builtins/)

One Interpreter runs one scope. Subshells, stages of multi-command
pipelines and background jobs each run on a forked Interpreter with its own
copy of the Environment, so no two concurrently running scopes ever mutate
the same state.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from dataclasses import replace
from typing import TYPE_CHECKING

from ..ast.types import (
    CommandNode,
    PipelineNode,
    ScriptNode,
    SimpleCommandNode,
    StatementNode,
    SubshellNode,
)
from ..types import CommandContext
from .cancellation import CancellationToken
from .dispatch import resolve_invocation
from .errors import ErrexitError, ExecutionCancelled, ExitError, RedirectionError
from .expansion import expand_word_fields, expand_word_string
from .process import ProcessSpawner
from .redirections import apply_redirections
from .streams import InputStream, OutputStream, OwnedFds, StreamSet, write_text
from .types import Environment, InterpreterContext

if TYPE_CHECKING:
    from ..fs import GlobMatcher, HomeDirResolver
    from ..types import BuiltinHandler, Command

logger = logging.getLogger(__name__)


class Interpreter:
    """AST interpreter for taskshell scripts."""

    def __init__(
        self,
        state: Environment,
        *,
        builtins: dict[str, "BuiltinHandler"],
        commands: dict[str, "Command"],
        spawner: ProcessSpawner,
        glob_matcher: "GlobMatcher",
        home_dir: "HomeDirResolver",
        cancellation: CancellationToken,
    ):
        """Initialize the interpreter.

        Args:
            state: Environment of the scope; mutated in place.
            builtins: Shell-state builtins by name.
            commands: Portable in-process commands by name.
            spawner: Starts external processes.
            glob_matcher: Expands glob patterns.
            home_dir: Resolves ~ when $HOME is unset.
            cancellation: Token shared by every scope of the run.
        """
        self._state = state
        self._jobs: list[asyncio.Future[int]] = []
        self._ctx = InterpreterContext(
            state=state,
            builtins=builtins,
            commands=commands,
            spawner=spawner,
            glob_matcher=glob_matcher,
            home_dir=home_dir,
            cancellation=cancellation,
        )

    @property
    def state(self) -> Environment:
        """Get the environment of this scope."""
        return self._state

    def fork(self) -> Interpreter:
        """Interpreter for a nested scope with a forked Environment."""
        ctx = self._ctx
        return Interpreter(
            self._state.fork_for_subshell(),
            builtins=ctx.builtins,
            commands=ctx.commands,
            spawner=ctx.spawner,
            glob_matcher=ctx.glob_matcher,
            home_dir=ctx.home_dir,
            cancellation=ctx.cancellation,
        )

    # -------------------------------------------------------------------------
    # Scripts and statements
    # -------------------------------------------------------------------------

    async def execute_script(self, node: ScriptNode, streams: StreamSet) -> int:
        """Execute statements in order and join background jobs they started.

        Raises:
            ExitError: the exit builtin ran in this scope.
            ExecutionCancelled: cancellation was requested.
        """
        first_job = len(self._jobs)
        exit_code = 0
        aborted = False
        try:
            for statement in node.statements:
                self._ctx.cancellation.raise_if_cancelled()
                if statement.background:
                    self._start_job(statement, streams)
                    exit_code = 0
                else:
                    try:
                        exit_code = await self.execute_statement(statement, streams)
                    except ErrexitError as error:
                        self._state.last_exit_code = error.exit_code
                        exit_code = error.exit_code
                        break
                self._state.last_exit_code = exit_code
        except asyncio.CancelledError:
            aborted = True
            for job in self._jobs[first_job:]:
                job.cancel()
            raise
        finally:
            await self._join_jobs(first_job, raise_cancelled=not aborted)
        return exit_code

    async def execute_statement(self, node: StatementNode, streams: StreamSet) -> int:
        """Execute pipelines joined by && and || with short-circuit evaluation."""
        logger.debug("line %d: executing statement", node.line)
        exit_code = 0
        last_executed_index = -1

        for i, pipeline in enumerate(node.pipelines):
            operator = node.operators[i - 1] if i > 0 else None

            if operator == "&&" and exit_code != 0:
                continue
            if operator == "||" and exit_code == 0:
                continue

            exit_code = await self.execute_pipeline(pipeline, streams)
            last_executed_index = i
            self._state.last_exit_code = exit_code

        # A failure that only decided a short-circuit does not trigger errexit
        and_or_short_circuited = last_executed_index < len(node.pipelines) - 1

        if (
            self._state.options.errexit
            and exit_code != 0
            and not and_or_short_circuited
            and not node.pipelines[last_executed_index].negated
        ):
            raise ErrexitError(exit_code)

        return exit_code

    # -------------------------------------------------------------------------
    # Background jobs
    # -------------------------------------------------------------------------

    def _start_job(self, statement: StatementNode, streams: StreamSet) -> None:
        job_scope = self.fork()
        foreground = replace(statement, background=False)
        job = asyncio.ensure_future(job_scope._run_job(foreground, streams))
        self._jobs.append(job)
        logger.debug("line %d: started background job", statement.line)

    async def _run_job(self, statement: StatementNode, streams: StreamSet) -> int:
        try:
            return await self.execute_script(ScriptNode(statements=(statement,)), streams)
        except ExitError as error:
            return error.exit_code

    async def _join_jobs(self, first: int = 0, raise_cancelled: bool = True) -> int:
        """Wait for background jobs started at index >= first.

        Returns the exit code of the last job joined (0 if none).
        """
        jobs = self._jobs[first:]
        del self._jobs[first:]
        if not jobs:
            return 0

        logger.debug("joining %d background job(s)", len(jobs))
        results = await asyncio.gather(*jobs, return_exceptions=True)
        exit_code = 0
        cancelled = False
        for result in results:
            if isinstance(result, (ExecutionCancelled, asyncio.CancelledError)):
                cancelled = True
            elif isinstance(result, BaseException):
                raise result
            else:
                exit_code = result
        if cancelled and raise_cancelled:
            raise ExecutionCancelled()
        return exit_code

    async def wait_for_jobs(self) -> int:
        """Join every outstanding background job of this scope (wait builtin)."""
        return await self._join_jobs()

    # -------------------------------------------------------------------------
    # Pipelines
    # -------------------------------------------------------------------------

    async def execute_pipeline(self, node: PipelineNode, streams: StreamSet) -> int:
        """Execute a pipeline; its status is the last stage's, negated by !."""
        if len(node.commands) == 1:
            exit_code = await self.execute_command(node.commands[0], streams, OwnedFds())
        else:
            exit_codes = await self._execute_stages(node.commands, streams)
            exit_code = exit_codes[-1]
            if self._state.options.pipefail:
                exit_code = next((code for code in reversed(exit_codes) if code != 0), 0)

        if node.negated:
            exit_code = 1 if exit_code == 0 else 0
        return exit_code

    async def _execute_stages(
        self, commands: tuple[CommandNode, ...], streams: StreamSet
    ) -> list[int]:
        """Run every stage concurrently, stdout of stage i feeding stdin of i + 1."""
        last = len(commands) - 1
        pipes: list[tuple[int, int]] = []
        try:
            for _ in range(last):
                pipes.append(os.pipe())
        except OSError:
            OwnedFds(fd for pair in pipes for fd in pair).close()
            raise

        logger.debug("starting pipeline with %d stages", len(commands))
        stages = []
        for index, command in enumerate(commands):
            owned = OwnedFds()
            stdin, stdout = streams.stdin, streams.stdout
            if index > 0:
                stdin = pipes[index - 1][0]
                owned.add(stdin)
            if index < last:
                stdout = pipes[index][1]
                owned.add(stdout)
            stage_scope = self.fork()
            stages.append(asyncio.ensure_future(
                stage_scope._run_stage(command, StreamSet(stdin, stdout, streams.stderr), owned)
            ))

        results = await asyncio.gather(*stages, return_exceptions=True)
        exit_codes: list[int] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            exit_codes.append(result)
        logger.debug("pipeline finished with %s", exit_codes)
        return exit_codes

    async def _run_stage(self, command: CommandNode, streams: StreamSet, owned: OwnedFds) -> int:
        try:
            return await self.execute_command(command, streams, owned)
        except ExitError as error:
            # exit inside a pipeline stage only ends that stage
            return error.exit_code
        finally:
            owned.close()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def execute_command(self, node: CommandNode, streams: StreamSet, owned: OwnedFds) -> int:
        """Execute a command AST node.

        ``owned`` holds fds this command must close once they are no longer
        needed; redirection targets opened here are added to it.
        """
        if isinstance(node, SimpleCommandNode):
            return await self._execute_simple_command(node, streams, owned)
        elif isinstance(node, SubshellNode):
            return await self._execute_subshell(node, streams, owned)
        owned.close()
        return 0

    async def _execute_subshell(self, node: SubshellNode, streams: StreamSet, owned: OwnedFds) -> int:
        """Execute a subshell command."""
        try:
            try:
                streams = apply_redirections(self._ctx, node.redirections, streams, owned)
            except RedirectionError as error:
                await write_text(streams.stderr, f"taskshell: {error}\n")
                return error.exit_code

            subshell = self.fork()
            try:
                return await subshell.execute_script(node.body, streams)
            except ExitError as error:
                return error.exit_code
        finally:
            owned.close()

    async def _execute_simple_command(
        self, node: SimpleCommandNode, streams: StreamSet, owned: OwnedFds
    ) -> int:
        """Expand, redirect, resolve and invoke a simple command."""
        state = self._state
        try:
            argv: list[str] = []
            if node.name is not None:
                for word in (node.name, *node.args):
                    argv.extend(await expand_word_fields(self._ctx, word))

            if not argv:
                # Assignments without a command set shell variables
                for assignment in node.assignments:
                    state.set(assignment.name, expand_word_string(self._ctx, assignment.value))
                if node.redirections:
                    try:
                        apply_redirections(self._ctx, node.redirections, streams, owned)
                    except RedirectionError as error:
                        await write_text(streams.stderr, f"taskshell: {error}\n")
                        return error.exit_code
                return 0

            # Prefix assignments only reach this command's process environment.
            # Each value sees the ones before it, so expand in a scratch fork.
            process_env = state.to_process_env()
            if node.assignments:
                scratch = replace(self._ctx, state=state.fork_for_subshell())
                for assignment in node.assignments:
                    value = expand_word_string(scratch, assignment.value)
                    scratch.state.set(assignment.name, value)
                    process_env[assignment.name] = value

            try:
                streams = apply_redirections(self._ctx, node.redirections, streams, owned)
            except RedirectionError as error:
                await write_text(streams.stderr, f"taskshell: {error}\n")
                return error.exit_code

            if state.options.xtrace:
                await write_text(streams.stderr, "+ " + " ".join(argv) + "\n")

            invocation = resolve_invocation(self._ctx, argv[0], process_env)
            ctx = self._command_context(streams, process_env)
            return await invocation.invoke(ctx, argv[1:], owned)
        finally:
            owned.close()

    def _command_context(self, streams: StreamSet, process_env: dict[str, str]) -> CommandContext:
        token = self._ctx.cancellation
        return CommandContext(
            state=self._state,
            stdin=InputStream(streams.stdin, token),
            stdout=OutputStream(streams.stdout, token),
            stderr=OutputStream(streams.stderr, token),
            cancellation=token,
            process_env=process_env,
            execute_script=functools.partial(self.execute_script, streams=streams),
            wait_for_jobs=self.wait_for_jobs,
        )
