"""Redirection handling.

Redirections are applied left to right on top of a stage's pipeline wiring,
so ``cmd > out 2>&1`` sends both streams to ``out`` while ``cmd 2>&1 > out``
sends stderr to the original stdout.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from ..ast.types import RedirectionNode
from ..fs import resolve_path
from .errors import RedirectionError
from .expansion import expand_word_string
from .streams import OwnedFds, StreamSet

if TYPE_CHECKING:
    from .types import InterpreterContext


_BINARY = getattr(os, "O_BINARY", 0)

_OPEN_FLAGS = {
    ">": os.O_WRONLY | os.O_CREAT | os.O_TRUNC | _BINARY,
    ">>": os.O_WRONLY | os.O_CREAT | os.O_APPEND | _BINARY,
    "<": os.O_RDONLY | _BINARY,
}


def apply_redirections(
    ctx: "InterpreterContext",
    redirections: tuple[RedirectionNode, ...],
    streams: StreamSet,
    owned: OwnedFds,
) -> StreamSet:
    """Open redirection targets and return the rewired streams.

    Every fd opened here is added to ``owned``; on failure the fds opened so
    far stay in ``owned`` for the caller to close.

    Raises:
        RedirectionError: a target could not be opened.
    """
    for redirection in redirections:
        fd = redirection.effective_fd
        if isinstance(redirection.target, int):
            streams = streams.with_fd(fd, streams.get(redirection.target))
            continue

        target = expand_word_string(ctx, redirection.target)
        if not target:
            raise RedirectionError("ambiguous redirect")
        path = resolve_path(ctx.state.cwd, target)
        try:
            new_fd = os.open(path, _OPEN_FLAGS[redirection.operator], 0o666)
        except OSError as e:
            raise RedirectionError(f"{target}: {e.strerror}") from e
        owned.add(new_fd)
        streams = streams.with_fd(fd, new_fd)
    return streams
