"""AST node types for taskshell scripts.

All nodes are frozen dataclasses: a parsed script is immutable and can be
executed any number of times.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


# =============================================================================
# Word parts
# =============================================================================


@dataclass(frozen=True)
class LiteralPart:
    """Unquoted literal text."""

    value: str


@dataclass(frozen=True)
class GlobPart:
    """Unquoted literal text containing glob metacharacters."""

    pattern: str


@dataclass(frozen=True)
class SingleQuotedPart:
    """'text' - never expanded, split or globbed."""

    value: str


@dataclass(frozen=True)
class EscapedPart:
    """A backslash-escaped character, taken literally."""

    value: str


@dataclass(frozen=True)
class ParameterExpansionPart:
    """$NAME, ${NAME} or $?."""

    parameter: str


@dataclass(frozen=True)
class TildeExpansionPart:
    """Leading ~ of an unquoted word."""

    user: Optional[str] = None


@dataclass(frozen=True)
class DoubleQuotedPart:
    """"text" - variables are expanded, the result is never split or globbed."""

    parts: tuple[Union[LiteralPart, ParameterExpansionPart], ...]


WordPart = Union[
    LiteralPart,
    GlobPart,
    SingleQuotedPart,
    EscapedPart,
    ParameterExpansionPart,
    TildeExpansionPart,
    DoubleQuotedPart,
]


@dataclass(frozen=True)
class WordNode:
    """A single shell word before expansion."""

    parts: tuple[WordPart, ...]


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class AssignmentNode:
    """NAME=value in a command's prefix."""

    name: str
    value: WordNode


@dataclass(frozen=True)
class RedirectionNode:
    """A redirection applied to one command.

    operator is one of >, >>, <, >& and <&. For the duplicate forms
    (>& and <&) target is the source fd number, otherwise a WordNode.
    """

    operator: str
    target: Union[WordNode, int]
    fd: Optional[int] = None

    @property
    def effective_fd(self) -> int:
        """The fd this redirection replaces."""
        if self.fd is not None:
            return self.fd
        return 0 if self.operator in ("<", "<&") else 1


@dataclass(frozen=True)
class SimpleCommandNode:
    """name args... with assignment prefix and redirections."""

    name: Optional[WordNode]
    args: tuple[WordNode, ...] = ()
    assignments: tuple[AssignmentNode, ...] = ()
    redirections: tuple[RedirectionNode, ...] = ()


@dataclass(frozen=True)
class SubshellNode:
    """( script ) run with a forked environment."""

    body: "ScriptNode"
    redirections: tuple[RedirectionNode, ...] = ()


CommandNode = Union[SimpleCommandNode, SubshellNode]


@dataclass(frozen=True)
class PipelineNode:
    """[!] command | command | ..."""

    commands: tuple[CommandNode, ...]
    negated: bool = False


@dataclass(frozen=True)
class StatementNode:
    """One sequential item: pipelines joined by && and ||, optionally backgrounded.

    operators[i] joins pipelines[i] and pipelines[i + 1].
    """

    pipelines: tuple[PipelineNode, ...]
    operators: tuple[str, ...] = ()
    background: bool = False
    line: int = 1


@dataclass(frozen=True)
class ScriptNode:
    """Root node: statements run in textual order."""

    statements: tuple[StatementNode, ...]
