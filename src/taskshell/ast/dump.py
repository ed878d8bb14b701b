"""Render an AST as an indented tree (taskshell --debug)."""

from __future__ import annotations

from .types import (
    DoubleQuotedPart,
    EscapedPart,
    GlobPart,
    LiteralPart,
    ParameterExpansionPart,
    PipelineNode,
    RedirectionNode,
    ScriptNode,
    SimpleCommandNode,
    SingleQuotedPart,
    StatementNode,
    SubshellNode,
    TildeExpansionPart,
    WordNode,
)

_INDENT = "  "


def dump_ast(node: ScriptNode) -> str:
    """Return a human-readable rendering of a parsed script."""
    lines: list[str] = []
    _dump_script(node, 0, lines)
    return "\n".join(lines)


def _dump_script(node: ScriptNode, depth: int, lines: list[str]) -> None:
    lines.append(f"{_INDENT * depth}Script")
    for statement in node.statements:
        _dump_statement(statement, depth + 1, lines)


def _dump_statement(node: StatementNode, depth: int, lines: list[str]) -> None:
    suffix = " &" if node.background else ""
    lines.append(f"{_INDENT * depth}Statement (line {node.line}){suffix}")
    for i, pipeline in enumerate(node.pipelines):
        if i > 0:
            lines.append(f"{_INDENT * (depth + 1)}{node.operators[i - 1]}")
        _dump_pipeline(pipeline, depth + 1, lines)


def _dump_pipeline(node: PipelineNode, depth: int, lines: list[str]) -> None:
    prefix = "! " if node.negated else ""
    lines.append(f"{_INDENT * depth}{prefix}Pipeline")
    for command in node.commands:
        if isinstance(command, SubshellNode):
            lines.append(f"{_INDENT * (depth + 1)}Subshell")
            _dump_script(command.body, depth + 2, lines)
            _dump_redirections(command.redirections, depth + 2, lines)
        else:
            _dump_simple_command(command, depth + 1, lines)


def _dump_simple_command(node: SimpleCommandNode, depth: int, lines: list[str]) -> None:
    lines.append(f"{_INDENT * depth}SimpleCommand")
    inner = _INDENT * (depth + 1)
    for assignment in node.assignments:
        lines.append(f"{inner}Assign {assignment.name}={format_word(assignment.value)}")
    if node.name is not None:
        lines.append(f"{inner}Name {format_word(node.name)}")
    for arg in node.args:
        lines.append(f"{inner}Arg {format_word(arg)}")
    _dump_redirections(node.redirections, depth + 1, lines)


def _dump_redirections(
    redirections: tuple[RedirectionNode, ...], depth: int, lines: list[str]
) -> None:
    for redirection in redirections:
        fd = "" if redirection.fd is None else str(redirection.fd)
        target = (
            str(redirection.target)
            if isinstance(redirection.target, int)
            else format_word(redirection.target)
        )
        lines.append(f"{_INDENT * depth}Redirect {fd}{redirection.operator} {target}")


def format_word(word: WordNode) -> str:
    """Format a word back into shell-like source text."""
    out: list[str] = []
    for part in word.parts:
        if isinstance(part, LiteralPart):
            out.append(part.value)
        elif isinstance(part, GlobPart):
            out.append(part.pattern)
        elif isinstance(part, SingleQuotedPart):
            out.append(f"'{part.value}'")
        elif isinstance(part, EscapedPart):
            out.append(f"\\{part.value}")
        elif isinstance(part, ParameterExpansionPart):
            out.append(f"${{{part.parameter}}}")
        elif isinstance(part, TildeExpansionPart):
            out.append("~" if part.user is None else f"~{part.user}")
        elif isinstance(part, DoubleQuotedPart):
            inner = "".join(
                p.value if isinstance(p, LiteralPart) else f"${{{p.parameter}}}"
                for p in part.parts
            )
            out.append(f'"{inner}"')
    return "".join(out)
