"""AST builder: parse tree -> typed AST.

Pure and deterministic: performs no expansion and no I/O. Rejects forms the
grammar accepts but the interpreter cannot run, raising ParseException with
the position of the offending construct.
"""

from __future__ import annotations

from typing import Optional, Union

from ..ast.types import (
    AssignmentNode,
    CommandNode,
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
    WordPart,
)
from .errors import ParseException
from .lexer import SourceSpan, TokenType, WordPiece
from .parser import ParseNode

GLOB_CHARS = frozenset("*?[")

SUPPORTED_FDS = (0, 1, 2)


def _error_at(span: SourceSpan, message: str, expected: Optional[str] = None) -> ParseException:
    return ParseException(
        message,
        line=span.line,
        column=span.column,
        offset=span.start,
        expected=expected,
        length=max(span.end - span.start, 1),
    )


def build_ast(tree: ParseNode) -> ScriptNode:
    """Convert a parse tree rooted at a ``script`` node into a ScriptNode."""
    return _build_script(tree)


def _build_script(node: ParseNode) -> ScriptNode:
    return ScriptNode(statements=tuple(_build_statement(child) for child in node.children))


def _build_statement(node: ParseNode) -> StatementNode:
    and_or = node.children[0]
    pipelines: list[PipelineNode] = []
    operators: list[str] = []
    for child in and_or.children:
        if child.kind == "operator":
            assert child.token is not None
            operators.append(child.token.value)
        elif child.kind == "missing":
            assert child.token is not None
            raise _error_at(
                child.span,
                f"expected a command after '{child.token.value}'",
                expected="a command",
            )
        else:
            pipelines.append(_build_pipeline(child))

    background = node.token is not None and node.token.type is TokenType.AMP
    return StatementNode(
        pipelines=tuple(pipelines),
        operators=tuple(operators),
        background=background,
        line=node.span.line,
    )


def _build_pipeline(node: ParseNode) -> PipelineNode:
    negated = False
    commands: list[CommandNode] = []
    for child in node.children:
        if child.kind == "bang":
            negated = True
        elif child.kind == "missing":
            assert child.token is not None
            raise _error_at(
                child.span,
                f"expected a command after '{child.token.value}'",
                expected="a command",
            )
        elif child.kind == "subshell":
            commands.append(_build_subshell(child))
        else:
            commands.append(_build_simple_command(child))
    return PipelineNode(commands=tuple(commands), negated=negated)


def _build_subshell(node: ParseNode) -> SubshellNode:
    body = _build_script(node.children[0])
    if not body.statements:
        raise _error_at(node.span, "empty subshell", expected="a command inside '( )'")
    redirections = tuple(_build_redirection(child) for child in node.children[1:])
    return SubshellNode(body=body, redirections=redirections)


def _build_simple_command(node: ParseNode) -> SimpleCommandNode:
    assignments: list[AssignmentNode] = []
    words: list[WordNode] = []
    redirections: list[RedirectionNode] = []
    for child in node.children:
        if child.kind == "assignment":
            assignments.append(_build_assignment(child))
        elif child.kind == "word":
            assert child.token is not None
            words.append(build_word(child.token.pieces))
        elif child.kind == "redirect":
            redirections.append(_build_redirection(child))

    return SimpleCommandNode(
        name=words[0] if words else None,
        args=tuple(words[1:]),
        assignments=tuple(assignments),
        redirections=tuple(redirections),
    )


def _build_assignment(node: ParseNode) -> AssignmentNode:
    assert node.token is not None
    first, *rest = node.token.pieces
    name, _, value = first.value.partition("=")
    value_pieces: list[WordPiece] = []
    if value:
        value_pieces.append(WordPiece("literal", value, first.span))
    value_pieces.extend(rest)
    return AssignmentNode(name=name, value=build_word(tuple(value_pieces)))


def _build_redirection(node: ParseNode) -> RedirectionNode:
    fd: Optional[int] = None
    operator = ""
    target: Union[WordNode, int, None] = None
    for child in node.children:
        assert child.token is not None
        if child.kind == "io_number":
            fd = int(child.token.value)
            if fd not in SUPPORTED_FDS:
                raise _error_at(
                    child.span,
                    f"unsupported file descriptor {fd}",
                    expected="0, 1 or 2",
                )
        elif child.kind == "operator":
            operator = child.token.value
        elif child.kind == "word":
            if operator in (">&", "<&"):
                text = child.token.value
                if not (text.isdigit() and len(child.token.pieces) == 1):
                    raise _error_at(
                        child.span,
                        f"'{operator}' needs a file descriptor number, got '{text}'",
                        expected="0, 1 or 2",
                    )
                target = int(text)
                if target not in SUPPORTED_FDS:
                    raise _error_at(
                        child.span,
                        f"unsupported file descriptor {target}",
                        expected="0, 1 or 2",
                    )
            else:
                target = build_word(child.token.pieces)

    assert target is not None
    return RedirectionNode(operator=operator, target=target, fd=fd)


def build_word(pieces: tuple[WordPiece, ...]) -> WordNode:
    """Convert lexer word pieces into a WordNode."""
    parts: list[WordPart] = []
    for index, piece in enumerate(pieces):
        if piece.kind == "literal":
            text = piece.value
            if index == 0:
                text = _take_tilde_prefix(text, is_whole_word=len(pieces) == 1, parts=parts)
            if text:
                parts.append(_literal_part(text))
        elif piece.kind == "single_quoted":
            parts.append(SingleQuotedPart(value=piece.value))
        elif piece.kind == "escaped":
            parts.append(EscapedPart(value=piece.value))
        elif piece.kind == "variable":
            parts.append(ParameterExpansionPart(parameter=piece.value))
        elif piece.kind == "double_quoted":
            parts.append(_build_double_quoted(piece))
    return WordNode(parts=tuple(_merge_literals(parts)))


def _take_tilde_prefix(text: str, is_whole_word: bool, parts: list[WordPart]) -> str:
    """Emit a TildeExpansionPart for ~ or ~/... and return the remaining text."""
    if text == "~" and is_whole_word:
        parts.append(TildeExpansionPart())
        return ""
    if text.startswith("~/"):
        parts.append(TildeExpansionPart())
        return text[1:]
    return text


def _literal_part(text: str) -> Union[LiteralPart, GlobPart]:
    if any(c in GLOB_CHARS for c in text):
        return GlobPart(pattern=text)
    return LiteralPart(value=text)


def _build_double_quoted(piece: WordPiece) -> DoubleQuotedPart:
    inner: list[Union[LiteralPart, ParameterExpansionPart]] = []
    for sub in piece.pieces:
        if sub.kind == "variable":
            inner.append(ParameterExpansionPart(parameter=sub.value))
        else:
            inner.append(LiteralPart(value=sub.value))
    return DoubleQuotedPart(parts=tuple(_merge_literals(inner)))


def _merge_literals(parts: list) -> list:
    """Merge adjacent LiteralParts."""
    merged: list = []
    for part in parts:
        if merged and isinstance(part, LiteralPart) and isinstance(merged[-1], LiteralPart):
            merged[-1] = LiteralPart(value=merged[-1].value + part.value)
        else:
            merged.append(part)
    return merged
