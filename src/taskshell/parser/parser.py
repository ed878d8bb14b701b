"""Recursive descent grammar for taskshell scripts.

Produces a generic parse tree of ParseNode values; the AST builder
(builder.py) turns that tree into typed AST nodes. Grammar:

    script      ::= newline* (statement (terminator statement)* terminator?)? EOF
    statement   ::= and_or ('&' | ';')?
    and_or      ::= pipeline (('&&' | '||') newline* pipeline?)*
    pipeline    ::= '!'? command? ('|' newline* command?)*
    command     ::= subshell redirect* | simple_command
    subshell    ::= '(' script ')'
    simple_command ::= (assignment | word | redirect)+
    redirect    ::= IO_NUMBER? ('>' | '>>' | '<' | '>&' | '<&') WORD

Operands after '|', '&&', '||' and '!' are optional in the grammar; a
missing operand becomes a ``missing`` node that the builder rejects with a
positioned error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from ..ast.types import ScriptNode
from .errors import ParseException
from .lexer import REDIRECTION_TOKENS, Lexer, SourceSpan, Token, TokenType, WordPiece

MAX_INPUT_SIZE = 1_000_000
"""Maximum script size in characters."""

MAX_NESTING_DEPTH = 200
"""Maximum subshell nesting depth."""

_ASSIGNMENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*=")

_COMMAND_START = frozenset({TokenType.WORD, TokenType.IO_NUMBER, TokenType.LPAREN}) | REDIRECTION_TOKENS


@dataclass
class ParseNode:
    """A node of the parse tree.

    kind is one of: script, statement, and_or, pipeline, bang, operator,
    subshell, simple_command, assignment, word, redirect, missing.
    """

    kind: str
    span: SourceSpan
    children: list["ParseNode"] = field(default_factory=list)
    token: Optional[Token] = None


class Parser:
    """Recursive descent parser over a token list."""

    def __init__(self, tokens: list[Token], lexer: Lexer):
        self._tokens = tokens
        self._lexer = lexer
        self._pos = 0
        self._depth = 0

    # -------------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------------

    @property
    def current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _check(self, *types: TokenType) -> bool:
        return self.current.type in types

    def _skip_newlines(self) -> None:
        while self._check(TokenType.NEWLINE):
            self._advance()

    def _error(self, message: str, token: Token, expected: Optional[str] = None) -> ParseException:
        return ParseException(
            message,
            line=token.span.line,
            column=token.span.column,
            offset=token.span.start,
            expected=expected,
            length=max(token.span.end - token.span.start, 1),
        )

    def _unexpected(self, expected: str) -> ParseException:
        token = self.current
        if token.type is TokenType.EOF:
            return self._error("unexpected end of input", token, expected)
        if token.type is TokenType.NEWLINE:
            return self._error("unexpected newline", token, expected)
        return self._error(f"unexpected token '{token.value}'", token, expected)

    # -------------------------------------------------------------------------
    # Productions
    # -------------------------------------------------------------------------

    def parse_script(self) -> ParseNode:
        """Parse the whole token stream."""
        script = self._parse_body(closing=TokenType.EOF)
        if not self._check(TokenType.EOF):
            raise self._unexpected("';', '&' or newline")
        return script

    def _parse_body(self, closing: TokenType) -> ParseNode:
        start = self.current.span
        statements: list[ParseNode] = []
        self._skip_newlines()
        while not self._check(closing, TokenType.EOF):
            statement = self._parse_statement()
            statements.append(statement)
            if statement.token is not None:
                # Terminated by ; or &
                self._skip_newlines()
            elif self._check(TokenType.NEWLINE):
                self._skip_newlines()
            elif not self._check(closing, TokenType.EOF):
                raise self._unexpected("';', '&' or newline")
        return ParseNode("script", start, statements)

    def _parse_statement(self) -> ParseNode:
        if not (self._check(TokenType.BANG) or self._check(*_COMMAND_START)):
            raise self._unexpected("a command")
        and_or = self._parse_and_or()
        node = ParseNode("statement", and_or.span, [and_or])
        if self._check(TokenType.SEMI, TokenType.AMP):
            node.token = self._advance()
        return node

    def _parse_and_or(self) -> ParseNode:
        first = self._parse_pipeline()
        node = ParseNode("and_or", first.span, [first])
        while self._check(TokenType.AND_IF, TokenType.OR_IF):
            operator = self._advance()
            node.children.append(ParseNode("operator", operator.span, token=operator))
            self._skip_newlines()
            if self._check(TokenType.BANG) or self._check(*_COMMAND_START):
                node.children.append(self._parse_pipeline())
            else:
                node.children.append(ParseNode("missing", self.current.span, token=operator))
        return node

    def _parse_pipeline(self) -> ParseNode:
        node = ParseNode("pipeline", self.current.span)
        if self._check(TokenType.BANG):
            bang = self._advance()
            node.children.append(ParseNode("bang", bang.span, token=bang))

        if self._check(*_COMMAND_START):
            node.children.append(self._parse_command())
        else:
            previous = node.children[-1].token if node.children else self.current
            node.children.append(ParseNode("missing", self.current.span, token=previous))

        while self._check(TokenType.PIPE):
            pipe = self._advance()
            self._skip_newlines()
            if self._check(*_COMMAND_START):
                node.children.append(self._parse_command())
            else:
                node.children.append(ParseNode("missing", self.current.span, token=pipe))
        return node

    def _parse_command(self) -> ParseNode:
        if self._check(TokenType.LPAREN):
            return self._parse_subshell()
        return self._parse_simple_command()

    def _parse_subshell(self) -> ParseNode:
        open_paren = self._advance()
        self._depth += 1
        if self._depth > MAX_NESTING_DEPTH:
            raise self._error("subshells nested too deeply", open_paren)
        body = self._parse_body(closing=TokenType.RPAREN)
        if not self._check(TokenType.RPAREN):
            raise self._error("unterminated subshell", open_paren, expected="')'")
        self._advance()
        self._depth -= 1

        node = ParseNode("subshell", open_paren.span, [body])
        while self._check(TokenType.IO_NUMBER, *REDIRECTION_TOKENS):
            node.children.append(self._parse_redirect())
        return node

    def _parse_simple_command(self) -> ParseNode:
        node = ParseNode("simple_command", self.current.span)
        seen_word = False
        while True:
            if self._check(TokenType.WORD):
                token = self._advance()
                if not seen_word and _is_assignment(token):
                    node.children.append(ParseNode("assignment", token.span, token=token))
                else:
                    seen_word = True
                    node.children.append(ParseNode("word", token.span, token=token))
            elif self._check(TokenType.BANG) and node.children:
                # ! after the command start is an ordinary argument
                token = self._advance()
                node.children.append(ParseNode("word", token.span, token=_bang_as_word(token)))
            elif self._check(TokenType.IO_NUMBER, *REDIRECTION_TOKENS):
                node.children.append(self._parse_redirect())
            else:
                return node

    def _parse_redirect(self) -> ParseNode:
        node = ParseNode("redirect", self.current.span)
        if self._check(TokenType.IO_NUMBER):
            number = self._advance()
            node.children.append(ParseNode("io_number", number.span, token=number))
        if not self._check(*REDIRECTION_TOKENS):
            raise self._unexpected("a redirection operator")
        operator = self._advance()
        node.children.append(ParseNode("operator", operator.span, token=operator))
        if not self._check(TokenType.WORD):
            raise self._unexpected(f"a redirection target after '{operator.value}'")
        target = self._advance()
        node.children.append(ParseNode("word", target.span, token=target))
        return node


def _is_assignment(token: Token) -> bool:
    """NAME=... where NAME is unquoted literal text."""
    if not token.pieces or token.pieces[0].kind != "literal":
        return False
    return _ASSIGNMENT_RE.match(token.pieces[0].value) is not None


def _bang_as_word(token: Token) -> Token:
    piece = WordPiece("literal", "!", token.span)
    return Token(TokenType.WORD, "!", token.span, (piece,))


def parse_tree(source: str) -> ParseNode:
    """Run the lexer and grammar, returning the parse tree."""
    lexer = Lexer(source)
    if len(source) > MAX_INPUT_SIZE:
        raise lexer.error(
            f"script too large ({len(source)} characters, maximum {MAX_INPUT_SIZE})", 0
        )
    tokens = lexer.tokenize()
    return Parser(tokens, lexer).parse_script()


def parse(source: str) -> ScriptNode:
    """Parse script text into an AST.

    Raises:
        ParseException: if any part of the input is invalid.
    """
    from .builder import build_ast

    return build_ast(parse_tree(source))
