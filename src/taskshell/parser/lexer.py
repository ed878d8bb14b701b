"""Lexer for taskshell scripts.

Splits script text into operator and word tokens. Word tokens carry their
quoting structure as a tuple of WordPiece values so that later phases never
have to re-scan quotes:

    echo "a $B"'c'   ->  WORD(echo)  WORD(double_quoted[literal, variable], single_quoted)
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ParseException


class TokenType(Enum):
    """Token types."""

    WORD = "word"
    IO_NUMBER = "io_number"
    NEWLINE = "newline"
    SEMI = ";"
    AMP = "&"
    AND_IF = "&&"
    OR_IF = "||"
    PIPE = "|"
    BANG = "!"
    LPAREN = "("
    RPAREN = ")"
    GREAT = ">"
    DGREAT = ">>"
    LESS = "<"
    GREATAND = ">&"
    LESSAND = "<&"
    EOF = "end of input"


REDIRECTION_TOKENS = frozenset({
    TokenType.GREAT,
    TokenType.DGREAT,
    TokenType.LESS,
    TokenType.GREATAND,
    TokenType.LESSAND,
})

# Longest operators first
_OPERATORS: tuple[tuple[str, TokenType], ...] = (
    ("&&", TokenType.AND_IF),
    ("||", TokenType.OR_IF),
    (">>", TokenType.DGREAT),
    (">&", TokenType.GREATAND),
    ("<&", TokenType.LESSAND),
    ("|", TokenType.PIPE),
    ("&", TokenType.AMP),
    (";", TokenType.SEMI),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    (">", TokenType.GREAT),
    ("<", TokenType.LESS),
)

OPERATOR_CHARS = frozenset("|&;()<>")
BLANK_CHARS = frozenset(" \t\r")

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NAME_START = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz_")

# Characters a backslash escapes inside double quotes
_DQUOTE_ESCAPABLE = frozenset('$`"\\')


def is_valid_name(name: str) -> bool:
    """Check if a string is a valid variable name."""
    return _NAME_RE.fullmatch(name) is not None


@dataclass(frozen=True)
class SourceSpan:
    """Location of a token or node in the script text."""

    start: int
    end: int
    line: int
    column: int


@dataclass(frozen=True)
class WordPiece:
    """One quoting-level piece of a word token.

    kind is one of: literal, single_quoted, double_quoted, escaped, variable.
    double_quoted pieces hold their contents in ``pieces``; variable pieces
    hold the variable name in ``value``.
    """

    kind: str
    value: str
    span: SourceSpan
    pieces: tuple["WordPiece", ...] = ()


@dataclass(frozen=True)
class Token:
    """A lexical token."""

    type: TokenType
    value: str
    span: SourceSpan
    pieces: tuple[WordPiece, ...] = ()


class Lexer:
    """Tokenizer for taskshell scripts."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", source)]

    def span(self, start: int, end: Optional[int] = None) -> SourceSpan:
        """Build a span for source[start:end]."""
        if end is None:
            end = start
        line_index = bisect.bisect_right(self._line_starts, start) - 1
        return SourceSpan(
            start=start,
            end=end,
            line=line_index + 1,
            column=start - self._line_starts[line_index] + 1,
        )

    def error(
        self, message: str, offset: int, expected: Optional[str] = None, length: int = 1
    ) -> ParseException:
        """Create a ParseException located at offset."""
        span = self.span(offset)
        return ParseException(
            message,
            line=span.line,
            column=span.column,
            offset=offset,
            expected=expected,
            length=length,
        )

    def tokenize(self) -> list[Token]:
        """Tokenize the whole input. The last token is always EOF."""
        tokens: list[Token] = []
        source = self.source
        while True:
            self._skip_blanks()
            if self.pos >= len(source):
                tokens.append(Token(TokenType.EOF, "", self.span(self.pos)))
                return tokens

            ch = source[self.pos]
            if ch == "#":
                # Comment to end of line; the newline itself is kept
                end = source.find("\n", self.pos)
                self.pos = len(source) if end == -1 else end
                continue

            if ch == "\n":
                tokens.append(Token(TokenType.NEWLINE, "\n", self.span(self.pos, self.pos + 1)))
                self.pos += 1
                continue

            operator = self._read_operator()
            if operator is not None:
                tokens.append(operator)
                continue

            tokens.append(self._read_word())

    def _skip_blanks(self) -> None:
        source = self.source
        while self.pos < len(source):
            ch = source[self.pos]
            if ch in BLANK_CHARS:
                self.pos += 1
            elif ch == "\\" and source.startswith("\\\n", self.pos):
                self.pos += 2
            else:
                break

    def _read_operator(self) -> Optional[Token]:
        source = self.source
        start = self.pos
        ch = source[start]

        if ch == "!":
            nxt = source[start + 1] if start + 1 < len(source) else ""
            if nxt == "" or nxt in BLANK_CHARS or nxt == "\n":
                self.pos += 1
                return Token(TokenType.BANG, "!", self.span(start, start + 1))
            return None

        if ch not in OPERATOR_CHARS:
            return None
        for text, token_type in _OPERATORS:
            if source.startswith(text, start):
                self.pos += len(text)
                return Token(token_type, text, self.span(start, self.pos))
        return None

    def _read_word(self) -> Token:
        source = self.source
        start = self.pos
        pieces: list[WordPiece] = []
        literal: list[str] = []
        literal_start = start

        def flush_literal() -> None:
            if literal:
                pieces.append(
                    WordPiece("literal", "".join(literal), self.span(literal_start, self.pos))
                )
                literal.clear()

        while self.pos < len(source):
            ch = source[self.pos]
            if ch in BLANK_CHARS or ch == "\n" or ch in OPERATOR_CHARS:
                break

            if ch == "\\":
                if self.pos + 1 >= len(source):
                    if not literal:
                        literal_start = self.pos
                    literal.append("\\")
                    self.pos += 1
                    continue
                nxt = source[self.pos + 1]
                if nxt == "\n":
                    self.pos += 2
                    continue
                flush_literal()
                pieces.append(WordPiece("escaped", nxt, self.span(self.pos, self.pos + 2)))
                self.pos += 2
                continue

            if ch == "'":
                end = source.find("'", self.pos + 1)
                if end == -1:
                    raise self.error("unterminated single quote", self.pos, expected="'")
                flush_literal()
                pieces.append(
                    WordPiece("single_quoted", source[self.pos + 1:end], self.span(self.pos, end + 1))
                )
                self.pos = end + 1
                continue

            if ch == '"':
                flush_literal()
                pieces.append(self._read_double_quoted())
                continue

            if ch == "$":
                variable = self._read_variable()
                if variable is not None:
                    flush_literal()
                    pieces.append(variable)
                    continue

            if not literal:
                literal_start = self.pos
            literal.append(ch)
            self.pos += 1

        flush_literal()
        raw = source[start:self.pos]
        span = self.span(start, self.pos)

        # 2>file: an all-digit unquoted word directly followed by < or >
        if (
            self.pos < len(source)
            and source[self.pos] in "<>"
            and len(pieces) == 1
            and pieces[0].kind == "literal"
            and raw.isdigit()
        ):
            return Token(TokenType.IO_NUMBER, raw, span)

        return Token(TokenType.WORD, raw, span, tuple(pieces))

    def _read_double_quoted(self) -> WordPiece:
        source = self.source
        open_pos = self.pos
        self.pos += 1
        pieces: list[WordPiece] = []
        literal: list[str] = []
        literal_start = self.pos

        def flush_literal() -> None:
            if literal:
                pieces.append(
                    WordPiece("literal", "".join(literal), self.span(literal_start, self.pos))
                )
                literal.clear()

        while True:
            if self.pos >= len(source):
                raise self.error("unterminated double quote", open_pos, expected='"')
            ch = source[self.pos]

            if ch == '"':
                flush_literal()
                self.pos += 1
                return WordPiece(
                    "double_quoted",
                    source[open_pos:self.pos],
                    self.span(open_pos, self.pos),
                    tuple(pieces),
                )

            if ch == "\\" and self.pos + 1 < len(source):
                nxt = source[self.pos + 1]
                if nxt == "\n":
                    self.pos += 2
                    continue
                if nxt in _DQUOTE_ESCAPABLE:
                    if not literal:
                        literal_start = self.pos
                    literal.append(nxt)
                    self.pos += 2
                    continue

            if ch == "$":
                variable = self._read_variable()
                if variable is not None:
                    flush_literal()
                    pieces.append(variable)
                    continue

            if not literal:
                literal_start = self.pos
            literal.append(ch)
            self.pos += 1

    def _read_variable(self) -> Optional[WordPiece]:
        """Read $NAME, ${NAME} or $? at the current position.

        Returns None when the $ does not start a variable reference, in which
        case it is literal text and the position is unchanged.
        """
        source = self.source
        start = self.pos
        nxt = source[start + 1] if start + 1 < len(source) else ""

        if nxt == "{":
            close = source.find("}", start + 2)
            if close == -1:
                raise self.error("unterminated parameter expansion", start, expected="}")
            name = source[start + 2:close]
            if name != "?" and not is_valid_name(name):
                raise self.error(
                    f"bad substitution: ${{{name}}}",
                    start,
                    expected="a variable name",
                    length=close - start + 1,
                )
            self.pos = close + 1
            return WordPiece("variable", name, self.span(start, self.pos))

        if nxt == "?":
            self.pos = start + 2
            return WordPiece("variable", "?", self.span(start, self.pos))

        if nxt in _NAME_START:
            match = _NAME_RE.match(source, start + 1)
            assert match is not None
            self.pos = match.end()
            return WordPiece("variable", match.group(0), self.span(start, self.pos))

        return None


def tokenize(source: str) -> list[Token]:
    """Tokenize script text."""
    return Lexer(source).tokenize()
