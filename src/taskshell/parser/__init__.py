"""Parser module for taskshell."""

from .builder import build_ast, build_word
from .errors import ParseException
from .lexer import (
    Lexer,
    SourceSpan,
    Token,
    TokenType,
    WordPiece,
    is_valid_name,
    tokenize,
)
from .parser import (
    MAX_INPUT_SIZE,
    MAX_NESTING_DEPTH,
    ParseNode,
    Parser,
    parse,
    parse_tree,
)

__all__ = [
    # Lexer
    "Lexer",
    "SourceSpan",
    "Token",
    "TokenType",
    "WordPiece",
    "is_valid_name",
    "tokenize",
    # Grammar
    "ParseNode",
    "Parser",
    "parse",
    "parse_tree",
    "MAX_INPUT_SIZE",
    "MAX_NESTING_DEPTH",
    # AST builder
    "build_ast",
    "build_word",
    # Errors
    "ParseException",
]
