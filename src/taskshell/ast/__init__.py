"""AST node types and tree printing."""

from .dump import dump_ast
from .types import (
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

__all__ = [
    "AssignmentNode",
    "CommandNode",
    "DoubleQuotedPart",
    "EscapedPart",
    "GlobPart",
    "LiteralPart",
    "ParameterExpansionPart",
    "PipelineNode",
    "RedirectionNode",
    "ScriptNode",
    "SimpleCommandNode",
    "SingleQuotedPart",
    "StatementNode",
    "SubshellNode",
    "TildeExpansionPart",
    "WordNode",
    "WordPart",
    "dump_ast",
]
