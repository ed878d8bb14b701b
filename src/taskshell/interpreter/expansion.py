"""Word Expansion System.

Handles shell word expansion, in order:
- Variable expansion ($VAR, ${VAR}, $?) and tilde expansion (~)
- Field splitting of unquoted results on space, tab and newline
- Glob expansion (*, ?, [...]) of unquoted text against the working directory

Quoted text is never split or globbed. Expansion happens at execution time,
against the Environment of the scope running the command.
"""

from __future__ import annotations

import glob
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..ast.types import (
    DoubleQuotedPart,
    EscapedPart,
    GlobPart,
    LiteralPart,
    ParameterExpansionPart,
    SingleQuotedPart,
    TildeExpansionPart,
    WordNode,
    WordPart,
)
from .streams import run_blocking

if TYPE_CHECKING:
    from .types import Environment, InterpreterContext


FIELD_SEPARATORS = " \t\n"
_SEPARATOR_RUN = re.compile(f"[{FIELD_SEPARATORS}]+")
_GLOB_CHARS = frozenset("*?[")


@dataclass
class ExpandedSegment:
    """A segment of expanded text with quoting context."""
    text: str
    quoted: bool  # True = protected from field splitting and globbing


def get_variable(state: "Environment", name: str) -> str:
    """Value of a variable for expansion; unset variables expand to ""."""
    if name == "?":
        return str(state.last_exit_code)
    value = state.get(name)
    return "" if value is None else value


def _expand_tilde(ctx: "InterpreterContext", part: TildeExpansionPart) -> str:
    if part.user is not None:
        return f"~{part.user}"
    home = ctx.state.get("HOME")
    if home is None:
        home = ctx.home_dir()
    return "~" if home is None else home


def expand_word_segments(ctx: "InterpreterContext", word: WordNode) -> list[ExpandedSegment]:
    """Expand a word into a list of segments preserving quoting context."""
    segments: list[ExpandedSegment] = []
    for part in word.parts:
        segments.extend(_expand_part_segments(ctx, part))
    return segments


def _expand_part_segments(
    ctx: "InterpreterContext", part: WordPart, in_double_quotes: bool = False
) -> list[ExpandedSegment]:
    """Expand a single part into segments preserving quoting context."""
    if isinstance(part, LiteralPart):
        return [ExpandedSegment(text=part.value, quoted=in_double_quotes)]

    elif isinstance(part, GlobPart):
        return [ExpandedSegment(text=part.pattern, quoted=False)]

    elif isinstance(part, (SingleQuotedPart, EscapedPart)):
        return [ExpandedSegment(text=part.value, quoted=True)]

    elif isinstance(part, DoubleQuotedPart):
        segments = [ExpandedSegment(text="", quoted=True)]
        for p in part.parts:
            segments.extend(_expand_part_segments(ctx, p, in_double_quotes=True))
        return segments

    elif isinstance(part, ParameterExpansionPart):
        return [ExpandedSegment(text=get_variable(ctx.state, part.parameter), quoted=in_double_quotes)]

    elif isinstance(part, TildeExpansionPart):
        # Tilde expansion result is not subject to further splitting
        return [ExpandedSegment(text=_expand_tilde(ctx, part), quoted=True)]

    return []


def split_fields(segments: list[ExpandedSegment]) -> list[list[ExpandedSegment]]:
    """Split segments into fields on unquoted whitespace.

    Quoted segments are never split, and a quoted segment (even an empty
    one) always belongs to a field, so "" produces one empty field while an
    empty unquoted expansion produces none. Adjacent segments not separated
    by unquoted whitespace join into the same field.
    """
    fields: list[list[ExpandedSegment]] = []
    current: list[ExpandedSegment] = []
    has_field = False

    for seg in segments:
        if seg.quoted:
            current.append(seg)
            has_field = True
            continue
        for index, piece in enumerate(_SEPARATOR_RUN.split(seg.text)):
            if index > 0:
                # A run of whitespace ended the current field
                if has_field:
                    fields.append(current)
                current = []
                has_field = False
            if piece:
                current.append(ExpandedSegment(text=piece, quoted=False))
                has_field = True

    if has_field:
        fields.append(current)
    return fields


def _segments_to_string(segments: list[ExpandedSegment]) -> str:
    """Flatten segments into a single string."""
    return "".join(seg.text for seg in segments)


def _segments_has_unquoted_glob(segments: list[ExpandedSegment]) -> bool:
    """Check if segments contain unquoted glob characters."""
    return any(
        not seg.quoted and any(c in _GLOB_CHARS for c in seg.text)
        for seg in segments
    )


def _segments_to_pattern(segments: list[ExpandedSegment]) -> str:
    """Build a glob pattern; quoted text matches literally."""
    return "".join(
        glob.escape(seg.text) if seg.quoted else seg.text
        for seg in segments
    )


async def glob_expand(ctx: "InterpreterContext", pattern: str) -> list[str]:
    """Expand a glob pattern against the working directory, off the event loop."""
    return await run_blocking(ctx.glob_matcher.match, pattern, ctx.state.cwd)


async def expand_word_fields(ctx: "InterpreterContext", word: WordNode) -> list[str]:
    """Expand a word into zero or more arguments.

    A pattern that matches nothing is passed through literally; matches are
    returned sorted, one argument per path.
    """
    result: list[str] = []
    for field_segments in split_fields(expand_word_segments(ctx, word)):
        if _segments_has_unquoted_glob(field_segments):
            matches = await glob_expand(ctx, _segments_to_pattern(field_segments))
            if matches:
                result.extend(sorted(matches))
                continue
        result.append(_segments_to_string(field_segments))
    return result


def expand_word_string(ctx: "InterpreterContext", word: WordNode) -> str:
    """Expand a word to a single string: no field splitting, no globbing.

    Used for assignment values and redirection targets.
    """
    return _segments_to_string(expand_word_segments(ctx, word))
