"""Parse errors with source positions."""

from __future__ import annotations

from typing import Optional


class ParseException(Exception):
    """Raised when script text cannot be parsed.

    Covers both grammar failures and forms the AST builder rejects. No part
    of a script that raises this is ever executed.
    """

    def __init__(
        self,
        message: str,
        line: int,
        column: int,
        offset: int = 0,
        expected: Optional[str] = None,
        length: int = 1,
    ):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        self.expected = expected
        self.length = max(length, 1)

    def __str__(self) -> str:
        text = f"syntax error at line {self.line}, column {self.column}: {self.message}"
        if self.expected:
            text += f" (expected {self.expected})"
        return text

    def render(self, source: str, filename: str = "<script>") -> str:
        """Render the error with a source excerpt and a caret under the column.

        Example:
            taskshell: syntax error: expected a command after '|'
              --> <script>:1:7
               |
             1 | echo |
               |       ^
        """
        lines = source.splitlines() or [""]
        line_text = lines[self.line - 1] if 0 < self.line <= len(lines) else ""
        gutter = " " * len(str(self.line))
        headline = f"taskshell: syntax error: {self.message}"
        if self.expected:
            headline += f" (expected {self.expected})"
        caret = " " * (self.column - 1) + "^" * min(
            self.length, max(len(line_text) - self.column + 1, 1)
        )
        return "\n".join([
            headline,
            f"{gutter}--> {filename}:{self.line}:{self.column}",
            f"{gutter} |",
            f"{self.line} | {line_text}",
            f"{gutter} | {caret}",
        ])
