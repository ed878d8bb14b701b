"""Echo command implementation.

Usage: echo [-neE] [STRING]...

Write the STRINGs, separated by single spaces, to standard output.

Options:
  -n    Do not output the trailing newline
  -e    Enable interpretation of backslash escapes
  -E    Disable interpretation of backslash escapes (default)
"""

from ...types import CommandContext

_SIMPLE_ESCAPES = {
    "\\": "\\",
    "a": "\a",
    "b": "\b",
    "e": "\x1b",
    "E": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


def _interpret_escapes(text: str) -> tuple[str, bool]:
    """Process backslash escapes.

    Returns the processed text and whether \\c asked to stop all output.
    """
    result: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\" or i + 1 >= len(text):
            result.append(ch)
            i += 1
            continue

        nxt = text[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[nxt])
            i += 2
        elif nxt == "c":
            return "".join(result), True
        elif nxt == "0":
            # \0nnn: up to three octal digits
            j = i + 2
            while j < len(text) and j < i + 5 and text[j] in "01234567":
                j += 1
            result.append(chr(int(text[i + 2:j] or "0", 8) & 0xFF))
            i = j
        elif nxt == "x":
            j = i + 2
            while j < len(text) and j < i + 4 and text[j] in "0123456789abcdefABCDEF":
                j += 1
            if j == i + 2:
                result.append("\\x")
            else:
                result.append(chr(int(text[i + 2:j], 16)))
            i = j
        else:
            result.append("\\" + nxt)
            i += 2
    return "".join(result), False


class EchoCommand:
    """The echo command."""

    name = "echo"

    async def execute(self, args: list[str], ctx: CommandContext) -> int:
        """Execute the echo command."""
        newline = True
        interpret = False

        # Leading arguments made only of n, e and E are options
        i = 0
        while i < len(args):
            arg = args[i]
            if len(arg) < 2 or arg[0] != "-" or any(c not in "neE" for c in arg[1:]):
                break
            for c in arg[1:]:
                if c == "n":
                    newline = False
                elif c == "e":
                    interpret = True
                else:
                    interpret = False
            i += 1

        output = " ".join(args[i:])
        if interpret:
            output, stop = _interpret_escapes(output)
            if stop:
                newline = False
        if newline:
            output += "\n"

        if output:
            await ctx.stdout.write(output)
        return 0
