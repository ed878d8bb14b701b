"""Sleep command implementation.

Usage: sleep NUMBER[SUFFIX]...

Pause for the sum of the given durations. SUFFIX may be s (seconds, the
default), m (minutes), h (hours) or d (days). Wakes early if the script is
cancelled.
"""

from ...types import CommandContext

_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(text: str) -> float:
    """Parse a duration like 1.5 or 2m into seconds.

    Raises:
        ValueError: if the text is not a non-negative duration.
    """
    multiplier = 1
    if text and text[-1] in _UNITS:
        multiplier = _UNITS[text[-1]]
        text = text[:-1]
    value = float(text)
    if value < 0 or value != value:
        raise ValueError(text)
    return value * multiplier


class SleepCommand:
    """The sleep command."""

    name = "sleep"

    async def execute(self, args: list[str], ctx: CommandContext) -> int:
        """Execute the sleep command."""
        if not args:
            await ctx.stderr.write("sleep: missing operand\n")
            return 1

        total = 0.0
        for arg in args:
            try:
                total += parse_duration(arg)
            except ValueError:
                await ctx.stderr.write(f"sleep: invalid time interval '{arg}'\n")
                return 1

        await ctx.cancellation.sleep(total)
        return 0
