"""Sleep command."""

from .sleep import SleepCommand

__all__ = ["SleepCommand"]
