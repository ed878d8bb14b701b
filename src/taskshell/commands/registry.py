"""Portable command registry.

Portable commands run in-process so scripts behave the same on platforms
where no such executables exist. They are looked up after shell builtins
and before PATH.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..types import Command

COMMAND_NAMES = ("cat", "echo", "pwd", "sleep")


def _load(name: str) -> "Command":
    if name == "cat":
        from .cat import CatCommand
        return CatCommand()
    if name == "echo":
        from .echo import EchoCommand
        return EchoCommand()
    if name == "pwd":
        from .pwd import PwdCommand
        return PwdCommand()
    if name == "sleep":
        from .sleep import SleepCommand
        return SleepCommand()
    raise KeyError(name)


def create_command_registry(names: "tuple[str, ...] | None" = None) -> dict[str, "Command"]:
    """Create a name -> command mapping.

    Args:
        names: Subset of COMMAND_NAMES to include; all of them by default.

    Raises:
        KeyError: for a name that is not a portable command.
    """
    return {name: _load(name) for name in (COMMAND_NAMES if names is None else names)}
