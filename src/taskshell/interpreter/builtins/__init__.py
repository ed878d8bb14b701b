"""Shell builtins: commands that read or change the state of the invoking scope.

Builtins run in-process so that cd, export, set and friends affect the
Environment of the scope that runs them.
"""

from typing import TYPE_CHECKING

from .cd import handle_cd
from .control import handle_exit
from .export import handle_export
from .misc import handle_colon, handle_false, handle_true, handle_wait
from .set import handle_set
from .source import handle_source
from .unset import handle_unset

if TYPE_CHECKING:
    from ...types import BuiltinHandler


BUILTINS: dict[str, "BuiltinHandler"] = {
    ":": handle_colon,
    ".": handle_source,
    "cd": handle_cd,
    "exit": handle_exit,
    "export": handle_export,
    "false": handle_false,
    "set": handle_set,
    "source": handle_source,
    "true": handle_true,
    "unset": handle_unset,
    "wait": handle_wait,
}

__all__ = [
    "BUILTINS",
    "handle_cd",
    "handle_colon",
    "handle_exit",
    "handle_export",
    "handle_false",
    "handle_set",
    "handle_source",
    "handle_true",
    "handle_unset",
    "handle_wait",
]
