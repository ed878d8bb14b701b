"""Export builtin implementation.

Usage: export [name[=value] ...]
       export -p
       export -n name

Mark variables for export to child processes. If no arguments are given,
list all exported variables.
"""

from typing import TYPE_CHECKING

from ...parser.lexer import is_valid_name

if TYPE_CHECKING:
    from ...types import CommandContext


def _format_exported(name: str, value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'export {name}="{escaped}"\n'


async def handle_export(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the export builtin."""
    remove_export = False
    print_mode = False
    names_to_process = []

    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--":
            names_to_process.extend(args[i + 1:])
            break
        if arg.startswith("-") and len(arg) > 1:
            for ch in arg[1:]:
                if ch == "n":
                    remove_export = True
                elif ch == "p":
                    print_mode = True
                else:
                    await ctx.stderr.write(f"taskshell: export: -{ch}: invalid option\n")
                    return 2
        else:
            names_to_process.append(arg)
        i += 1

    state = ctx.state

    # No arguments or -p: list all exported variables
    if not names_to_process or print_mode:
        listing = "".join(
            _format_exported(name, state.variables[name])
            for name in sorted(state.variables)
            if state.is_exported(name)
        )
        if listing:
            await ctx.stdout.write(listing)
        if not names_to_process:
            return 0

    exit_code = 0
    for arg in names_to_process:
        if "=" in arg:
            name, value = arg.split("=", 1)
        else:
            name, value = arg, None

        if not is_valid_name(name):
            await ctx.stderr.write(f"taskshell: export: '{arg}': not a valid identifier\n")
            exit_code = 1
            continue

        if value is not None:
            state.set(name, value)

        if remove_export:
            state.unexport(name)
        else:
            state.export(name)

    return exit_code
