"""Cd builtin implementation.

Usage: cd [-L|-P] [dir]
       cd -

Change the current working directory to dir. If dir is not specified,
change to $HOME. If dir is -, change to the previous directory and print it.
"""

from typing import TYPE_CHECKING

from ..errors import ShellEnvironmentError

if TYPE_CHECKING:
    from ...types import CommandContext


async def handle_cd(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the cd builtin."""
    # Parse flags: -L (logical, default), -P (physical)
    # Also handle -- as end-of-options
    positional: list[str] = []
    end_of_opts = False
    for a in args:
        if end_of_opts:
            positional.append(a)
        elif a == "--":
            end_of_opts = True
        elif a in ("-L", "-P"):
            pass
        elif a == "-":
            positional.append(a)
        elif a.startswith("-") and len(a) > 1:
            await ctx.stderr.write(f"taskshell: cd: {a}: invalid option\n")
            return 2
        else:
            positional.append(a)

    if len(positional) > 1:
        await ctx.stderr.write("taskshell: cd: too many arguments\n")
        return 1

    # Determine target directory
    if not positional:
        target = ctx.state.get("HOME")
        if not target:
            await ctx.stderr.write("taskshell: cd: HOME not set\n")
            return 1
    elif positional[0] == "-":
        target = ctx.state.previous_dir
        if not target:
            await ctx.stderr.write("taskshell: cd: OLDPWD not set\n")
            return 1
    else:
        target = positional[0]

    try:
        new_dir = ctx.state.chdir(target)
    except ShellEnvironmentError as e:
        await ctx.stderr.write(f"taskshell: cd: {e}\n")
        return 1

    # cd - prints the new directory
    if positional and positional[0] == "-":
        await ctx.stdout.write(new_dir + "\n")
    return 0
