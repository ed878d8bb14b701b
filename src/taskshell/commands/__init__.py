"""Portable commands for taskshell."""

from .registry import COMMAND_NAMES, create_command_registry

__all__ = ["COMMAND_NAMES", "create_command_registry"]
