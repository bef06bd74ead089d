"""Bot command handling module."""

from .router import CommandContext, CommandRouter, parse_id

__all__ = ["CommandRouter", "CommandContext", "parse_id"]
