"""Command-line interface for chainhash."""

from .commands import CLIContext, register_subcommands

__all__ = ["CLIContext", "register_subcommands"]
