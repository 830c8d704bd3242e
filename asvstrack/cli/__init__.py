"""CLI module for asvstrack."""

from asvstrack.cli.main import cli

__all__ = ["cli"]
