"""
Command-line interface for zoombg.

This package contains CLI implementations using Click.
Uses the public API: from zoombg import ...
"""

from zoombg.cli.commands import cli, main

__all__ = ["cli", "main"]
