"""
CLI module for localfs.

Provides a command-line interface over a single adapter root.
"""

from localfs.cli.main import cli

__all__ = ["cli"]
