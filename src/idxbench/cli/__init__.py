"""Command line interface for idxbench."""

from .cli import cli

__all__ = ["cli"]
