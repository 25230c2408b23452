"""Command-line interface for gh-manager."""

from .dispatcher import main

__all__ = ["main"]
