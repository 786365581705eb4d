"""CLI command handlers."""

from .run import run_plugin

__all__ = ['run_plugin']
