"""
Command-line interface for inspecting and maintaining a persisted cache.
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
