"""Command-line interface for zkauth.

Provides commands for configuration, account administration, and running
the API server.
"""

from .main import cli, main

__all__ = ["cli", "main"]
