"""Shared helpers for CLI commands."""

from __future__ import annotations

__all__ = [
    "config_path_option",
    "load_config_or_exit",
]

import sys
from pathlib import Path
from typing import Any, Callable

import click

from zkauth.config import AppConfig, get_config_path
from zkauth.exceptions import ConfigurationError

from .styling import style_error

config_path_option: Callable[[Callable[..., Any]], Callable[..., Any]] = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: $ZKAUTH_CONFIG or the app directory)",
)


def load_config_or_exit(config_path: Path | None) -> AppConfig:
    """Load configuration, printing the error and exiting 1 on failure."""
    path = config_path or get_config_path()
    try:
        return AppConfig.load_from_file(path)
    except ConfigurationError as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)
