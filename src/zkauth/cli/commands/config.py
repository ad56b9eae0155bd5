"""Config command group for zkauth CLI.

Provides configuration management subcommands.
"""

from __future__ import annotations

__all__ = ["config"]

import json
import secrets
import sys
from pathlib import Path

import click

from zkauth.config import AppConfig, OracleConfig, SessionConfig, StorageConfig, get_config_path
from zkauth.exceptions import ConfigurationError

from ..helpers import config_path_option, load_config_or_exit
from ..styling import style_error, style_header, style_secret, style_success, style_warning


def _masked(secret: str | None) -> str:
    if not secret:
        return "(not set)"
    return style_secret(secret)


@click.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("path")
def config_show_path() -> None:
    """Print the config file location."""
    click.echo(str(get_config_path()))


@config.command("init")
@config_path_option
@click.option("--trusted-issuer", default=None, help="Accepted identity token issuer")
@click.option("--client-id", default=None, help="OAuth client id (default audience)")
@click.option("--derivation-url", default=None, help="Wallet address derivation endpoint")
@click.option("--prover-url", default=None, help="Proof gateway endpoint")
@click.option(
    "--storage",
    type=click.Choice(["memory", "file"]),
    default="file",
    show_default=True,
    help="Account storage backend",
)
@click.option("--storage-path", default=None, help="Account file for the file backend")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def config_init(
    config_path: Path | None,
    trusted_issuer: str | None,
    client_id: str | None,
    derivation_url: str | None,
    prover_url: str | None,
    storage: str,
    storage_path: str | None,
    force: bool,
) -> None:
    """Create a config file with a freshly generated signing secret."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        click.echo(style_error(f"Config already exists at {path} (use --force)"), err=True)
        sys.exit(1)

    app_config = AppConfig(
        session=SessionConfig(signing_secret=secrets.token_urlsafe(48)),
        storage=StorageConfig(backend=storage, path=storage_path),  # type: ignore[arg-type]
        oracles=OracleConfig(derivation_url=derivation_url, prover_url=prover_url),
    )
    if trusted_issuer:
        app_config.identity.trusted_issuer = trusted_issuer
    if client_id:
        app_config.identity.client_id = client_id

    app_config.save_to_file(path)
    click.echo(style_success(f"Config written to {path}"))
    if not derivation_url:
        click.echo(style_warning("oracles.derivation_url is not set; 'serve' will refuse to start"))


@config.command("show")
@config_path_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_show(config_path: Path | None, as_json: bool) -> None:
    """Display current configuration. The signing secret is masked."""
    app_config = load_config_or_exit(config_path)
    data = app_config.model_dump(mode="json")
    data["session"]["signing_secret"] = _masked(app_config.session.signing_secret)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    for section, values in data.items():
        click.echo(style_header(section.capitalize()))
        for key, value in values.items():
            click.echo(f"  {key}: {value}")
        click.echo()


@config.command("validate")
@config_path_option
def config_validate(config_path: Path | None) -> None:
    """Validate configuration file.

    Checks JSON syntax, schema, and that a usable signing secret is present.

    Exit codes:
        0: Config is valid
        1: Config is invalid or not found
    """
    path = config_path or get_config_path()
    try:
        app_config = AppConfig.load_from_file(path)
        app_config.session.resolve_secret()
    except ConfigurationError as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)

    click.echo(style_success(f"Config valid: {path}"))
    if not app_config.oracles.derivation_url:
        click.echo(style_warning("oracles.derivation_url is not set"))
