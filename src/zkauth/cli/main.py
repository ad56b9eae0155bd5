"""Main CLI entry point for zkauth.

Commands are defined under cli/commands/ and registered on the group below.

Commands:
    accounts  - Account administration (list, show, search, stats, deactivate,
                reactivate, revoke)
    config    - Configuration management (init, path, show, validate)
    serve     - Start the authentication API server

Subcommand help:
    zkauth COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys

import click

from zkauth import __version__
from zkauth.constants import CONFIG_PATH_ENV_VAR, SIGNING_SECRET_ENV_VAR

from .commands.accounts import accounts
from .commands.config import config
from .commands.serve import serve


class ReorderedGroup(click.Group):
    """Group that prints the quick start and environment after the command list."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        with formatter.section("Quick Start"):
            formatter.write_text("zkauth config init --derivation-url https://oracle.example.com/derive")
            formatter.write_text("zkauth config validate")
            formatter.write_text("zkauth serve")
        with formatter.section("Environment"):
            formatter.write_dl(
                [
                    (CONFIG_PATH_ENV_VAR, "Config file location"),
                    (SIGNING_SECRET_ENV_VAR, "Session signing secret (overrides the config file)"),
                ]
            )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """zkauth: identity-to-session authentication for zkLogin wallets."""
    if version:
        click.echo(f"zkauth {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())



cli.add_command(accounts)
cli.add_command(config)
cli.add_command(serve)


def main() -> None:
    """CLI entry point."""
    cli()
