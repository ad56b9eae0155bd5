"""Accounts command group for zkauth CLI.

Operates directly on the configured account repository. Meaningful for the
file backend; the memory backend starts empty in every process.
"""

from __future__ import annotations

__all__ = ["accounts"]

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import click

from zkauth.constants import ACCOUNT_SEARCH_LIMIT, RECENT_LOGIN_WINDOW, RECENT_SIGNUP_WINDOW
from zkauth.exceptions import RepositoryUnavailable
from zkauth.storage import Account, AccountRepository, create_repository
from zkauth.telemetry.system.system_logger import get_system_logger

from ..helpers import config_path_option, load_config_or_exit
from ..styling import (
    style_account_status,
    style_dim,
    style_error,
    style_header,
    style_label,
    style_success,
)


def _open_repository(config_path: Path | None) -> AccountRepository:
    config = load_config_or_exit(config_path)
    try:
        return create_repository(config)
    except RepositoryUnavailable as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)


async def _resolve(repository: AccountRepository, identifier: str) -> Account | None:
    """Find an account by id, wallet address (0x...), or email."""
    account = await repository.find_by_id(identifier, include_inactive=True)
    if account is None and identifier.startswith("0x"):
        account = await repository.find_by_wallet(identifier, include_inactive=True)
    if account is None and "@" in identifier:
        account = await repository.find_by_email(identifier, include_inactive=True)
    return account


def _resolve_or_exit(repository: AccountRepository, identifier: str) -> Account:
    account = asyncio.run(_resolve(repository, identifier))
    if account is None:
        click.echo(style_error(f"Account not found: {identifier}"), err=True)
        sys.exit(1)
    return account


@click.group()
def accounts() -> None:
    """Account administration commands.

    \b
    ACCOUNT may be an account id, a wallet address (0x...), or an email.
    """
    pass


@accounts.command("list")
@config_path_option
@click.option("--active-only", is_flag=True, help="Hide deactivated accounts")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def accounts_list(config_path: Path | None, active_only: bool, as_json: bool) -> None:
    """List accounts, oldest first."""
    repository = _open_repository(config_path)
    items = asyncio.run(repository.list_accounts(include_inactive=not active_only))

    if as_json:
        click.echo(json.dumps([a.to_public_dict() for a in items], indent=2))
        return

    if not items:
        click.echo(style_dim("No accounts."))
        return

    click.echo(style_label("Accounts") + f" {len(items)}")
    for account in items:
        status = style_account_status(account.active)
        click.echo(f"  {account.id}  {account.email}  {account.wallet_address}  ({status})")


@accounts.command("show")
@click.argument("identifier", metavar="ACCOUNT")
@config_path_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def accounts_show(identifier: str, config_path: Path | None, as_json: bool) -> None:
    """Show one account. The salt is never displayed."""
    repository = _open_repository(config_path)
    account = _resolve_or_exit(repository, identifier)
    data = account.to_public_dict()

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(style_header(f"Account {account.id}"))
    click.echo(f"  email: {account.email}")
    click.echo(f"  name: {account.display_name}")
    click.echo(f"  wallet_address: {account.wallet_address}")
    click.echo(f"  issuer: {account.issuer}")
    click.echo(f"  status: {style_account_status(account.active)}")
    click.echo(f"  login_count: {account.login_count}")
    click.echo(f"  last_login_at: {account.last_login_at.isoformat()}")
    click.echo(f"  refresh_tokens: {len(account.refresh_tokens)}")
    click.echo(f"  created_at: {account.created_at.isoformat()}")


@accounts.command("search")
@click.argument("query")
@config_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=ACCOUNT_SEARCH_LIMIT,
    show_default=True,
    help="Maximum number of results",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def accounts_search(query: str, config_path: Path | None, limit: int, as_json: bool) -> None:
    """Search active accounts by name, email, or full wallet address."""
    repository = _open_repository(config_path)
    items = asyncio.run(repository.search(query, limit=limit))

    if as_json:
        click.echo(json.dumps([a.to_public_dict() for a in items], indent=2))
        return

    if not items:
        click.echo(style_dim(f"No active accounts match '{query}'."))
        return

    click.echo(style_label("Matches") + f" {len(items)}")
    for account in items:
        click.echo(f"  {account.id}  {account.display_name}  {account.email}  {account.wallet_address}")


@accounts.command("stats")
@config_path_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def accounts_stats(config_path: Path | None, as_json: bool) -> None:
    """Summarize account totals and recent activity."""
    repository = _open_repository(config_path)
    stats = asyncio.run(repository.activity_stats(datetime.now(timezone.utc)))

    if as_json:
        click.echo(json.dumps(stats.model_dump(), indent=2))
        return

    click.echo(style_header("Accounts"))
    click.echo(f"  active: {stats.total_active}")
    click.echo(f"  inactive: {stats.total_inactive}")
    click.echo(f"  signed up (last {RECENT_SIGNUP_WINDOW.days} days): {stats.recent_signups}")
    click.echo(f"  signed in (last {RECENT_LOGIN_WINDOW.days} days): {stats.recent_logins}")


@accounts.command("deactivate")
@click.argument("identifier", metavar="ACCOUNT")
@config_path_option
def accounts_deactivate(identifier: str, config_path: Path | None) -> None:
    """Soft-delete an account and revoke its refresh tokens."""
    repository = _open_repository(config_path)
    account = _resolve_or_exit(repository, identifier)
    try:
        asyncio.run(repository.deactivate(account.id))
    except RepositoryUnavailable as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)
    get_system_logger().warning(
        {"event": "account_deactivated", "message": f"Account {account.id} deactivated"}
    )
    click.echo(style_success(f"Account {account.id} deactivated"))


@accounts.command("reactivate")
@click.argument("identifier", metavar="ACCOUNT")
@config_path_option
def accounts_reactivate(identifier: str, config_path: Path | None) -> None:
    """Re-enable a deactivated account."""
    repository = _open_repository(config_path)
    account = _resolve_or_exit(repository, identifier)
    try:
        asyncio.run(repository.reactivate(account.id))
    except RepositoryUnavailable as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)
    click.echo(style_success(f"Account {account.id} reactivated"))


@accounts.command("revoke")
@click.argument("identifier", metavar="ACCOUNT")
@config_path_option
def accounts_revoke(identifier: str, config_path: Path | None) -> None:
    """Revoke every refresh token of an account (logout all devices).

    Access tokens already issued stay valid until they expire.
    """
    repository = _open_repository(config_path)
    account = _resolve_or_exit(repository, identifier)
    try:
        count = asyncio.run(repository.clear_refresh_tokens(account.id))
    except RepositoryUnavailable as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)
    click.echo(style_success(f"Revoked {count} refresh token(s) for {account.id}"))
