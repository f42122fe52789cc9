"""Flask CLI commands for operator account maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authgate.api.deps import get_auth_service
from authgate.services._shared.enums import Role
from authgate.services._shared.errors import ConflictError

LOGGER = logging.getLogger(__name__)


@click.group("accounts")
def accounts_cli() -> None:
    """Manage accounts and their sessions."""


@accounts_cli.command("create-admin")
@click.argument("email")
@click.argument("username")
@click.password_option("--password", help="Password for the new account (prompted when omitted).")
@with_appcontext
def create_admin(email: str, username: str, password: str) -> None:
    """Create a LOCAL account with the ADMIN role."""
    service = get_auth_service()
    try:
        account = service.create_local_account(
            email=email, password=password, username=username, role=Role.ADMIN
        )
    except ConflictError as exc:
        raise click.ClickException(str(exc)) from exc
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="EMAIL") from exc
    LOGGER.info(
        "admin account created",
        extra={"event": "cli.accounts.create_admin", "account_id": account.id},
    )
    click.echo(f"Created admin account id={account.id} email={account.email}")


@accounts_cli.command("revoke")
@click.argument("account_id", type=int)
@with_appcontext
def revoke(account_id: int) -> None:
    """Revoke the stored refresh token of ACCOUNT_ID."""
    removed = get_auth_service().tokens.revoke(account_id)
    if removed:
        click.echo(f"Revoked refresh token for account {account_id}")
    else:
        click.echo(f"No refresh token stored for account {account_id}")
