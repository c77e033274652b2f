"""Flask CLI commands for refresh token maintenance and account bootstrap."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authkit.core.auth import get_components
from authkit.core.extensions import db
from authkit.services._shared.errors import ConflictError, NotFoundError
from authkit.services.identity.dto import UserRegisterIn
from authkit.services.identity.service import IdentityService

LOGGER = logging.getLogger(__name__)


@click.command("db-init")
@with_appcontext
def db_init_command() -> None:
    """Create all tables (development shortcut for ``flask db upgrade``)."""
    db.create_all()
    click.echo("Database tables created.")


# --------------------------------------------------------------------------- #
# tokens
# --------------------------------------------------------------------------- #


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh token maintenance commands."""


@tokens_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete expired and revoked refresh tokens."""
    removed = get_components().refresh_store.purge()
    click.echo(f"Purged {removed} refresh token(s).")


@tokens_cli.command("revoke-user")
@click.argument("user_id", type=int)
@with_appcontext
def revoke_user_command(user_id: int) -> None:
    """Revoke every refresh token of USER_ID (forces re-login everywhere)."""
    revoked = get_components().refresh_store.revoke_all_for_user(user_id)
    LOGGER.info("tokens.revoke_user", extra={"user_id": user_id})
    click.echo(f"Revoked {revoked} refresh token(s) for user {user_id}.")


@tokens_cli.command("list-user")
@click.argument("user_id", type=int)
@with_appcontext
def list_user_command(user_id: int) -> None:
    """Show the refresh tokens of USER_ID (hash prefix, family, state)."""
    records = list(get_components().repository.list_for_user(user_id))
    if not records:
        click.echo("  (no tokens)")
        return
    for rec in records:
        state = "revoked" if rec.revoked else "active"
        click.echo(
            f"  {rec.token_hash[:12]}  family={rec.family_id[:8]}  "
            f"expires={rec.expires_at.isoformat()}  {state}"
        )


# --------------------------------------------------------------------------- #
# users
# --------------------------------------------------------------------------- #


@click.group("users")
def users_cli() -> None:
    """Account bootstrap commands."""


@users_cli.command("create")
@click.argument("username")
@click.argument("email")
@click.password_option()
@click.option("--admin", is_flag=True, help="Also grant ROLE_ADMIN.")
@with_appcontext
def create_user_command(username: str, email: str, password: str, admin: bool) -> None:
    """Create an account (optionally an administrator)."""
    service = IdentityService()
    try:
        user = service.register_user(
            UserRegisterIn(username=username, email=email, password=password)
        )
        if admin:
            user = service.grant_role(user.id, "ROLE_ADMIN")
    except ConflictError as exc:
        raise click.ClickException(exc.detail) from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created user {user.id} ({user.username}) roles={','.join(user.roles)}")


@users_cli.command("disable")
@click.argument("user_id", type=int)
@with_appcontext
def disable_user_command(user_id: int) -> None:
    """Disable USER_ID and revoke its refresh tokens."""
    try:
        IdentityService().set_enabled(user_id, False)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    revoked = get_components().refresh_store.revoke_all_for_user(user_id)
    click.echo(f"Disabled user {user_id}; revoked {revoked} refresh token(s).")
