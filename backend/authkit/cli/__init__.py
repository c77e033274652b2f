"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .tokens import db_init_command, tokens_cli, users_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI commands.

    Parameters
    ----------
    app:
        Flask application instance whose CLI registry receives the
        ``tokens`` and ``users`` groups and the ``db-init`` command.
    """
    app.cli.add_command(tokens_cli)
    app.cli.add_command(users_cli)
    app.cli.add_command(db_init_command)
