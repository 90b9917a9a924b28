"""
commands.py — Maintenance commands registered on the Flask CLI.

    flask --app stockserver.wsgi cleanup-blacklist
    flask --app stockserver.wsgi create-admin --email a@b.c --name "Ops" --password ...

Both use the same services as the HTTP layer.
"""

from __future__ import annotations

import click
from flask import Flask

from stockserver.app.errors import AppError
from stockserver.app.extensions import db


def register_commands(app: Flask) -> None:

    @app.cli.command("cleanup-blacklist")
    def cleanup_blacklist_command():
        """Remove expired tokens from the blacklist."""
        from stockserver.app.middleware.auth_middleware import current_blacklist
        from stockserver.app.services.token_service import cleanup_blacklist

        count = cleanup_blacklist(current_blacklist())
        db.session.commit()
        click.echo(f"Cleaned up {count} expired tokens from blacklist.")

    @app.cli.command("create-admin")
    @click.option("--email", required=True)
    @click.option("--name", required=True)
    @click.option("--password", required=True, prompt=True, hide_input=True,
                  confirmation_prompt=True)
    def create_admin_command(email: str, name: str, password: str):
        """Create an active admin account."""
        from stockserver.app.services.auth_service import create_admin

        if len(password) < 8:
            raise click.BadParameter("must be at least 8 characters", param_hint="--password")

        try:
            admin = create_admin(name=name, email=email, password=password, session=db.session)
        except AppError as exc:
            raise click.ClickException(exc.message)

        db.session.commit()
        click.echo(f"Admin created: {admin.public_id}")
