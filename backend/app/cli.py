"""`flask secrets ...` maintenance commands."""
import secrets

import click
from flask.cli import AppGroup

from app.services import credential_store
from app.services.encryption import SecretCodecError

secrets_cli = AppGroup('secrets', help='Manage encrypted credentials.')


def _fail(e):
    return click.ClickException(f"{type(e).__name__}: {e}")


@secrets_cli.command('generate-key')
def generate_key():
    """Print a random value suitable for ENCRYPTION_KEY."""
    click.echo(secrets.token_urlsafe(48))


@secrets_cli.command('verify')
def verify():
    """List stored credentials that no longer decrypt."""
    try:
        broken = credential_store.find_undecryptable()
    except SecretCodecError as e:
        raise _fail(e) from e
    if not broken:
        click.echo('All credentials decrypt with the configured keys.')
        return
    for name in broken:
        click.echo(f"Cannot decrypt: {name}", err=True)
    raise click.exceptions.Exit(1)


@secrets_cli.command('rotate')
def rotate():
    """Re-encrypt all credentials under the active key."""
    try:
        count = credential_store.rotate_credentials()
    except SecretCodecError as e:
        raise _fail(e) from e
    click.echo(f"Rotated {count} credential(s).")


def register_commands(app):
    app.cli.add_command(secrets_cli)
