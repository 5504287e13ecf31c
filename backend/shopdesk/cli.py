# Overview: Flask CLI command group for bootstrap and maintenance.

# backend/shopdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask shop <command> [options]
#
# - python -m flask shop init
#   Create tables and the default admin user (idempotent).
# - python -m flask shop init-admin [--email admin@example.com] [--password ...]
#   Create or promote the default admin user.
# - python -m flask shop seed
#   Seed demo products, customers and invoices into empty collections.
# - python -m flask shop reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask shop ledger --limit 20
#   Print the most recent ledger journal events.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ShopError
from .extensions import db
from .routes import EVENT_BUS_KEY
from .services import ledger_service
from .services.auth_service import ensure_admin_user
from .services.entity_store import EntityStore
from .services.seed_service import seed_demo_data


@click.group('shop')
def shop_group():
    """Bootstrap and maintenance commands."""


def _bootstrap_admin(email: str | None, password: str | None) -> None:
    email = email or current_app.config["DEFAULT_ADMIN_EMAIL"]
    password = password or current_app.config["DEFAULT_ADMIN_PASSWORD"]
    try:
        user, created = ensure_admin_user(email, password)
    except ShopError as e:
        raise click.ClickException(str(e))
    if created:
        click.echo(f"OK Created admin user {user.email}")
    else:
        click.echo(f"OK Admin user {user.email} already exists")


@shop_group.command('init')
@with_appcontext
def init_command():
    """Create tables and the default admin user."""
    db.create_all()
    click.echo("OK Tables created")
    _bootstrap_admin(None, None)


@shop_group.command('init-admin')
@click.option('--email', default=None, help='Admin email (defaults to DEFAULT_ADMIN_EMAIL)')
@click.option('--password', default=None, help='Admin password (defaults to DEFAULT_ADMIN_PASSWORD)')
@with_appcontext
def init_admin_command(email, password):
    """Create or promote the default admin user."""
    _bootstrap_admin(email, password)


@shop_group.command('seed')
@with_appcontext
def seed_command():
    """Seed demo data into empty collections."""
    store = EntityStore(db.session, current_app.extensions[EVENT_BUS_KEY])
    try:
        created = seed_demo_data(store)
    except ShopError as e:
        raise click.ClickException(str(e))
    for collection, count in created.items():
        click.echo(f"  {collection}: {count} created")


@shop_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("OK Creating tables...")
    db.create_all()
    click.echo("OK Database reset complete")


@shop_group.command('ledger')
@click.option('--limit', default=20, show_default=True, type=int)
@click.option('--entity-id', default=None)
@with_appcontext
def ledger_command(limit, entity_id):
    """Print recent ledger journal events, newest first."""
    events = ledger_service.list_ledger_events(entity_id=entity_id, limit=limit)
    if not events:
        click.echo("No ledger events")
        return
    for ev in events:
        amount = f" {ev.amount}" if ev.amount is not None else ""
        click.echo(f"{ev.occurred_at:%Y-%m-%d %H:%M:%S}  {ev.event_type:<20} {ev.entity_type}:{ev.entity_id}{amount}  {ev.note or ''}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(shop_group)
