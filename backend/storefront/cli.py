# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create-developer --name Owner --email owner@shop.local --password "secret1"
#   Create the developer account (only one may exist).
# - python -m flask users list
#
# Ledger inspection:
# - python -m flask ledger check-stock
#   Verify remaining_quantity == total_quantity - units sold, for every product.
# - python -m flask ledger balances --kind buyer
#   Outstanding balance and status per buyer (or supplier).

import click
from flask import current_app
from flask.cli import with_appcontext

from .engine.errors import LedgerError
from .engine.money import format_money
from .extensions import db
from .models import User
from .services import auth_service, party_service, product_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (idempotent)."""
    db.create_all()
    click.echo("PASS Database tables created.")
    if not auth_service.developer_exists():
        click.echo("Next: run 'python -m flask users create-developer' or sign up through the API.")


@system_group.command('reset-db')
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

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-developer')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_developer_cli(name, email, password):
    """Create the developer (owner) account."""
    try:
        user = auth_service.signup_developer(name, email, password)
    except LedgerError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created developer user: {user.name} ({user.email}), ID {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Role':<10} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<30} {user.role:<10} {active_str}")
    click.echo("="*80 + "\n")


@click.group('ledger')
def ledger_group():
    """Stock and balance inspection commands."""


@ledger_group.command('check-stock')
@with_appcontext
def check_stock():
    """Verify every product's stock counters against its sales."""
    problems = product_service.check_stock_invariant()
    if not problems:
        click.echo("PASS Stock counters match the transaction list.")
        return

    for p in problems:
        click.echo(
            f"FAIL Product {p['product_id']} ({p['name']}): remaining {p['remaining_quantity']}, "
            f"expected {p['expected_remaining_quantity']} of total {p['total_quantity']}"
        )
    raise SystemExit(1)


@ledger_group.command('balances')
@click.option('--kind', type=click.Choice(['buyer', 'supplier']), default='buyer', show_default=True)
@with_appcontext
def balances(kind):
    """Outstanding balance per buyer (udhaar) or supplier (payable)."""
    result = party_service.list_parties(kind)
    rows = result["parties"]
    if not rows:
        click.echo(f"No {kind}s found.")
        return

    for row in rows:
        click.echo(
            f"{row['id']:<5} {row['name']:<30} {format_money(row['outstanding_cents']):>18}  "
            f"{row['status']:<10} ({row['transaction_count']} txns)"
        )
    click.echo(f"TOTAL {format_money(result['total_outstanding_cents'])}")
    current_app.logger.debug("Listed %s %s balances", len(rows), kind)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
