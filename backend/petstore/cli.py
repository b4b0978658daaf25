# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/petstore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   List items at or below their minimum stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import inventory_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop the catalog, ledger, sales and customer tables, then recreate them empty."""
    if not yes:
        click.confirm("WARN Every item, receipt, sale and customer will be lost. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Store database recreated.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock():
    """List items at or below their minimum stock level."""
    rows = inventory_service.list_low_stock()
    if not rows:
        click.echo("No low-stock items.")
        return

    click.echo(f"{'CODE':<18} {'NAME':<30} {'QTY':>6} {'MIN':>6}")
    for inv in rows:
        click.echo(f"{inv.item.code:<18} {inv.item.name[:30]:<30} {inv.quantity:>6} {inv.min_stock:>6}")


def register_commands(app):
    """Attach the system and inventory command groups to the app CLI."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
