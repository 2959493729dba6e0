# Overview: Flask CLI command groups for bootstrap and ledger inspection.

# backend/nibso/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to the factory (PowerShell: $env:FLASK_APP="nibso:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create tables and load every ledger once (seeds demo data when SEED_DEMO_DATA is on).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory list [--low-stock]
#   List catalog items, optionally only those at or below their reorder level.
#
# Sales ledger:
# - python -m flask sales list
#   List daily sales records.
# - python -m flask sales record --amount 2500 [--count 1] [--date 2026-01-31]
#   Add revenue to a day's record (created if missing).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services.container import build_services, get_services
from .services.reporting_service import sales_overview
from .time_utils import parse_iso_date


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize storage: create tables, then construct every ledger so that
    empty keys are seeded with demo data (when enabled).
    """
    click.echo("START Initializing Nibso storage...")
    db.create_all()
    click.echo("PASS Tables ready")

    services = build_services(current_app._get_current_object())
    click.echo(f"PASS Business: {services.profile.name} ({services.profile.business_type.value})")
    click.echo(f"PASS Inventory items: {len(services.inventory.items())}")
    click.echo(f"PASS Promotions: {len(services.promotions.promotions())}")
    click.echo(f"PASS Loyalty members: {len(services.loyalty.members())}")
    click.echo(f"PASS Stored keys: {', '.join(services.store.keys()) or 'none'}")


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
    current_app.extensions.pop("nibso", None)

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# INVENTORY COMMANDS
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('list')
@click.option('--low-stock', is_flag=True, help='Only items at or below their reorder level')
@with_appcontext
def list_inventory(low_stock):
    """List catalog items."""
    inventory = get_services().inventory
    items = inventory.low_stock() if low_stock else inventory.items()

    if not items:
        click.echo("No items found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<20} {'Name':<30} {'Category':<15} {'Price':>10} {'Stock':>10}")
    click.echo("="*90)
    for item in items:
        click.echo(f"{item.id:<20} {item.name[:30]:<30} {item.category[:15]:<15} {item.price:>10.2f} {item.stock:>10g}")
    click.echo("="*90 + "\n")


# =============================================================================
# SALES COMMANDS
# =============================================================================

@click.group('sales')
def sales_group():
    """Daily sales ledger commands."""


@sales_group.command('list')
@with_appcontext
def list_sales():
    """List daily sales records with a 7-day summary."""
    services = get_services()
    records = services.sales.records()

    if not records:
        click.echo("No sales recorded.")
        return

    currency = services.profile.currency
    click.echo("\n" + "="*60)
    click.echo(f"{'Date':<12} {'Revenue':>20} {'Transactions':>15}")
    click.echo("="*60)
    for record in sorted(records, key=lambda r: r.date):
        click.echo(f"{record.date:<12} {currency + format(record.revenue, ',.2f'):>20} {record.transactions:>15}")
    click.echo("="*60)

    overview = sales_overview(records, mode="daily")
    click.echo(
        f"Last 7 days: {currency}{overview['total_revenue']:,.2f} over "
        f"{overview['total_transactions']} transaction(s), "
        f"avg {currency}{overview['avg_sale_value']:,.2f}\n"
    )


@sales_group.command('record')
@click.option('--amount', type=float, required=True, help='Revenue to add')
@click.option('--count', type=int, default=1, show_default=True, help='Number of transactions')
@click.option('--date', 'sale_date', help='YYYY-MM-DD (defaults to today)')
@with_appcontext
def record_sale(amount, count, sale_date):
    """Add revenue to a day's sales record."""
    if count < 0:
        click.echo("FAIL count must be >= 0")
        return
    try:
        parsed = parse_iso_date(sale_date)
    except ValueError:
        click.echo(f"FAIL Invalid date: {sale_date}")
        return

    record = get_services().sales.record_transaction(
        amount, count, date=parsed.isoformat() if parsed else None
    )
    click.echo(f"PASS {record.date}: revenue {record.revenue:,.2f}, transactions {record.transactions}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sales_group)
