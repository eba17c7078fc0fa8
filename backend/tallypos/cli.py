# Overview: Flask CLI command groups for bootstrap, tenant setup and inventory maintenance.

# backend/tallypos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to tallypos (PowerShell: $env:FLASK_APP="tallypos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use "flask db upgrade" for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant setup:
# - python -m flask companies list
# - python -m flask companies create --name "Acme Stores" --tax-rate 7.5
# - python -m flask companies add-worker --company-id 1 --name "Sam" --role manager
#
# Inventory maintenance:
# - python -m flask inventory reorder-points --company-id 1 [--lead-time-days 7]
#   Recompute reorder points from the last 30 days of unflagged sales.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Customer, InventoryItem, Worker
from .services import inventory_service, people_service
from .services.errors import DomainError
from .validation import ConflictError, ValidationError


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


@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = db.session.query(Company).order_by(Company.id.asc()).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Workers':<9} {'Customers':<10} {'Items'}")
    click.echo("="*72)

    for company in companies:
        worker_count = db.session.query(Worker).filter_by(company_id=company.id).count()
        customer_count = db.session.query(Customer).filter_by(company_id=company.id).count()
        item_count = db.session.query(InventoryItem).filter_by(company_id=company.id).count()
        click.echo(f"{company.id:<5} {company.name:<30} {worker_count:<9} {customer_count:<10} {item_count}")

    click.echo("="*72 + "\n")


@companies_group.command('create')
@click.option('--name', required=True, help='Company name')
@click.option('--tax-rate', type=float, default=0.0, show_default=True, help='Tax rate (percent)')
@click.option('--receipt-template', default='template1', show_default=True, help='Receipt template')
@with_appcontext
def create_company_cli(name, tax_rate, receipt_template):
    """Create a new company (tenant)."""
    try:
        company = people_service.create_company(name, tax_rate=tax_rate, receipt_template=receipt_template)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created company: {company.name} (ID: {company.id})")


@companies_group.command('add-worker')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--name', required=True, help='Worker name')
@click.option('--role', default='worker', show_default=True, help='Worker role')
@with_appcontext
def add_worker_cli(company_id, name, role):
    """Register a worker for a company."""
    try:
        worker = people_service.create_worker(company_id, name, role=role)
    except (ValidationError, DomainError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created worker: {worker.name} (ID: {worker.id})")


@click.group('inventory')
def inventory_group():
    """Inventory maintenance commands."""


@inventory_group.command('reorder-points')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--lead-time-days', type=float, default=7, show_default=True, help='Supplier lead time')
@click.option('--window-days', type=int, default=30, show_default=True, help='Sales history window')
@with_appcontext
def reorder_points_cli(company_id, lead_time_days, window_days):
    """Recompute reorder points and EOQ from recent sales."""
    rows = inventory_service.refresh_reorder_points(
        company_id,
        lead_time_days=lead_time_days,
        window_days=window_days,
    )
    if not rows:
        click.echo("No inventory items found.")
        return

    click.echo(f"{'Item':<30} {'Avg/day':>9} {'Safety':>9} {'ROP':>9} {'EOQ':>9} {'Onhand':>9}")
    for row in rows:
        click.echo(
            f"{row['name']:<30} {row['average_daily_sales']:>9.2f} {row['safety_stock']:>9.2f} "
            f"{row['reorder_point']:>9.2f} {row['eoq']:>9.2f} {row['onhand']:>9.2f}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(inventory_group)
