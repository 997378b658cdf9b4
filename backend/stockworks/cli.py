# Overview: Flask CLI command groups for bootstrap, tenant management and maintenance.

# backend/stockworks/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenants:
# - python -m flask tenants create --name "Acme Bakery" --code ACME [--reset-password "..."]
#   Create a tenant and print its API key (shown once).
# - python -m flask tenants list
# - python -m flask tenants rotate-key --code ACME
# - python -m flask tenants set-reset-password --code ACME
#
# Data:
# - python -m flask data reset --code ACME
#   Delete every row the tenant owns (asks twice, then for the reset password).
#
# Ledgers:
# - python -m flask ledger verify --code ACME
#   Report stock and balance drift against the ledgers.
# - python -m flask ledger rebuild --code ACME
#   Overwrite customer/supplier balances with their ledger values.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .models import Tenant
from .services import maintenance_service, tenant_service
from .services.ledger_service import find_stock_drift
from .services.party_service import rebuild_balances


def _tenant_by_code(code: str) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(code=code.strip().upper()).first()
    if tenant is None:
        raise click.ClickException(f"Tenant with code '{code}' not found")
    return tenant


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA for every tenant!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask tenants create' next.")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id.asc()).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Reset pw'}")
    click.echo("="*70)

    for tenant in tenants:
        active_str = "Yes" if tenant.is_active else "No"
        reset_str = "Yes" if tenant.reset_password_hash else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code:<15} {active_str:<8} {reset_str}")

    click.echo("="*70 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant (business) name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--reset-password', default=None, help='Password that authorizes data resets')
@with_appcontext
def create_tenant_cli(name, code, reset_password):
    """Create a new tenant and print its API key."""
    try:
        tenant, api_key = tenant_service.create_tenant(name=name, code=code, reset_password=reset_password)
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")
    click.echo(f"API key (store it now, it is not shown again): {api_key}")


@tenants_group.command('rotate-key')
@click.option('--code', required=True, help='Tenant code')
@with_appcontext
def rotate_key_cli(code):
    """Issue a new API key; the old one stops working."""
    tenant = _tenant_by_code(code)
    api_key = tenant_service.rotate_api_key(tenant.id)
    click.echo(f"PASS New API key for {tenant.code}: {api_key}")


@tenants_group.command('set-reset-password')
@click.option('--code', required=True, help='Tenant code')
@click.password_option('--password', help='New reset password')
@with_appcontext
def set_reset_password_cli(code, password):
    """Set the password that authorizes data resets."""
    tenant = _tenant_by_code(code)
    try:
        tenant_service.set_reset_password(tenant.id, password)
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Reset password updated for {tenant.code}")


@click.group('data')
def data_group():
    """Tenant data commands."""


@data_group.command('reset')
@click.option('--code', required=True, help='Tenant code')
@click.option('--password', prompt=True, hide_input=True, help='Tenant reset password')
@with_appcontext
def reset_data_cli(code, password):
    """
    DANGER: Delete all materials, products, sales, production, parties and
    ledgers of one tenant. The tenant itself is kept.
    """
    tenant = _tenant_by_code(code)
    click.confirm(f"WARN This will DELETE ALL DATA of {tenant.name}. Are you sure?", abort=True)
    click.confirm("WARN This cannot be undone. Really delete everything?", abort=True)

    result = maintenance_service.reset_all_data(tenant_id=tenant.id, password=password)
    if not result.success:
        click.echo(f"FAIL {result.message}")
        return

    click.echo(f"PASS {result.message}")
    for table, count in (result.deleted or {}).items():
        click.echo(f"  {table:<24} {count}")


@click.group('ledger')
def ledger_group():
    """Stock and balance ledger checks."""


@ledger_group.command('verify')
@click.option('--code', required=True, help='Tenant code')
@with_appcontext
def verify_ledgers_cli(code):
    """Report items and parties whose stored values disagree with their ledgers."""
    tenant = _tenant_by_code(code)
    stock_drift = find_stock_drift(tenant.id)
    balance_drift = rebuild_balances(tenant.id, fix=False)

    for row in stock_drift:
        click.echo(
            f"DRIFT {row['item_type']} {row['item_id']} ({row['name']}): "
            f"stored {row['current_stock']} ledger {row['ledger_stock']}"
        )
    for row in balance_drift:
        click.echo(
            f"DRIFT {row['party_type']} {row['party_id']} ({row['name']}): "
            f"stored {row['stored_balance']} ledger {row['ledger_balance']}"
        )

    if not stock_drift and not balance_drift:
        click.echo("PASS All stock and balances match their ledgers")


@ledger_group.command('rebuild')
@click.option('--code', required=True, help='Tenant code')
@with_appcontext
def rebuild_ledgers_cli(code):
    """Overwrite customer and supplier balances with the ledger values."""
    tenant = _tenant_by_code(code)
    fixed = rebuild_balances(tenant.id, fix=True)
    click.echo(f"PASS Rebuilt balances ({len(fixed)} corrected)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(data_group)
    app.cli.add_command(ledger_group)
