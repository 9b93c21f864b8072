# Overview: Flask CLI command groups for stock auditing and database bootstrap.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Stock audit:
# - python -m flask stock verify
#   Check that every product's stock movement is explained by its ledger (exit 1 if not).
# - python -m flask stock history 12 --limit 20
#   Print the most recent ledger entries for a product.
#
# System bootstrap:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Insert a few demo products and services (idempotent by SKU / id).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, Service
from .services.ledger_service import find_ledger_discrepancies, list_stock_history


@click.group('stock')
def stock_group():
    """Stock ledger inspection commands."""


@stock_group.command('verify')
@with_appcontext
def verify_stock():
    """
    Completeness audit: stock - opening_stock must equal the ledger net for every product.
    """
    problems = find_ledger_discrepancies()
    if not problems:
        count = db.session.query(Product).count()
        click.echo(f"PASS Ledger explains stock for all {count} product(s)")
        return

    click.echo(f"FAIL {len(problems)} product(s) with unexplained stock movement:")
    click.echo(f"{'ID':<6} {'Name':<30} {'Stock':>8} {'Opening':>8} {'Ledger':>8} {'Diff':>8}")
    click.echo("-" * 74)
    for p in problems:
        click.echo(
            f"{p['product_id']:<6} {p['name'][:30]:<30} {p['stock']:>8} "
            f"{p['opening_stock']:>8} {p['ledger_net']:>8} {p['difference']:>8}"
        )
    raise SystemExit(1)


@stock_group.command('history')
@click.argument('product_id', type=int)
@click.option('--limit', default=50, show_default=True, help='Maximum entries to show')
@with_appcontext
def stock_history(product_id, limit):
    """Show the latest ledger entries for PRODUCT_ID."""
    product = db.session.get(Product, product_id)
    if product is None:
        click.echo(f"ERROR Product {product_id} not found")
        raise SystemExit(1)

    click.echo(f"\n{product.name} (ID: {product.id}) stock={product.stock} opening={product.opening_stock}")
    click.echo("=" * 100)
    entries = list_stock_history(product_id, limit=limit)
    if not entries:
        click.echo("No ledger entries.")
        return

    for e in entries:
        ref = f"{e.reference_type or '-'} #{e.reference_id}" if e.reference_id else (e.reference_type or "-")
        created = e.created_at.strftime("%Y-%m-%d %H:%M") if e.created_at else "-"
        click.echo(f"{created}  {e.quantity_change:+6d}  {e.change_type:<24} {ref:<16} {e.notes or ''}")


@click.group('system')
def system_group():
    """Database bootstrap commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


DEMO_PRODUCTS = [
    # sku, name, stock, cost_cents, price_cents
    ("DEMO-CABLE", "USB-C Cable", 40, 150, 499),
    ("DEMO-CASE", "Phone Case", 25, 300, 1299),
    ("DEMO-CHARGER", "Wall Charger", 10, 900, 2499),
]

# Service ids start high so they never collide with product ids
DEMO_SERVICES = [
    (1001, "Screen Repair", 4999, 1500),
    (1002, "Data Transfer", 1999, 0),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert demo catalog rows (opening stock equals initial stock)."""
    created = 0
    for sku, name, stock, cost, price in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            continue
        db.session.add(Product(
            sku=sku,
            name=name,
            stock=stock,
            opening_stock=stock,
            cost_cents=cost,
            price_cents=price,
        ))
        created += 1

    for service_id, name, price, cost in DEMO_SERVICES:
        if db.session.get(Service, service_id):
            continue
        db.session.add(Service(id=service_id, name=name, price_cents=price, cost_cents=cost))
        created += 1

    db.session.commit()
    click.echo(f"PASS Seeded {created} demo catalog row(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(stock_group)
    app.cli.add_command(system_group)
