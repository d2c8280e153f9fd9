# Overview: Flask CLI command groups for bootstrap, ledger inspection, and data maintenance.

# backend/martpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables (sql backend) and seeds default categories.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sales ledger:
# - python -m flask sales list [--date 2026-01-31] [--search INV-00000042] [--limit 20]
#   List recent sales with invoice number, customer, status and totals.
# - python -m flask sales show INV-00000042
#   Show one sale with its lines (invoice number or numeric id).
# - python -m flask sales mark-paid INV-00000042
#   Settle a credit sale in cash.
# - python -m flask sales return-full INV-00000042 --yes
#   Return every line of a sale and restock.
# - python -m flask sales clear --yes
#   Delete the whole sales history.
#
# Inventory:
# - python -m flask inventory low-stock
#   List products at or below their low stock threshold.
# - python -m flask inventory next-code
#   Print the next free PRD- product code.
#
# Data:
# - python -m flask data backup --out backup.json
#   Write products + sales as a backup document.
# - python -m flask data restore backup.json --yes
#   Replace products + sales from a backup document (categories are kept).

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import category_service, products_service, return_service, sales_service
from .services.backup_service import BackupError, build_backup, restore_backup
from .services.identifier_service import INVOICE_PREFIX, invoice_number, parse_id
from .storage import get_storage
from .time_utils import store_zone


def _resolve_sale_id(reference: str) -> int:
    reference = reference.strip()
    if reference.isdigit():
        return int(reference)
    try:
        return parse_id(reference, INVOICE_PREFIX)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the store: tables for the sql backend, default categories.

    Safe to run repeatedly.
    """
    click.echo("START Initializing martpos...")

    storage = get_storage()
    if storage.backend_name == "sql":
        db.create_all()
        click.echo("PASS Tables ready")
    else:
        click.echo(f"PASS Using JSON data file {current_app.config['DATA_FILE']}")

    categories = category_service.list_categories(storage)
    click.echo(f"PASS {len(categories)} categories available")
    click.echo("DONE martpos initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('sales')
def sales_group():
    """Sales ledger inspection and maintenance."""


@sales_group.command('list')
@click.option('--date', 'on_date', type=click.DateTime(formats=["%Y-%m-%d"]), help='Store-local date')
@click.option('--search', help='Invoice number, customer name or phone')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_sales_cli(on_date, search, limit):
    """List recent sales, newest first."""
    result = sales_service.list_sales(
        get_storage(),
        on_date=on_date.date() if on_date else None,
        search=search,
        zone=store_zone(current_app.config.get("POS_TIMEZONE")),
    )
    sales = result["items"][:limit]

    if not sales:
        click.echo("No sales found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Invoice':<14} {'Timestamp':<22} {'Customer':<20} {'Status':<8} {'Total':>10} {'Profit':>10}")
    click.echo("="*90)

    for sale in sales:
        click.echo(
            f"{invoice_number(sale['id']):<14} {sale.get('timestamp') or '-':<22} "
            f"{(sale.get('customer_name') or '-')[:20]:<20} {sale.get('payment_status') or '-':<8} "
            f"{sale['total_amount']:>10} {sale['total_profit']:>10}"
        )

    click.echo("="*90)
    totals = result["totals"]
    click.echo(f"{result['count']} sale(s)  total={totals['total_amount']}  profit={totals['total_profit']}\n")


@sales_group.command('show')
@click.argument('reference')
@with_appcontext
def show_sale_cli(reference):
    """Show one sale by invoice number or id."""
    try:
        sale = sales_service.get_sale(get_storage(), _resolve_sale_id(reference))
    except sales_service.SaleNotFound as exc:
        raise click.ClickException(str(exc))

    details = sales_service.sale_details(sale)
    click.echo(f"{details['invoice_number']}  {sale.get('timestamp')}")
    click.echo(f"Customer: {sale.get('customer_name')} {sale.get('customer_phone') or ''}".rstrip())
    click.echo(f"Payment:  {sale.get('payment_method')} / {sale.get('payment_status')}")
    for item, line_total in zip(sale.get("items") or [], details["line_totals"]):
        click.echo(f"  {item['qty']:>4} x {item['name']:<30} @ {item['price']:>10} = {line_total:>10}")
    click.echo(f"Total:    {sale['total_amount']}   Profit: {sale['total_profit']}")


@sales_group.command('mark-paid')
@click.argument('reference')
@with_appcontext
def mark_paid_cli(reference):
    """Settle a credit sale in cash."""
    sale_id = _resolve_sale_id(reference)
    try:
        sale = sales_service.mark_sale_paid(get_storage(), sale_id)
    except sales_service.SaleError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS {invoice_number(sale['id'])} marked Paid ({sale['total_amount']})")


@sales_group.command('return-full')
@click.argument('reference')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def return_full_cli(reference, yes):
    """Return every line of a sale and restock."""
    sale_id = _resolve_sale_id(reference)
    if not yes:
        click.confirm(f"WARN Return the whole bill {invoice_number(sale_id)}?", abort=True)
    try:
        return_service.return_full_bill(get_storage(), sale_id)
    except return_service.ReturnError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS {invoice_number(sale_id)} fully returned")


@sales_group.command('clear')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def clear_sales_cli(yes):
    """DANGER: delete the whole sales history."""
    if not yes:
        click.confirm("WARN This will DELETE ALL SALES. Are you sure?", abort=True)
    removed = sales_service.clear_sales(get_storage())
    click.echo(f"DELETE  Removed {removed} sale(s)")


@click.group('inventory')
def inventory_group():
    """Catalog inspection."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List products at or below their low stock threshold."""
    products = products_service.list_products(get_storage(), low_stock=True)["items"]
    if not products:
        click.echo("No low stock products.")
        return

    click.echo(f"{'Code':<14} {'Name':<30} {'Stock':>6} {'Threshold':>10}")
    for p in products:
        click.echo(f"{p.get('code') or '-':<14} {p['name'][:30]:<30} {p['stock']:>6} {p['low_stock_threshold']:>10}")


@inventory_group.command('next-code')
@with_appcontext
def next_code_cli():
    """Print the next free product code."""
    click.echo(products_service.next_code(get_storage()))


@click.group('data')
def data_group():
    """Backup and restore."""


@data_group.command('backup')
@click.option('--out', 'out_path', type=click.Path(dir_okay=False, writable=True), required=True)
@with_appcontext
def backup_cli(out_path):
    """Write products + sales to a backup file."""
    document = build_backup(get_storage())
    with open(out_path, "w", encoding="utf-8") as fh:
        fh.write(current_app.json.dumps(document))
    data = document["data"]
    click.echo(f"PASS Backup written to {out_path} ({len(data['products'])} products, {len(data['sales'])} sales)")


@data_group.command('restore')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def restore_cli(path, yes):
    """DANGER: replace products + sales with a backup file."""
    if not yes:
        click.confirm("WARN This will REPLACE all products and sales. Are you sure?", abort=True)

    with open(path, encoding="utf-8") as fh:
        try:
            document = json.load(fh)
        except ValueError as exc:
            raise click.ClickException(f"Not a JSON file: {exc}")

    try:
        restored = restore_backup(get_storage(), document)
    except BackupError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Restored {restored['products']} products and {restored['sales']} sales")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(data_group)
