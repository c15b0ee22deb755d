# Overview: Flask CLI command groups for bootstrap, inspection, backup and reports.

# backend/phone_pos/cli.py
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
# Inventory inspection:
# - python -m flask inventory list --owner local --status in_stock --search iphone
#
# Backups:
# - python -m flask backup export --owner local --out backups/
# - python -m flask backup import backups/phone-pos-backup-20261017.json --owner local
#
# Reports:
# - python -m flask reports profit --range custom --start 01/10/2026 --end 17/10/2026
# - python -m flask reports inventory --owner local

import json
import os

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import BackupError, ValidationFailed
from .extensions import db
from .models.inventory import PHONE_STATUS_IN_STOCK, PHONE_STATUS_SOLD
from .services import backup_service, phone_service, reporting_service
from .stores import SqlEntityStore


owner_option = click.option(
    '--owner', 'owner_id', default=None,
    help='Owner id (defaults to DEFAULT_OWNER_ID)',
)


def _store(owner_id) -> SqlEntityStore:
    return SqlEntityStore(owner_id or current_app.config["DEFAULT_OWNER_ID"])


def _money(cents) -> str:
    return f"{(cents or 0) / 100:.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (existing tables are left alone)."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('inventory')
def inventory_group():
    """Phone inventory inspection."""


@inventory_group.command('list')
@owner_option
@click.option('--status', type=click.Choice(['all', PHONE_STATUS_IN_STOCK, PHONE_STATUS_SOLD]), default='all')
@click.option('--search', default=None, help='Substring of IMEI or model')
@with_appcontext
def list_inventory(owner_id, status, search):
    """List phones, newest first."""
    phones = phone_service.list_phones(_store(owner_id), search=search, status=status)
    if not phones:
        click.echo("No phones found.")
        return

    click.echo(f"{'ID':<6} {'IMEI1':<17} {'Model':<24} {'Status':<9} {'Cost':>10} {'Sold for':>10}")
    for p in phones:
        sold_for = _money(p["sale_price_cents"]) if p["sale_price_cents"] is not None else "-"
        click.echo(
            f"{p['id']:<6} {p['imei1']:<17} {(p['model_name'] or '-')[:24]:<24} "
            f"{p['status']:<9} {_money(p['purchase_price_cents']):>10} {sold_for:>10}"
        )
    click.echo(f"\n{len(phones)} phone(s)")


@click.group('backup')
def backup_group():
    """Backup export and restore."""


@backup_group.command('export')
@owner_option
@click.option('--out', 'out_dir', default=None, help='Directory to write into (defaults to BACKUP_DIR)')
@with_appcontext
def export_backup(owner_id, out_dir):
    """Write the owner's data to a dated JSON backup file."""
    document = backup_service.export_backup(_store(owner_id))
    path = backup_service.write_backup_file(document, out_dir or current_app.config["BACKUP_DIR"])
    counts = ", ".join(f"{key}={len(document[key])}" for key, _ in backup_service.DOCUMENT_KEYS)
    click.echo(f"PASS Backup written to {path} ({counts})")


@backup_group.command('import')
@click.argument('backup_file', type=click.Path(exists=True, dir_okay=False))
@owner_option
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_backup(backup_file, owner_id, yes):
    """Replace the owner's data with BACKUP_FILE."""
    if not yes:
        click.confirm("WARN This replaces all current data for this owner. Continue?", abort=True)

    with open(backup_file, "rb") as fh:
        raw = fh.read()

    try:
        summary = backup_service.import_backup(_store(owner_id), raw, current_app.config["BACKUP_DIR"])
    except ValidationFailed as e:
        click.echo(f"FAIL {e}")
        for problem in e.problems:
            click.echo(f"  - {problem}")
        raise SystemExit(1)
    except BackupError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(json.dumps(summary.to_dict(), indent=2))
    if summary.safety_backup:
        click.echo(f"PASS Safety backup: {os.path.join(current_app.config['BACKUP_DIR'], summary.safety_backup)}")
    click.echo("PASS Import complete.")


@click.group('reports')
def reports_group():
    """Profit and inventory reports."""


@reports_group.command('profit')
@owner_option
@click.option('--range', 'range_type', type=click.Choice(list(reporting_service.RANGE_TYPES)), default='today')
@click.option('--start', default=None, help='Custom range start (DD/MM/YYYY or YYYY-MM-DD)')
@click.option('--end', default=None, help='Custom range end (inclusive)')
@with_appcontext
def profit_report(owner_id, range_type, start, end):
    snapshot = reporting_service.load_snapshot(_store(owner_id))
    report = reporting_service.profit_report(
        snapshot,
        reporting_service.DateRange(type=range_type, start_date=start, end_date=end),
    )
    window = f"{report['start']} .. {report['end']}" if report["start"] else "all time"
    click.echo(f"Profit report ({range_type}: {window})")
    click.echo(f"  Sales:            {report['total_sales']}")
    click.echo(f"  Revenue:          {_money(report['total_sales_revenue_cents'])}")
    click.echo(f"  Purchase costs:   {_money(report['total_purchase_costs_cents'])}")
    click.echo(f"  Refunds:          {_money(report['total_refunds_cents'])}")
    click.echo(f"  Net profit:       {_money(report['net_profit_cents'])}")
    click.echo(f"  Avg profit/sale:  {_money(report['average_profit_per_sale_cents'])}")


@reports_group.command('inventory')
@owner_option
@with_appcontext
def inventory_report(owner_id):
    report = reporting_service.inventory_report(reporting_service.load_snapshot(_store(owner_id)))
    click.echo(f"In stock:     {report['current_stock_count']} (value {_money(report['current_stock_value_cents'])})")
    click.echo(f"Total phones: {report['total_phones']}")
    click.echo(f"Return rate:  {report['return_rate']}%")
    if report["best_selling_models"]:
        click.echo("Best sellers:")
        for entry in report["best_selling_models"]:
            click.echo(f"  {entry['model_name']:<24} {entry['sales_count']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(backup_group)
    app.cli.add_command(reports_group)
