# Overview: Flask CLI command groups for bootstrap, shift closing, and backups.

# backend/dealership/cli.py
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
# - python -m flask system seed
#   Load the starting parts catalog and technicians (idempotent).
#
# Staff accounts:
# - python -m flask users list
# - python -m flask users create --username admin --email admin@shop.local --name "Shop Admin" --role SUPER_ADMIN
#   Prompts for the password if --password is omitted.
#
# Shift closing:
# - python -m flask shift close
#   Archive the open business day now (manual close).
# - python -m flask shift auto-close
#   Archive the previous day only if the date has rolled over (for cron).
# - python -m flask shift reports --limit 10
#
# Backups:
# - python -m flask snapshot export backup.json
# - python -m flask snapshot import backup.json --yes
#
# Inventory:
# - python -m flask inventory audit-export audit.xlsx

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import USER_ROLES
from .seed import seed_defaults
from .services import closing_service, inventory_service, personnel_service, snapshot_service
from .services.snapshot_service import SnapshotError
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' to load starting data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Load the starting parts catalog and technicians."""
    created = seed_defaults()
    click.echo(f"PASS Seeded {created['parts']} parts and {created['technicians']} technicians.")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all staff accounts."""
    users = personnel_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'Username':<20} {'Name':<25} {'Email':<30} {'Role':<12} {'Active'}")
    click.echo("=" * 90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.username:<20} {user.name:<25} {user.email:<30} {user.role:<12} {active_str}")
    click.echo("=" * 90 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(USER_ROLES), default='USER', show_default=True)
@with_appcontext
def create_user(username, email, name, password, role):
    """Create a staff account."""
    try:
        user = personnel_service.create_user(
            name=name,
            email=email,
            username=username,
            password=password,
            role=role,
        )
    except ValidationError as e:
        raise click.ClickException("; ".join(e.messages))
    except ConflictError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created {user.role} account '{user.username}'.")


@click.group('shift')
def shift_group():
    """Business day closing commands."""


def _echo_report(report):
    click.echo(
        f"  {report.business_date.isoformat()}  gross={report.gross_revenue}  "
        f"sales={report.total_sales} ({report.sales_count})  "
        f"workshop={report.total_workshop} ({report.jobs_count})  "
        f"parts={report.parts_sold_volume}  [{report.trigger}]"
    )


@shift_group.command('close')
@click.option('--by', 'closed_by', default=None, help='Name recorded on the report')
@with_appcontext
def close_shift(closed_by):
    """Archive the open business day now."""
    report = closing_service.close_day("manual", closed_by=closed_by)
    click.echo("PASS Day closed:")
    _echo_report(report)


@shift_group.command('auto-close')
@with_appcontext
def auto_close():
    """Archive the previous business day if the date has changed."""
    report = closing_service.auto_close_if_due()
    if report is None:
        click.echo("Nothing to close: the open business day is today.")
        return
    click.echo("PASS Previous day archived:")
    _echo_report(report)


@shift_group.command('reports')
@click.option('--limit', type=int, default=10, show_default=True)
@with_appcontext
def list_reports(limit):
    """List archived daily reports, newest first."""
    reports = closing_service.list_reports(limit)
    if not reports:
        click.echo("No reports yet.")
        return
    for report in reports:
        _echo_report(report)


@click.group('snapshot')
def snapshot_group():
    """Backup and restore commands."""


@snapshot_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_snapshot(path):
    """Write every collection to a JSON file."""
    data = snapshot_service.export_snapshot()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
    click.echo(f"PASS Snapshot written to {path}")


@snapshot_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_snapshot(path, yes):
    """Replace all data with a JSON snapshot."""
    if not yes:
        click.confirm("WARN This will REPLACE ALL DATA. Are you sure?", abort=True)

    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Not a JSON file: {e}")

    try:
        counts = snapshot_service.import_snapshot(data)
    except SnapshotError as e:
        raise click.ClickException(str(e))

    summary = ", ".join(f"{key}={count}" for key, count in counts.items())
    click.echo(f"PASS Snapshot restored: {summary}")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('audit-export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def audit_export(path):
    """Write the stock and ledger workbook (.xlsx)."""
    content = inventory_service.export_inventory_audit()
    with open(path, "wb") as fh:
        fh.write(content)
    click.echo(f"PASS Audit workbook written to {path}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(shift_group)
    app.cli.add_command(snapshot_group)
    app.cli.add_command(inventory_group)
