# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cuemaster/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--hall HALL-1] [--admin-id admin]
#   Idempotent bootstrap: creates tables, seeds an admin in the global
#   registry and default settings for the hall.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Staff registry:
# - python -m flask users list
# - python -m flask users create --id s1 --username sara --role STAFF --hall HALL-1
#
# Snapshot inspection:
# - python -m flask snapshots list [--hall HALL-1]
# - python -m flask snapshots show HALL-1 transactions
#
# Reports:
# - python -m flask audit leaks --hall HALL-1 [--date 2024-05-01]
# - python -m flask debts list --hall HALL-1 [--name ali]

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import HallSettings, StaffUser
from .models.staff import ROLE_ADMIN, VALID_ROLES
from .services import audit_service, debt_service
from .services.hall_data import (
    SETTINGS,
    business_clock,
    get_registry,
    hall_data,
    load_users,
    save_users,
)
from .time_utils import business_date_for, ms_to_utc_z, now_ms, parse_business_date


def _flush():
    get_registry().flush_all()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--hall', 'hall_id', default='HALL-1', show_default=True, help='Hall to seed default settings for')
@click.option('--admin-id', default='admin', show_default=True, help='Staff id of the seeded admin')
@click.option('--admin-name', default='admin', show_default=True, help='Username of the seeded admin')
@with_appcontext
def init_system(hall_id, admin_id, admin_name):
    """
    Create tables, seed the global staff registry and hall settings.

    Safe to re-run: existing staff and settings are left alone.
    """
    click.echo("START Initializing CueMaster...")

    db.create_all()
    click.echo("PASS Tables created")

    users = load_users()
    if any(u.id == admin_id for u in users):
        click.echo(f"WARN  Staff '{admin_id}' already exists, skipping...")
    else:
        users.append(StaffUser(id=admin_id, username=admin_name, role=ROLE_ADMIN, hall_id=hall_id))
        save_users(users)
        click.echo(f"PASS Created admin '{admin_name}' (id: {admin_id}) for hall {hall_id}")

    data = hall_data(hall_id)
    if data.sync.get(SETTINGS) is None:
        data.save_settings(HallSettings(price_per_game=current_app.config.get("DEFAULT_PRICE_PER_GAME", 1000)))
        click.echo(f"PASS Default settings written for hall {hall_id}")
    else:
        click.echo(f"WARN  Hall {hall_id} already has settings, skipping...")

    _flush()
    click.echo("DONE CueMaster initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL snapshots. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """Global staff registry commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = load_users()
    if not users:
        click.echo("No staff registered.")
        return
    for u in users:
        click.echo(f"{u.id:<12} {u.username:<20} {u.role:<8} hall={u.hall_id or '-':<10} {u.status}")


@users_group.command('create')
@click.option('--id', 'user_id', required=True, help='Staff id (sent as X-Staff-Id)')
@click.option('--username', required=True, help='Display name')
@click.option('--role', type=click.Choice(VALID_ROLES), default='STAFF', show_default=True)
@click.option('--hall', 'hall_id', help='Hall the staff member works in')
@with_appcontext
def create_user_cli(user_id, username, role, hall_id):
    users = load_users()
    if any(u.id == user_id for u in users):
        raise click.ClickException(f"Staff '{user_id}' already exists")
    users.append(StaffUser(id=user_id, username=username, role=role, hall_id=hall_id))
    save_users(users)
    _flush()
    click.echo(f"PASS Created {role} '{username}' (id: {user_id})")


@click.group('snapshots')
def snapshots_group():
    """Collection snapshot inspection."""


@snapshots_group.command('list')
@click.option('--hall', 'hall_id', help='Only this hall')
@with_appcontext
def list_snapshots(hall_id):
    rows = get_registry().store.list_snapshots(hall_id)
    if not rows:
        click.echo("No snapshots.")
        return
    for row in rows:
        size = len(row.data) if isinstance(row.data, (list, dict)) else 0
        click.echo(f"{row.hall_id:<12} {row.collection:<14} v{row.version:<5} items={size:<5} by={row.written_by or '-'}")


@snapshots_group.command('show')
@click.argument('hall_id')
@click.argument('collection')
@with_appcontext
def show_snapshot(hall_id, collection):
    data, version = get_registry().store.read_collection(collection, hall_id)
    if not version:
        raise click.ClickException(f"No snapshot for {hall_id}/{collection}")
    click.echo(f"# {hall_id}/{collection} v{version}")
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group('audit')
def audit_group():
    """Table audit reports."""


@audit_group.command('leaks')
@click.option('--hall', 'hall_id', required=True, help='Hall id')
@click.option('--date', 'day', help='Business date YYYY-MM-DD (default: current business day)')
@with_appcontext
def audit_leaks(hall_id, day):
    tz, start_hour = business_clock()
    try:
        business_day = parse_business_date(day) or business_date_for(now_ms(), tz, start_hour)
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD")

    data = hall_data(hall_id)
    payload = audit_service.audit_day(data.load_transactions(), data.load_settings(), business_day, tz=tz, start_hour=start_hour)

    click.echo(f"Leak estimate for {hall_id} on {payload['date']} (heuristic)")
    click.echo(f"{'Table':<6} {'Games':>6} {'Idle min':>9} {'Missing':>8} {'Loss':>10} {'Eff%':>5}")
    for row in payload["leaks"]:
        click.echo(
            f"{row['tableNumber']:<6} {row['recordedGames']:>6} {row['totalIdleMinutes']:>9} "
            f"{row['estimatedMissingGames']:>8} {row['estimatedLoss']:>10} {row['efficiency']:>5}"
        )
    click.echo(f"Total estimated loss: {payload['totalEstimatedLoss']} IQD")


@click.group('debts')
def debts_group():
    """Outstanding debt inspection."""


@debts_group.command('list')
@click.option('--hall', 'hall_id', required=True, help='Hall id')
@click.option('--name', help='Filter by player name')
@with_appcontext
def list_debts(hall_id, name):
    transactions = hall_data(hall_id).load_transactions()
    groups = debt_service.group_debts(transactions, name)
    if not groups:
        click.echo("No outstanding debts.")
        return
    for group in groups:
        click.echo(f"{group.player_name}: {group.total_amount} IQD")
        for item in group.items:
            click.echo(f"    {item['id']}  {ms_to_utc_z(item['timestamp'])}  {item['amount']}")
    click.echo(f"Total outstanding: {debt_service.total_outstanding(transactions)} IQD")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(snapshots_group)
    app.cli.add_command(audit_group)
    app.cli.add_command(debts_group)
