# Overview: Flask CLI command groups for bootstrap, finances, reports and vaccination reminders.

# backend/poultrydesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent). Use `flask db upgrade` for migrated deployments.
#
# Users (each user is a tenant):
# - python -m flask users list
# - python -m flask users create --username farm1 --email farm1@example.com --password "Password123!"
#
# Finances:
# - python -m flask finances snapshot --user-id 1 --period month
#   Recompute and store the current period's snapshot for every flock with activity.
#
# Reports:
# - python -m flask reports generate --user-id 1 --kind sales --start 2026-01-01 --end 2026-02-01
#   Generate a PDF report (same pipeline as POST /api/reports/<kind>).
#
# Vaccinations:
# - python -m flask vaccinations remind --days 3
#   Remind owners of scheduled doses due within the lead time (each dose once).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user, AuthError
from .services import finance_service
from .services import report_service
from .services.periods import PERIOD_KINDS
from .services.report_service import ReportError, REPORT_KINDS
from .services.vaccination_service import send_due_reminders
from .validation import ValidationError, NotFoundError
from .time_utils import to_utc_z, format_cents


@click.group('system')
def system_group():
    """System bootstrap."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that don't exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('users')
def users_group():
    """User (tenant) management."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active'}")
    click.echo("=" * 70)
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {'yes' if user.is_active else 'no'}")
    click.echo("=" * 70 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--contact', default=None, help='Phone number')
@click.option('--admin', 'is_admin', is_flag=True, default=False, help='Grant admin (system announcements)')
@with_appcontext
def create_user_cli(username, email, password, contact, is_admin):
    try:
        user = create_user(username, email, password, contact=contact, is_admin=is_admin)
    except AuthError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.username} ({user.email}) ID: {user.id}")


@click.group('finances')
def finances_group():
    """Financial snapshots."""


@finances_group.command('snapshot')
@click.option('--user-id', type=int, required=True, help='Tenant (user) ID')
@click.option('--period', type=click.Choice(PERIOD_KINDS), default='month', show_default=True)
@with_appcontext
def snapshot_cli(user_id, period):
    """Recompute and store snapshots for the current period."""
    if db.session.get(User, user_id) is None:
        click.echo(f"FAIL User {user_id} not found")
        raise SystemExit(1)

    rows = finance_service.get_period_financials(user_id, period)
    if not rows:
        click.echo("No flock activity in this period.")
        return

    click.echo(f"{'Flock':<8} {'Revenue':>14} {'Expenses':>14} {'Net':>14} {'Margin':>8}")
    for row in rows:
        margin = f"{row.profit_margin:.1f}%" if row.profit_margin is not None else "-"
        click.echo(
            f"{row.flock_id:<8} {format_cents(row.total_revenue_cents):>14} "
            f"{format_cents(row.total_expenses_cents):>14} {format_cents(row.net_profit_cents):>14} {margin:>8}"
        )
    click.echo(f"PASS Stored {len(rows)} snapshots for period starting {to_utc_z(rows[0].period_start)}")


@click.group('reports')
def reports_group():
    """PDF reports."""


@reports_group.command('generate')
@click.option('--user-id', type=int, required=True, help='Tenant (user) ID')
@click.option('--kind', type=click.Choice(REPORT_KINDS), required=True)
@click.option('--start', required=True, help='ISO-8601 start (inclusive)')
@click.option('--end', required=True, help='ISO-8601 end (exclusive)')
@with_appcontext
def generate_report_cli(user_id, kind, start, end):
    try:
        report = report_service.generate_report(kind, user_id, start, end)
    except (ValidationError, NotFoundError, ReportError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Report {report.id} written to {report.file_path}")


@click.group('vaccinations')
def vaccinations_group():
    """Vaccination schedule."""


@vaccinations_group.command('remind')
@click.option('--days', type=int, default=None, help='Lead time in days (default: VACCINATION_REMINDER_DAYS)')
@with_appcontext
def remind_cli(days):
    """Notify owners of scheduled doses coming up. Safe to run repeatedly."""
    sent = send_due_reminders(lead_days=days)
    click.echo(f"PASS Sent {sent} vaccination reminders")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(finances_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(vaccinations_group)
