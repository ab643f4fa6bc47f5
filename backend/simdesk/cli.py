# Overview: Flask CLI command groups for bootstrap, inspection, and reports.

# backend/simdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (existing data is kept).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email staff@example.com --password "Password123!"
#
# Derived views (read straight from the database, no sign-in needed):
# - python -m flask stats inventory
# - python -m flask stats orders [--open-only]
# - python -m flask stats customers
#
# Reports:
# - python -m flask reports debt-reminder
#   Print this week's debt reminder, ready to paste into a chat.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, reporting_service, stats_service
from .services.auth_service import PasswordValidationError
from .services.app_store import get_app_store
from .time_utils import today


def _loaded_store():
    store = get_app_store()
    if not store.reload():
        raise click.ClickException("Could not load data from the database (see log)")
    return store


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add a login.")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Email':<40} {'Active':<8} {'Last login'}")
    for user in users:
        last_login = user.last_login_at.isoformat() if user.last_login_at else "never"
        click.echo(f"{user.id:<5} {user.email:<40} {'Yes' if user.is_active else 'No':<8} {last_login}")


@users_group.command('create')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user(email, password):
    """Create a login."""
    try:
        user = auth_service.sign_up(email, password)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password rejected: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@click.group('stats')
def stats_group():
    """Print the derived statistics."""


@stats_group.command('inventory')
@with_appcontext
def stats_inventory():
    """Stock per SIM type."""
    store = _loaded_store()
    rows = stats_service.inventory_stats(store)
    if not rows:
        click.echo("No SIM types.")
        return

    click.echo(f"{'Type':<30} {'Imported':>10} {'Sold':>10} {'Stock':>10} {'Avg cost':>14}  Status")
    for row in rows:
        click.echo(
            f"{row.name:<30} {row.total_imported:>10} {row.total_sold:>10} "
            f"{row.current_stock:>10} {row.weighted_avg_cost:>14,}  {row.status}"
        )


@stats_group.command('orders')
@click.option('--open-only', is_flag=True, help='Only orders with money outstanding')
@with_appcontext
def stats_orders(open_only):
    """Orders with totals, profit and debt state."""
    store = _loaded_store()
    orders = stats_service.derive(store).orders
    if open_only:
        orders = reporting_service.pending_orders(orders)
    if not orders:
        click.echo("No orders.")
        return

    for o in orders:
        click.echo(
            f"{o.order.code:<10} {reporting_service.format_date(o.date):<11} {o.customer_name:<25} "
            f"{reporting_service.format_currency(o.total_amount):>18} "
            f"remaining {reporting_service.format_currency(o.remaining):>18} "
            f"{o.status:<8} {o.debt_level}"
        )


@stats_group.command('customers')
@with_appcontext
def stats_customers():
    """Per-customer GMV, debt and worst debt level."""
    store = _loaded_store()
    customers = stats_service.derive(store).customers
    if not customers:
        click.echo("No customers.")
        return

    for c in customers:
        click.echo(
            f"{c.customer.customer_code:<10} {c.customer.name:<30} "
            f"GMV {reporting_service.format_currency(c.gmv):>18} "
            f"debt {reporting_service.format_currency(c.current_debt):>18} "
            f"next due {reporting_service.format_date(c.next_due_date):<11} {c.worst_debt_level}"
        )


@click.group('reports')
def reports_group():
    """Text reports."""


@reports_group.command('debt-reminder')
@with_appcontext
def debt_reminder():
    store = _loaded_store()
    orders = stats_service.derive(store).orders
    click.echo(reporting_service.debt_reminder_message(orders, store.customers, today()))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stats_group)
    app.cli.add_command(reports_group)
