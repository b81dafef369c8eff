# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands (run from the backend directory with FLASK_APP=wsgi.py):
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin] [--admin-password ...]
#   Create tables and a default ADMIN user (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username ana --password "Password123" --role USER
#
# Pricing:
# - python -m flask pricing recalculate
#   Recompute suggested prices for every active product.
#
# Stock:
# - python -m flask stock low [--limit 20]
#   Print products at or below their low-stock level.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import ROLES, User
from .services.auth_service import create_user
from .services import products_service, stock_service
from .validation import ConflictError, ValidationError

DEFAULT_ADMIN_PASSWORD = "Password123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Username of the default admin')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Password of the default admin')
@with_appcontext
def init_system(admin_username, admin_password):
    """
    Create all tables and a default ADMIN user if none exists.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing system...")
    db.create_all()
    click.echo("PASS Tables ready")

    if db.session.query(User).filter_by(role="ADMIN").first():
        click.echo("PASS Admin user already exists")
        return

    try:
        user = create_user(username=admin_username, password=admin_password, role="ADMIN")
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Could not create admin user: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin user: {user.username} (ID: {user.id})")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES), case_sensitive=False), default='USER', help='Role')
@with_appcontext
def create_user_cli(username, password, role):
    """
    Create a new user.

    Password must be 8+ characters with an uppercase letter, a lowercase
    letter and a digit.
    """
    try:
        user = create_user(username=username, password=password, role=role)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Username':<25} {'Role':<8} {'Active'}")
    click.echo("="*60)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<25} {user.role:<8} {active_str}")
    click.echo("="*60 + "\n")


@click.group('pricing')
def pricing_group():
    """Product pricing maintenance."""


@pricing_group.command('recalculate')
@with_appcontext
def recalculate_prices_cli():
    result = products_service.recalculate_all_prices()
    click.echo(
        f"PASS Processed {result['total_products']} products: "
        f"{result['updated_products']} updated, {result['skipped_products']} unchanged, "
        f"{result['failed_products']} failed"
    )
    for code in result["failed_product_codes"]:
        click.echo(f"FAIL {code}")


@click.group('stock')
def stock_group():
    """Stock inspection."""


@stock_group.command('low')
@click.option('--limit', type=int, default=None, help='Maximum number of products to list')
@with_appcontext
def low_stock_cli(limit):
    products = stock_service.low_stock_products(limit)
    if not products:
        click.echo("No products at or below their low-stock level.")
        return

    click.echo(f"{'Code':<16} {'Name':<30} {'Stock':>6} {'Alert':>6} {'Status'}")
    for product in products:
        alert = stock_service.stock_alert_dict(product)
        click.echo(
            f"{alert['product_code']:<16} {alert['product_name'][:30]:<30} "
            f"{alert['current_stock']:>6} {alert['low_stock_alert']:>6} {alert['status']}"
        )


def register_commands(app):
    """Register CLI command groups with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(pricing_group)
    app.cli.add_command(stock_group)
