# Overview: Flask CLI command groups for bootstrap, accounts, catalog, budgets and maintenance.

# backend/pantry/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and a default admin account if none exists (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask employees create --code EMP001 --email jane@corp.local --first-name Jane --last-name Doe --department Engineering --position Developer
#   Create an account (prompts for the PIN of employee accounts).
# - python -m flask employees list [--all]
#   List employees with their budgets.
# - python -m flask employees set-pin EMP001
#   Replace an employee's PIN without the current one (admin reset).
#
# Catalog:
# - python -m flask products seed
#   Insert the starter catalog when the products table is empty.
# - python -m flask products list [--all]
#   List products (use --all to include unavailable ones).
#
# Budgets:
# - python -m flask budgets reset-cycle --yes
#   Start a new monthly cycle: current spend back to zero for every active employee.
# - python -m flask budgets adjust EMP001 --limit 1500.00
# - python -m flask budgets adjust EMP001 --top-up 200.00
#   Set or raise an employee's monthly limit.
#
# Reconciliation:
# - python -m flask reconcile list [--all]
#   Show orders whose budget debit or history write is still pending.
# - python -m flask reconcile resolve 3 --note "re-applied after outage"
#   Re-apply the missing write for one item.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import PantryError
from .models import Employee, Product
from .models.employees import USER_TYPE_ADMIN, USER_TYPE_EMPLOYEE, USER_TYPES
from .models.reconciliation import ITEM_OPEN
from .money import format_cents, to_cents
from .services import (
    catalog_service,
    employee_service,
    maintenance_service,
    pin_service,
    reconciliation_service,
)


STARTER_PRODUCTS = [
    {"name": "Organic Apples", "category": "Fruits", "price": "4.99", "description": "Fresh organic red apples", "stock_quantity": 50},
    {"name": "Greek Yogurt", "category": "Dairy", "price": "1.75", "description": "Plain Greek yogurt, high protein", "stock_quantity": 30},
    {"name": "Whole Grain Bread", "category": "Bakery", "price": "3.25", "description": "100% whole grain bread", "stock_quantity": 25},
    {"name": "Coffee Beans", "category": "Beverages", "price": "12.99", "description": "Premium dark roast coffee beans", "stock_quantity": 40},
    {"name": "Mixed Nuts", "category": "Snacks", "price": "8.75", "description": "Assorted mixed nuts", "stock_quantity": 35},
    {"name": "Sparkling Water", "category": "Beverages", "price": "0.99", "description": "Natural sparkling water", "stock_quantity": 100},
    {"name": "Bananas", "category": "Fruits", "price": "2.50", "description": "Fresh yellow bananas", "stock_quantity": 60},
    {"name": "Protein Bars", "category": "Snacks", "price": "1.50", "description": "Chocolate protein bars", "stock_quantity": 45},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-code', default='ADMIN', help='Employee code of the default admin')
@click.option('--admin-email', default='admin@pantry.local', help='Email of the default admin')
@with_appcontext
def init_system(admin_code, admin_email):
    """
    Create all tables and a default admin account.

    Safe to run repeatedly: existing tables and accounts are left alone.
    """
    click.echo("START Initializing pantry...")
    db.create_all()
    click.echo("PASS Tables ready")

    admin = db.session.query(Employee).filter_by(user_type=USER_TYPE_ADMIN).first()
    if admin:
        click.echo(f"PASS Using existing admin: {admin.employee_code}")
        return

    admin = employee_service.create_employee(
        employee_code=admin_code,
        email=admin_email,
        first_name="Pantry",
        last_name="Admin",
        user_type=USER_TYPE_ADMIN,
    )
    click.echo(f"PASS Created admin: {admin.employee_code} ({admin.email})")


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


@click.group('employees')
def employees_group():
    """Account management commands."""


@employees_group.command('create')
@click.option('--code', 'employee_code', prompt=True, help='Employee code, e.g. EMP001')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--type', 'user_type', type=click.Choice(sorted(USER_TYPES)), default=USER_TYPE_EMPLOYEE, show_default=True)
@click.option('--department', help='Required for employees')
@click.option('--position', help='Required for employees')
@click.option('--location')
@click.option('--limit', 'monthly_limit', help='Monthly limit, e.g. 1000.00 (defaults to DEFAULT_MONTHLY_LIMIT_CENTS)')
@with_appcontext
def create_employee_cli(employee_code, email, first_name, last_name, user_type, department, position, location, monthly_limit):
    """Create an account. Employee accounts are prompted for a 4-digit PIN."""
    pin = None
    if user_type == USER_TYPE_EMPLOYEE:
        pin = click.prompt("PIN", hide_input=True, confirmation_prompt=True)

    try:
        employee = employee_service.create_employee(
            employee_code=employee_code,
            email=email,
            first_name=first_name,
            last_name=last_name,
            user_type=user_type,
            pin=pin,
            department=department,
            position=position,
            location=location,
            monthly_limit_cents=to_cents(monthly_limit, "limit") if monthly_limit else None,
        )
    except PantryError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created {employee.user_type} {employee.employee_code} ({employee.full_name})")


@employees_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive employees')
@with_appcontext
def list_employees_cli(include_inactive):
    """List employees with their current budget."""
    employees = employee_service.list_employees(include_inactive=include_inactive)

    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'Code':<12} {'Name':<28} {'Department':<20} {'Active':<8} {'Spent':>10} {'Limit':>10}")
    click.echo("="*100)

    for e in employees:
        active_str = "Yes" if e.is_active else "No"
        click.echo(
            f"{e.employee_code:<12} {e.full_name:<28} {(e.department or '-'):<20} {active_str:<8} "
            f"{format_cents(e.current_spent_cents):>10} {format_cents(e.monthly_limit_cents):>10}"
        )

    click.echo("="*100 + "\n")


@employees_group.command('set-pin')
@click.argument('employee_code')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='New 4-digit PIN')
@with_appcontext
def set_pin_cli(employee_code, pin):
    """Admin PIN reset: no current PIN required."""
    try:
        employee = employee_service.require_employee(employee_code)
        employee.secret_pin_hash = pin_service.hash_pin(pin)
    except PantryError as e:
        raise click.ClickException(e.message)

    db.session.commit()
    click.echo(f"PASS PIN updated for {employee.employee_code}")


@click.group('products')
def products_group():
    """Catalog commands."""


@products_group.command('seed')
@with_appcontext
def seed_products_cli():
    """Insert the starter catalog if no products exist yet."""
    if db.session.query(Product).count():
        click.echo("SKIP Products already exist; nothing seeded.")
        return

    for payload in STARTER_PRODUCTS:
        catalog_service.create_product(payload)
    click.echo(f"PASS Seeded {len(STARTER_PRODUCTS)} products")


@products_group.command('list')
@click.option('--all', 'include_unavailable', is_flag=True, help='Include unavailable products')
@with_appcontext
def list_products_cli(include_unavailable):
    products = catalog_service.list_products(include_unavailable=include_unavailable)

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Category':<12} {'Price':>10} {'Available':<10}")
    for p in products:
        click.echo(
            f"{p.id:<5} {p.name:<30} {p.category:<12} {format_cents(p.price_cents):>10} "
            f"{'Yes' if p.is_available else 'No':<10}"
        )


@click.group('budgets')
def budgets_group():
    """Monthly budget commands."""


@budgets_group.command('reset-cycle')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_cycle_cli(yes):
    """Set current spend to zero for every active employee."""
    if not yes:
        click.confirm("WARN This resets current spend for ALL employees. Continue?", abort=True)

    count = maintenance_service.reset_budget_cycle()
    click.echo(f"PASS Budget cycle reset for {count} employees")


@budgets_group.command('adjust')
@click.argument('employee_code')
@click.option('--limit', 'monthly_limit', help='New monthly limit, e.g. 1500.00')
@click.option('--top-up', help='Amount to add to the monthly limit')
@with_appcontext
def adjust_budget_cli(employee_code, monthly_limit, top_up):
    if bool(monthly_limit) == bool(top_up):
        raise click.UsageError("Provide exactly one of --limit or --top-up")

    try:
        if monthly_limit:
            employee = employee_service.update_monthly_limit(employee_code, to_cents(monthly_limit, "limit"))
        else:
            employee = employee_service.top_up_budget(employee_code, to_cents(top_up, "top_up"))
    except PantryError as e:
        raise click.ClickException(e.message)

    click.echo(
        f"PASS {employee.employee_code}: limit {format_cents(employee.monthly_limit_cents)}, "
        f"spent {format_cents(employee.current_spent_cents)}, "
        f"remaining {format_cents(employee.remaining_cents)}"
    )


@click.group('reconcile')
def reconcile_group():
    """Post-commit reconciliation queue."""


@reconcile_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include resolved items')
@with_appcontext
def list_reconciliation_cli(show_all):
    items = reconciliation_service.list_items(None if show_all else ITEM_OPEN)

    if not items:
        click.echo("No reconciliation items.")
        return

    click.echo(f"{'ID':<5} {'Order':<32} {'Stage':<16} {'Amount':>10} {'Status':<10} Reason")
    for item in items:
        click.echo(
            f"{item.id:<5} {item.order.order_number:<32} {item.stage:<16} "
            f"{format_cents(item.amount_cents):>10} {item.status:<10} {item.reason or ''}"
        )


@reconcile_group.command('resolve')
@click.argument('item_id', type=int)
@click.option('--note', help='Resolution note')
@with_appcontext
def resolve_reconciliation_cli(item_id, note):
    try:
        item = reconciliation_service.resolve_item(item_id, note=note)
    except PantryError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Item {item.id} resolved ({item.stage})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(products_group)
    app.cli.add_command(budgets_group)
    app.cli.add_command(reconcile_group)
    app.cli.add_command(maintenance_group)
