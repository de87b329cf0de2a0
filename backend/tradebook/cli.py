# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tradebook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates all tables and the default admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Ali" --email ali@tradebook.local --password "Password123!" --role employee
#   Create a user (prompts if options are omitted).
#
# Invoice maintenance:
# - python -m flask invoices refresh-status
#   Re-derive stored status (paid/partially_paid/unpaid/overdue) for every
#   sale and dual-currency invoice. Overdue depends on today's date, so run daily.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLE_ADMIN, VALID_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import dual_currency_service, sales_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default='admin@tradebook.local', help='Admin email')
@click.option('--password', default='Password123!', help='Admin password')
@with_appcontext
def init_system(email, password):
    """
    Initialize Tradebook: schema and a default admin user.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing Tradebook...")

    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(email=email.lower()).first()
    if existing:
        click.echo(f"WARN  User '{email}' already exists, skipping...")
    else:
        try:
            user = create_user(name="Administrator", email=email, password=password, role=ROLE_ADMIN)
            click.echo(f"PASS Created admin user: {user.email} (ID: {user.id})")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            return

    click.echo("\n" + "="*60)
    click.echo("DONE Tradebook Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   admin -> {email}")
    click.echo("")


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


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<24} {'Email':<32} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<24} {user.email:<32} {active_str:<8} {user.role}")

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@click.option('--department', default=None, help='Department')
@click.option('--position', default=None, help='Position')
@with_appcontext
def create_user_cli(name, email, password, role, department, position):
    """
    Create a new user interactively.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            name=name,
            email=email,
            password=password,
            role=role,
            department=department,
            position=position,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


# =============================================================================
# INVOICE MAINTENANCE COMMANDS
# =============================================================================

@click.group('invoices')
def invoices_group():
    """Invoice maintenance commands."""


@invoices_group.command('refresh-status')
@with_appcontext
def refresh_status():
    """Re-derive the stored status of every invoice from today's date."""
    sales_changed = sales_service.refresh_statuses()
    click.echo(f"PASS Sales invoices updated: {sales_changed}")

    dual_changed = dual_currency_service.refresh_statuses()
    click.echo(f"PASS Dual-currency invoices updated: {dual_changed}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(invoices_group)
