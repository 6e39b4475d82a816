# Overview: Flask CLI command groups for bootstrap and user management.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Org Name"] [--email owner@shop.ma --password "..."]
#   Idempotent bootstrap: organization, super admin user and default settings.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--org-id 1]
# - python -m flask users create --org-id 1 --email staff@shop.ma --password "..." --role STAFF

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, User
from .models.auth import ROLES, ROLE_SUPER_ADMIN
from .services import settings_service
from .services.auth_service import AuthError, PasswordValidationError, create_user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization join code')
@click.option('--email', default='admin@stockroom.local', help='Super admin email')
@click.option('--password', default='Password123!', help='Super admin password')
@with_appcontext
def init_system(org_name, org_code, email, password):
    """
    Initialize an organization, its super admin and default settings.

    SECURITY: Change the default password immediately outside development!
    """
    click.echo("START Initializing stockroom...")

    db.create_all()

    org = db.session.query(Organization).filter_by(code=org_code.upper()).first()
    if not org:
        org = Organization(name=org_name, code=org_code.upper(), is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    existing = db.session.query(User).filter_by(email=email.lower()).first()
    if existing:
        click.echo(f"PASS User already exists: {existing.email}")
    else:
        try:
            user = create_user(
                email=email,
                password=password,
                org_id=org.id,
                full_name="Administrator",
                role=ROLE_SUPER_ADMIN,
            )
        except (AuthError, PasswordValidationError) as e:
            raise click.ClickException(f"Failed to create admin: {e}")
        click.echo(f"PASS Created super admin: {user.email}")

    added = settings_service.seed_defaults(org.id)
    click.echo(f"PASS Default settings ({added} added)")
    click.echo("DONE")


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
@click.option('--org-id', type=int, help='Organization ID (uses the first one if not specified)')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(org_id, email, full_name, password, role):
    """
    Create an active user.

    Password must be 8+ chars with uppercase, lowercase, digit and special char.
    """
    if org_id:
        org = db.session.query(Organization).filter_by(id=org_id).first()
        if not org:
            raise click.ClickException(f"Organization ID {org_id} not found")
    else:
        org = db.session.query(Organization).order_by(Organization.id.asc()).first()
        if not org:
            raise click.ClickException("No organization found. Run 'python -m flask system init' first.")

    try:
        user = create_user(email=email, password=password, org_id=org.id, full_name=full_name, role=role)
    except PasswordValidationError as e:
        raise click.ClickException(
            f"Password validation failed: {e}. Requirements: 8+ chars, uppercase, lowercase, digit, special char"
        )
    except AuthError as e:
        raise click.ClickException(f"Failed to create user: {e}")

    click.echo(f"PASS Created user: {user.email} with role '{role}'")
    click.echo(f"     Organization: {org.name} (ID: {org.id})")


@users_group.command('list')
@click.option('--org-id', type=int, help='Filter by organization ID')
@with_appcontext
def list_users_cli(org_id):
    """List users with their role and status."""
    query = db.session.query(User)
    if org_id:
        query = query.filter_by(org_id=org_id)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Org':<5} {'Email':<35} {'Role':<12} {'Active'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.org_id:<5} {user.email:<35} {user.role:<12} {user.is_active}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
