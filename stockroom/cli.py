# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# stockroom/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "stockroom:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-username admin --admin-password "Password123!"]
#   Create all tables; optionally create the first admin account.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role, lockout state and active status.
# - python -m flask users create --username alice --password "Password123!" --role staff
#   Create a user with an explicit role.
# - python -m flask users unlock alice
#   Clear a locked-out account's failed attempts and cooldown.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired sessions.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import ROLES
from .services import auth_service, session_service
from .services.login_throttle_service import remaining_cooldown, clear_lockout


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-username', default=None, help='Create this admin account if missing')
@click.option('--admin-password', default=None, help='Password for the admin account')
@with_appcontext
def init_system(admin_username, admin_password):
    """Create tables and, optionally, the first admin account."""
    click.echo("START Initializing stockroom...")
    db.create_all()
    click.echo("PASS Tables created")

    if not admin_username:
        return

    if auth_service.find_user_by_username(admin_username):
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
        return

    if not admin_password:
        admin_password = click.prompt("Admin password", hide_input=True, confirmation_prompt=True)

    try:
        user = auth_service.create_user(admin_username, admin_password, "admin")
    except ServiceError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created admin user: {user.username}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = auth_service.list_accounts()
    if not users:
        click.echo("No users.")
        return
    for user in users:
        locked = remaining_cooldown(user)
        lock_note = f" LOCKED {locked}s" if locked else ""
        status = "active" if user.is_active else "inactive"
        click.echo(
            f"{user.id:>4}  {user.username:<24} {user.role:<9} {status:<8} "
            f"attempts={user.login_attempts}{lock_note}"
        )


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default='staff', show_default=True)
@with_appcontext
def create_user_command(username, password, role):
    try:
        user = auth_service.create_user(username, password, role)
    except ServiceError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")


@users_group.command('unlock')
@click.argument('username')
@with_appcontext
def unlock_user(username):
    """Clear a user's failed-login counter and cooldown."""
    user = auth_service.find_user_by_username(username)
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    clear_lockout(user)
    click.echo(f"PASS Unlocked {user.username}")


@click.group('maintenance')
def maintenance_group():
    """Periodic housekeeping."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired session(s)")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
