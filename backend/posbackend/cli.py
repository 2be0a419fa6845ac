# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/posbackend/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "posbackend:create_app" (PowerShell: $env:FLASK_APP="posbackend:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: default store plus one user per role.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username boss --email boss@pos.local --password "Password123!" --role management
#
# Capabilities:
# - python -m flask perms list --role supervisor
#
# Currency:
# - python -m flask currency sync
#   Pull rates from CURRENCY_API_URL (pinned manual rates are kept).
#
# Stock:
# - python -m flask stock snapshot --kind day_start --store-id 1
#   Record a day-start/day-end snapshot of current quantities.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions past the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import POSError
from .models import ROLES, ROLE_MANAGEMENT, ROLE_POS_USER, ROLE_SUPERVISOR, SNAPSHOT_KINDS, Store, User
from .permissions import PERMISSION_DEFINITIONS, ROLE_CAPABILITIES, get_permissions_by_category
from .services import currency_service, session_service, stock_service, user_service
from .validation import ConflictError, ValidationError
from posbackend.time_utils import to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--store', 'store_name', default='Main Store', help='Default store name')
@with_appcontext
def init_system(store_name):
    """
    Initialize the POS backend: tables, a default store and default users.

    Creates:
    - Default store (if none exists)
    - Users: admin (management), supervisor (supervisor), till (pos_user, PIN 1234)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing POS backend...")
    db.create_all()

    store = db.session.query(Store).order_by(Store.id.asc()).first()
    if not store:
        store = Store(name=store_name, is_active=True)
        db.session.add(store)
        db.session.commit()
        click.echo(f"PASS Created default store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    default_password = "Password123!"
    default_users = [
        ("admin", "admin@pos.local", ROLE_MANAGEMENT, None),
        ("supervisor", "supervisor@pos.local", ROLE_SUPERVISOR, None),
        ("till", "till@pos.local", ROLE_POS_USER, "1234"),
    ]

    click.echo("\nUSERS Creating default users...")
    for username, email, role, pin in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            user_service.create_user(
                username=username,
                password=default_password,
                role=role,
                email=email,
                pin=pin,
                store_ids=[store.id],
            )
            click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
        except (ValidationError, ConflictError, POSError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {e}")

    click.echo("\n" + "="*60)
    click.echo("DONE POS backend initialized")
    click.echo("="*60)
    click.echo(f"\nStore: {store.name} (ID: {store.id})")
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin      / Password123!")
    click.echo("   supervisor / Password123!")
    click.echo("   till       / Password123!  (PIN 1234)")
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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and stores."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<12} {'Active':<8} {'PIN':<5} {'Stores'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        pin_str = "Yes" if user.pin_hash else "No"
        stores_str = ", ".join(s.name for s in user.stores) or "none"
        click.echo(
            f"{user.id:<5} {user.username:<20} {(user.email or '-'):<30} {user.role:<12} "
            f"{active_str:<8} {pin_str:<5} {stores_str}"
        )

    click.echo("="*100 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--pin', default=None, help='Optional till PIN (4-6 digits)')
@click.option('--store-id', 'store_ids', type=int, multiple=True, help='Store assignment (repeatable)')
@with_appcontext
def create_user_cli(username, email, password, role, pin, store_ids):
    """
    Create a new user.

    Example:
        flask users create --username boss --email boss@pos.local --role management
    """
    try:
        user = user_service.create_user(
            username=username,
            password=password,
            role=role,
            email=email,
            pin=pin,
            store_ids=list(store_ids),
        )
    except (ValidationError, ConflictError, POSError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('perms')
def perms_group():
    """Capability inspection."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Only capabilities granted to this role')
@click.option('--category', default=None, help='Only capabilities in this category (e.g. PRICING)')
@with_appcontext
def list_permissions_cli(role, category):
    """List capabilities with the roles that hold them."""
    definitions = get_permissions_by_category(category.upper()) if category else PERMISSION_DEFINITIONS
    click.echo("\n" + "="*90)
    click.echo(f"{'Code':<22} {'Category':<12} {'Roles'}")
    click.echo("="*90)
    for code, _name, _description, perm_category in definitions:
        holders = [r for r in ROLES if code in ROLE_CAPABILITIES.get(r, frozenset())]
        if role and role not in holders:
            continue
        click.echo(f"{code:<22} {perm_category:<12} {', '.join(holders)}")
    click.echo("="*90 + "\n")


@click.group('currency')
def currency_group():
    """Exchange rate commands."""


@currency_group.command('sync')
@with_appcontext
def sync_currency_cli():
    """Fetch the latest rates from the configured provider."""
    try:
        result = currency_service.sync_rates()
    except POSError as e:
        click.echo(f"FAIL Currency sync failed: {e}")
        raise SystemExit(1)
    click.echo(f"PASS {result['message']} ({result['updated_count']} rates, {to_utc_z(result['sync_date'])})")


@click.group('stock')
def stock_group():
    """Stock ledger commands."""


@stock_group.command('snapshot')
@click.option('--kind', type=click.Choice(list(SNAPSHOT_KINDS)), required=True, help='Snapshot kind')
@click.option('--store-id', type=int, help='Limit to one store (default: all stores)')
@with_appcontext
def snapshot_cli(kind, store_id):
    """
    Record today's day-start or day-end quantities.

    Example:
        flask stock snapshot --kind day_end --store-id 1
    """
    try:
        snapshots = stock_service.record_snapshot(kind, store_id=store_id)
    except (ValidationError, POSError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Recorded {len(snapshots)} {kind} snapshot rows.")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions older than the retention window (30 days)."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(currency_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(maintenance_group)
