# Overview: Flask CLI command groups for bootstrap and borrow inspection.

# backend/storelend/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates two demo stores and one staff user per store.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Borrow inspection:
# - python -m flask borrows list --store-id 1 --direction incoming --status pending_approval
#   List borrows for a store.
# - python -m flask borrows show 12
#   Print one borrow with items and display names.
# - python -m flask borrows check [--store-id 1]
#   Verify stored borrows against the status/flag invariants.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Borrow, Store, User
from .errors import BorrowError
from .services import borrow_query_service
from .services.borrow_status import BorrowStatus, check_consistency


DEMO_STORES = [
    {"name": "Central Store", "code": "CEN"},
    {"name": "Riverside Store", "code": "RIV"},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize demo data: stores and one staff user per store.

    Safe to run repeatedly.
    """
    click.echo("START Initializing borrow service data...")
    db.create_all()

    for entry in DEMO_STORES:
        store = db.session.query(Store).filter_by(code=entry["code"]).first()
        if not store:
            store = Store(name=entry["name"], code=entry["code"], is_active=True)
            db.session.add(store)
            db.session.flush()
            click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
        else:
            click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

        username = f"staff_{entry['code'].lower()}"
        user = db.session.query(User).filter_by(username=username).first()
        if not user:
            user = User(
                username=username,
                display_name=f"{entry['name']} Staff",
                store_id=store.id,
                is_active=True,
            )
            db.session.add(user)
            db.session.flush()
            click.echo(f"PASS Created user: {user.username} (ID: {user.id})")

    db.session.commit()
    click.echo("DONE Borrow service initialized.")


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


@click.group('borrows')
def borrows_group():
    """Borrow inspection commands."""


@borrows_group.command('list')
@click.option('--store-id', type=int, required=True, help='Store to list for')
@click.option('--direction', type=click.Choice(['outgoing', 'incoming']), default='outgoing')
@click.option('--status', type=click.Choice([s.value for s in BorrowStatus]), default=None)
@click.option('--limit', type=int, default=50)
@with_appcontext
def list_borrows_cli(store_id, direction, status, limit):
    """
    List borrows for a store.

    Example:
        flask borrows list --store-id 1
        flask borrows list --store-id 2 --direction incoming --status pending_approval
    """
    try:
        borrows = borrow_query_service.list_borrows(store_id, direction=direction, status=status, limit=limit)
    except BorrowError as e:
        raise click.ClickException(e.message)

    if not borrows:
        click.echo("No borrows found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<6} {'From':<6} {'To':<6} {'Status':<18} {'Items':<6} {'B-POS':<6} {'L-POS':<6} {'Created'}")
    click.echo("="*90)

    for b in borrows:
        click.echo(
            f"{b.id:<6} {b.from_store_id:<6} {b.to_store_id:<6} {b.status:<18} {len(b.items):<6} "
            f"{'Yes' if b.borrower_pos_confirmed else 'No':<6} {'Yes' if b.lender_pos_confirmed else 'No':<6} "
            f"{b.created_at}"
        )

    click.echo("="*90 + "\n")


@borrows_group.command('show')
@click.argument('borrow_id', type=int)
@with_appcontext
def show_borrow(borrow_id):
    """Print one borrow as JSON."""
    try:
        borrow = borrow_query_service.get_borrow(borrow_id)
    except BorrowError as e:
        raise click.ClickException(e.message)

    click.echo(json.dumps(borrow_query_service.borrow_detail(borrow), indent=2, default=str))


@borrows_group.command('check')
@click.option('--store-id', type=int, help='Only borrows involving this store')
@with_appcontext
def check_borrows(store_id):
    """
    Verify stored borrows against the status/flag invariants.

    Exits with status 1 if any borrow is inconsistent.
    """
    query = db.session.query(Borrow)
    if store_id:
        query = query.filter(
            (Borrow.from_store_id == store_id) | (Borrow.to_store_id == store_id)
        )

    bad = 0
    total = 0
    for borrow in query.order_by(Borrow.id).all():
        total += 1
        problems = check_consistency(borrow)
        if problems:
            bad += 1
            for problem in problems:
                click.echo(f"FAIL borrow {borrow.id}: {problem}")

    click.echo(f"Checked {total} borrows, {bad} inconsistent.")
    if bad:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(borrows_group)
