# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/casastock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app casastock <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app casastock system init-db
#   Create all tables (idempotent). Prefer `flask db upgrade` in production.
# - flask --app casastock system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Owner inspection/bootstrap:
# - flask --app casastock users list
#   List all owners with subscription status.
# - flask --app casastock users create --username shop --email shop@example.com --password "Password123!"
#   Create an owner (prompts if options are omitted).
#
# Subscriptions:
# - flask --app casastock subscriptions list
#   List subscriptions, newest first.
# - flask --app casastock subscriptions activate shop
#   Grant an active subscription without going through the gateway.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import CasaStockError
from .extensions import db
from .models import Subscription, User
from .services.auth_service import create_user
from .services import subscription_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


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

    click.echo("DONE Database reset")


@click.group('users')
def users_group():
    """Owner account commands."""


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_command(username, email, password):
    """Create an owner account (with an empty business profile)."""
    try:
        user = create_user(username=username, email=email, password=password)
    except CasaStockError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created owner: {user.username} ({user.email}) ID={user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all owners."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Subscription'}")
    click.echo("="*90)

    for user in users:
        latest = subscription_service.get_latest_subscription(user.id)
        sub_str = latest.status if latest else "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {sub_str}")

    click.echo("="*90)
    click.echo(f"Total: {len(users)} users\n")


@click.group('subscriptions')
def subscriptions_group():
    """Subscription inspection and manual activation."""


@subscriptions_group.command('activate')
@click.argument('username')
@with_appcontext
def activate_subscription(username):
    """Mark an owner as subscribed (support/testing)."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    subscription = subscription_service.activate_manually(
        user.id,
        plan_name=current_app.config["SUBSCRIPTION_PLAN_NAME"],
        amount_cents=current_app.config["SUBSCRIPTION_AMOUNT_CENTS"],
        currency=current_app.config["SUBSCRIPTION_CURRENCY"],
    )
    click.echo(f"PASS Activated subscription {subscription.id} for {username}")


@subscriptions_group.command('list')
@click.option('--limit', default=50, show_default=True)
@with_appcontext
def list_subscriptions(limit):
    """List subscriptions, newest first."""
    rows = (
        db.session.query(Subscription, User.username)
        .join(User, User.id == Subscription.owner_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .limit(limit)
        .all()
    )

    if not rows:
        click.echo("No subscriptions found.")
        return

    for sub, username in rows:
        click.echo(
            f"{sub.id:<5} {username:<20} {sub.status:<10} "
            f"{sub.gateway_subscription_id or '-':<24} {sub.created_at}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(subscriptions_group)
