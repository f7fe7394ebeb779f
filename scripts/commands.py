# commands.py

import click
from flask import current_app
from flask.cli import with_appcontext

from extensions import db


@click.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (use flask db upgrade for managed schemas)"""
    db.create_all()
    click.echo('Database tables created.')


@click.command('create-account')
@click.option('--email', prompt=True, help='Login email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Login password')
@click.option('--name', default=None, help='Owner name')
@click.option('--business-name', default=None, help='Business name shown in the dashboard')
@click.option('--twilio-phone-number', default=None, help='WhatsApp sender number in E.164')
@with_appcontext
def create_account(email, password, name, business_name, twilio_phone_number):
    """Create an account owner"""
    auth_service = current_app.services.get('auth')
    result = auth_service.create_account(
        email=email,
        password=password,
        name=name,
        business_name=business_name,
        twilio_phone_number=twilio_phone_number
    )

    if result.is_success:
        click.echo(f'Account created successfully: {result.data.email} (id {result.data.id})')
    else:
        click.echo(f'Failed to create account: {result.error}', err=True)
        raise SystemExit(1)


@click.command('create-default-labels')
@click.argument('account_id', type=int)
@with_appcontext
def create_default_labels(account_id):
    """Create the built-in auto labels for an account"""
    result = current_app.services.get('auto_label').create_default_auto_labels(account_id)
    if result.is_failure:
        click.echo(f'Failed to create labels: {result.error}', err=True)
        raise SystemExit(1)
    click.echo(f'Created {len(result.data)} labels.')


@click.command('refresh-labels')
@click.argument('account_id', type=int, required=False)
@with_appcontext
def refresh_labels(account_id):
    """Re-evaluate auto labels for one account, or every active account"""
    if account_id is None:
        account_ids = current_app.services.get('user_repository').find_active_ids()
    else:
        account_ids = [account_id]

    auto_label_service = current_app.services.get('auto_label')
    for current_id in account_ids:
        result = auto_label_service.update_all_clients_labels(current_id)
        if result.is_failure:
            click.echo(f'Account {current_id}: {result.error}', err=True)
            continue
        click.echo(f"Account {current_id}: {result.data['message']}, {len(result.data['failed'])} failed")


def init_app(app):
    """Register commands with the Flask app"""
    app.cli.add_command(init_db)
    app.cli.add_command(create_account)
    app.cli.add_command(create_default_labels)
    app.cli.add_command(refresh_labels)
