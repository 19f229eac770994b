import click
from flask import current_app
from flask.cli import with_appcontext

from tasting import db

SEED_REGIONS = {
    'Campbeltown': ['Glen Scotia', 'Glengyle', 'Springbank'],
    'Highland': ['Clynelish', 'Dalmore', 'Glenmorangie', 'Oban'],
    'Islay': ['Ardbeg', 'Bowmore', 'Bruichladdich', 'Caol Ila', 'Lagavulin', 'Laphroaig'],
    'Islands': ['Highland Park', 'Jura', 'Talisker'],
    'Lowland': ['Auchentoshan', 'Glenkinchie'],
    'Speyside': ['Aberlour', 'Glenfarclas', 'Glenfiddich', 'Macallan', 'Mortlach'],
}

SEED_USERS = [
    ('host@example.com', 'Sam'),
    ('amy@example.com', 'Amy'),
    ('ben@example.com', 'Ben'),
]


def _user_by_email(email):
    from tasting.models import User
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"No user with email {email}")
    return user


@click.command('db-reset')
@with_appcontext
def db_reset_command():
    """Drops, recreates, and seeds the database."""
    from tasting.models import Distillery, Region, User, utcnow
    db.drop_all()
    db.create_all()

    for region_name, distilleries in SEED_REGIONS.items():
        region = Region(name=region_name)
        db.session.add(region)
        db.session.flush()
        for distillery_name in distilleries:
            db.session.add(Distillery(name=distillery_name, region_id=region.id))

    # Seed users
    for email, name in SEED_USERS:
        user = User(email=email, name=name, email_confirmed_at=utcnow())
        user.set_password('password')
        db.session.add(user)

    db.session.commit()
    click.echo('Database has been reset and seeded!')


@click.command('disable-user')
@click.argument('email')
@click.option('--by', 'by_email', default=None, help='Email of the admin disabling the account.')
@with_appcontext
def disable_user_command(email, by_email):
    """Disable an account; its next identity check signs it out."""
    from tasting.services.accounts import disable_user_account
    user = _user_by_email(email)
    admin_id = _user_by_email(by_email).id if by_email else None
    disable_user_account(user.id, disabled_by_user_id=admin_id)
    click.echo(f'Disabled {user.email}')


@click.command('enable-user')
@click.argument('email')
@with_appcontext
def enable_user_command(email):
    """Re-enable a disabled account."""
    from tasting.services.accounts import enable_user_account
    user = _user_by_email(email)
    enable_user_account(user.id)
    click.echo(f'Enabled {user.email}')


@click.command('finish-session')
@click.argument('code')
@with_appcontext
def finish_session_command(code):
    """Move a revealed session to finished."""
    from tasting.errors import TastingError
    from tasting.services.tasting.state_machine import advance_status
    from tasting.store import find_session_by_code
    try:
        session = find_session_by_code(code)
        session, changed = advance_status(session.id, 'finished', out_of_band=True)
    except TastingError as exc:
        raise click.ClickException(exc.message)
    current_app.logger.info(f"[cli] finish-session code={session.code} changed={changed}")
    click.echo(f'Session {session.code} is {session.status}')


def register_commands(flask_app):
    for command in (db_reset_command, disable_user_command, enable_user_command, finish_session_command):
        flask_app.cli.add_command(command)
