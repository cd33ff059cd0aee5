from datetime import datetime

import click
from sqlalchemy.exc import SQLAlchemyError

from nailstudio import db
from nailstudio.auth.identity import sign_up
from nailstudio.booking.slots import build_slot_grid
from nailstudio.errors import IdentityError
from nailstudio.models.time_slot import TimeSlot, DAY_NAMES
from nailstudio.models.user import User


def _parse_time(value):
    try:
        return datetime.strptime(value, '%H:%M').time()
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a HH:MM time")


def register_commands(app):

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.argument('password')
    @click.option('--full-name', default=None, help='Name shown in the back-office')
    def create_admin(email, password, full_name):
        """Create an account with admin access, or promote an existing one."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        try:
            if user is None:
                user = sign_up(email, password, full_name=full_name)
            user.profile.is_admin = True
            db.session.commit()
        except (IdentityError, SQLAlchemyError) as e:
            db.session.rollback()
            raise click.ClickException(str(e))
        click.echo(f"Admin: {user.email}")

    @app.cli.command('seed-time-slots')
    @click.option('--open', 'open_time', default='09:00', help='Opening time HH:MM')
    @click.option('--close', 'close_time', default='17:00', help='Closing time HH:MM')
    def seed_time_slots(open_time, close_time):
        """Generate 30 minute slots for every opening day."""
        closed_weekday = app.config['CLOSED_WEEKDAY']
        opens, closes = _parse_time(open_time), _parse_time(close_time)
        created = 0
        try:
            for day in DAY_NAMES:
                if day == closed_weekday:
                    continue
                existing = {slot.start_time for slot in TimeSlot.query.filter_by(day_of_week=day).all()}
                new_slots = build_slot_grid(day, opens, closes, existing)
                db.session.add_all(new_slots)
                created += len(new_slots)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise click.ClickException(f"Failed to save time slots: {e}")
        click.echo(f"{created} time slots created")
