from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from nailstudio import create_app, db
from nailstudio.config import TestConfig
from nailstudio.models.service import Service
from nailstudio.models.time_slot import TimeSlot
from nailstudio.models.user import User, UserProfile


# ---------------------------------------------------------
# App / DB Setup Fixtures
# ---------------------------------------------------------
@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """For store-level tests; request tests must not share this context"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


# ---------------------------------------------------------
# Helpers: create records
# ---------------------------------------------------------
def next_weekday(weekday, after=None):
    """First date strictly after ``after`` (default today) falling on ``weekday``"""
    after = after or date.today()
    days_ahead = (weekday - after.weekday()) % 7 or 7
    return after + timedelta(days=days_ahead)


def create_user(email='customer@nailstudio.mk', password='secret123', full_name='Ana Petrova',
                phone='+389 70 123 456', is_admin=False):
    user = User(email=email, password=password)
    user.profile = UserProfile(full_name=full_name, phone=phone, is_admin=is_admin)
    db.session.add(user)
    db.session.commit()
    return user


def create_service(name='Gel Manicure', price=Decimal('1200.00'), duration=45, is_active=True):
    service = Service(name=name, price=price, duration=duration, is_active=is_active)
    db.session.add(service)
    db.session.commit()
    return service


def create_day_grid(day_of_week, start=time(9, 0), count=8, slot_minutes=30):
    """``count`` back-to-back slots on ``day_of_week`` beginning at ``start``"""
    slots = []
    minutes = start.hour * 60 + start.minute
    for _ in range(count):
        end = minutes + slot_minutes
        slots.append(TimeSlot(start_time=time(minutes // 60, minutes % 60),
                              end_time=time(end // 60, end % 60),
                              day_of_week=day_of_week))
        minutes = end
    db.session.add_all(slots)
    db.session.commit()
    return slots


def login(client, email='customer@nailstudio.mk', password='secret123'):
    return client.post('/auth/login', data={'email': email, 'password': password},
                       follow_redirects=False)


@pytest.fixture
def customer(app_ctx):
    return create_user()


@pytest.fixture
def customer_id(app):
    with app.app_context():
        return create_user().id


@pytest.fixture
def admin_id(app):
    with app.app_context():
        return create_user(email='admin@nailstudio.mk', full_name='Studio Admin', is_admin=True).id
