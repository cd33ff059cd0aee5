from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import create_service, create_day_grid, next_weekday, login
from nailstudio import db
from nailstudio.admin.queries import list_appointments_with_users, list_users_with_email
from nailstudio.auth.authorization import require_admin
from nailstudio.booking.reservation import reserve_appointment
from nailstudio.errors import AuthorizationError
from nailstudio.models.appointment import Appointment, BlockedSlot
from nailstudio.models.audit import AuditLog
from nailstudio.models.service import Service
from nailstudio.models.time_slot import TimeSlot, FRIDAY, SATURDAY
from nailstudio.models.user import UserProfile


@pytest.fixture
def admin_client(client, admin_id):
    login(client, 'admin@nailstudio.mk')
    return client


# =========================================================
# TEST: shared authorization check
# =========================================================
def test_require_admin(app_ctx, customer):
    with pytest.raises(AuthorizationError, match='not an admin'):
        require_admin(customer)
    with pytest.raises(AuthorizationError, match='Authentication required'):
        require_admin(None)

    customer.profile.is_admin = True
    db.session.commit()
    assert require_admin(customer) is customer


def test_privileged_queries_check_the_requester(app_ctx, customer):
    with pytest.raises(AuthorizationError):
        list_appointments_with_users(customer)
    with pytest.raises(AuthorizationError):
        list_users_with_email(customer)


# =========================================================
# TEST: back-office access
# =========================================================
def test_customer_cannot_open_back_office(client, customer_id):
    login(client)
    response = client.get('/admin/')
    assert response.status_code == 302
    assert '/auth/login' in response.headers['Location']


def test_dashboard_counts(admin_client):
    response = admin_client.get('/admin/')
    assert response.status_code == 200
    assert b'Recent Bookings' in response.data


# =========================================================
# TEST: services
# =========================================================
def test_create_and_update_service(app, admin_client):
    response = admin_client.post('/admin/services/create', data={
        'name': 'Pedicure', 'description': 'Classic pedicure', 'price': '900.00',
        'duration': '60', 'is_active': 'y'
    })
    assert response.status_code == 302

    with app.app_context():
        service = Service.query.filter_by(name='Pedicure').one()
        service_id = service.id
        assert service.price == Decimal('900.00')

    admin_client.post(f'/admin/services/{service_id}/edit', data={
        'name': 'Spa Pedicure', 'price': '1100', 'duration': '75'
    })

    with app.app_context():
        service = db.session.get(Service, service_id)
        assert service.name == 'Spa Pedicure'
        assert service.duration == 75
        assert service.is_active is False
        assert AuditLog.query.filter_by(entity_type='service', action='update').count() == 1


def test_service_price_must_be_positive(admin_client):
    response = admin_client.post('/admin/services/create', data={
        'name': 'Free', 'price': '0', 'duration': '30'
    })
    assert response.status_code == 200
    assert b'Price must be greater than 0' in response.data
    assert b'This field is required' not in response.data

    response = admin_client.post('/admin/services/create', data={
        'name': 'Instant', 'price': '500', 'duration': '0'
    })
    assert b'Duration must be greater than 0' in response.data


def test_booked_service_cannot_be_deleted(app, admin_client, admin_id):
    with app.app_context():
        service_id = create_service().id
        slots = create_day_grid(FRIDAY)
        reserve_appointment(admin_id, next_weekday(FRIDAY), [service_id], slots[0].id, today=date.today())

    admin_client.post(f'/admin/services/{service_id}/delete')

    with app.app_context():
        assert db.session.get(Service, service_id) is not None


# =========================================================
# TEST: time slots
# =========================================================
def test_generate_time_slots_skips_existing(app, admin_client):
    with app.app_context():
        create_day_grid(SATURDAY, start=time(9, 0), count=1)

    response = admin_client.post('/admin/time-slots/generate', data={
        'day_of_week': str(SATURDAY), 'open_time': '09:00', 'close_time': '11:00'
    })
    assert response.status_code == 302

    with app.app_context():
        starts = [s.start_time for s in TimeSlot.query.filter_by(day_of_week=SATURDAY)
                  .order_by(TimeSlot.start_time)]
    assert starts == [time(9, 0), time(9, 30), time(10, 0), time(10, 30)]


def test_duplicate_start_time_on_a_weekday_is_rejected(app, admin_client):
    with app.app_context():
        slot_ids = [slot.id for slot in create_day_grid(FRIDAY, count=2)]

    response = admin_client.post('/admin/time-slots/create', data={
        'day_of_week': str(FRIDAY), 'start_time': '09:00', 'end_time': '09:30'
    })
    assert response.status_code == 200
    assert b'already has a time slot starting at this time' in response.data

    # moving the second cell onto the first one's start is refused too
    response = admin_client.post(f'/admin/time-slots/{slot_ids[1]}/edit', data={
        'day_of_week': str(FRIDAY), 'start_time': '09:00', 'end_time': '09:30'
    })
    assert b'already has a time slot starting at this time' in response.data

    # re-saving a cell with its own start time is fine
    response = admin_client.post(f'/admin/time-slots/{slot_ids[0]}/edit', data={
        'day_of_week': str(FRIDAY), 'start_time': '09:00', 'end_time': '09:30'
    })
    assert response.status_code == 302

    with app.app_context():
        assert TimeSlot.query.filter_by(day_of_week=FRIDAY).count() == 2


def test_grid_refuses_a_second_cell_with_the_same_start(app_ctx):
    create_day_grid(FRIDAY, count=1)
    db.session.add(TimeSlot(start_time=time(9, 0), end_time=time(9, 30), day_of_week=FRIDAY))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_time_slot_end_must_follow_start(admin_client):
    response = admin_client.post('/admin/time-slots/create', data={
        'day_of_week': '1', 'start_time': '10:00', 'end_time': '09:30'
    })
    assert response.status_code == 200
    assert b'End time must be after start time' in response.data


# =========================================================
# TEST: appointments and users
# =========================================================
def test_confirming_an_appointment_updates_its_slots(app, admin_client, customer_id):
    with app.app_context():
        service_id = create_service(duration=60).id
        slots = create_day_grid(FRIDAY)
        appointment_id = reserve_appointment(customer_id, next_weekday(FRIDAY), [service_id],
                                             slots[0].id, today=date.today()).id

    page = admin_client.get('/admin/appointments')
    assert page.status_code == 200
    assert b'Ana Petrova' in page.data
    assert b'9:00 AM' in page.data
    assert b'Gel Manicure' in page.data

    assert admin_client.get('/admin/appointments?status=pending').status_code == 200
    cancelled = admin_client.get('/admin/appointments?status=cancelled')
    assert cancelled.status_code == 200
    assert b'No appointments found.' in cancelled.data

    admin_client.post(f'/admin/appointments/{appointment_id}/status', data={'status': 'confirmed'})

    with app.app_context():
        assert db.session.get(Appointment, appointment_id).status == 'confirmed'
        assert {b.status for b in BlockedSlot.query.all()} == {'confirmed'}


def test_toggle_admin(app, admin_client, admin_id, customer_id):
    admin_client.post(f'/admin/users/{customer_id}/toggle-admin')
    admin_client.post(f'/admin/users/{admin_id}/toggle-admin')

    with app.app_context():
        assert db.session.get(UserProfile, customer_id).is_admin is True
        assert db.session.get(UserProfile, admin_id).is_admin is True


def test_users_search(admin_client, customer_id):
    page = admin_client.get('/admin/users?q=ana')
    assert b'customer@nailstudio.mk' in page.data
    assert b'admin@nailstudio.mk' not in page.data


def test_audit_log_page(admin_client):
    response = admin_client.get('/admin/audit-logs?entity_type=login')
    assert response.status_code == 200
    assert b'admin@nailstudio.mk' in response.data
