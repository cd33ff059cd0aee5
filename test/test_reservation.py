from datetime import date

import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from conftest import create_service, create_day_grid, next_weekday
from nailstudio import db
from nailstudio.booking.reservation import (booked_slot_ids, reserve_appointment,
                                            set_appointment_status, cancel_appointment)
from nailstudio.errors import ReservationError, SlotUnavailableError
from nailstudio.models.appointment import (Appointment, AppointmentService, BlockedSlot,
                                          STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PENDING)
from nailstudio.models.time_slot import TUESDAY

TODAY = date.today()


@pytest.fixture
def booking_day():
    return next_weekday(TUESDAY)


@pytest.fixture
def day_slots(app_ctx):
    return create_day_grid(TUESDAY)  # 09:00 - 13:00


@pytest.fixture
def services(app_ctx):
    return [create_service('Gel Manicure', duration=45), create_service('Nail Art', duration=30)]


def book(customer, booking_day, services, start_slot):
    return reserve_appointment(customer.id, booking_day, [s.id for s in services], start_slot.id,
                               notes='Short nails', today=TODAY, closed_weekday=6)


# =========================================================
# TEST: reserve_appointment
# =========================================================
def test_reserve_writes_appointment_links_and_blocked_slots(customer, booking_day, day_slots, services):
    appointment = book(customer, booking_day, services, day_slots[0])

    assert appointment.status == STATUS_PENDING
    assert appointment.time_slot_id == day_slots[0].id
    assert appointment.notes == 'Short nails'
    assert sorted(s.name for s in appointment.services) == ['Gel Manicure', 'Nail Art']

    blocked = BlockedSlot.query.filter_by(appointment_id=appointment.id).all()
    assert sorted(b.time_slot_id for b in blocked) == [s.id for s in day_slots[:3]]
    assert all(b.date == booking_day and b.status == STATUS_PENDING for b in blocked)
    assert booked_slot_ids(booking_day) == {s.id for s in day_slots[:3]}


def test_overlapping_booking_is_rejected(customer, booking_day, day_slots, services):
    book(customer, booking_day, services, day_slots[0])

    with pytest.raises(SlotUnavailableError, match='already booked'):
        book(customer, booking_day, services, day_slots[2])

    assert Appointment.query.count() == 1


def test_reserve_refuses_today(customer, day_slots, services):
    with pytest.raises(SlotUnavailableError):
        reserve_appointment(customer.id, TODAY, [services[0].id], day_slots[0].id,
                            today=TODAY, closed_weekday=None)


def test_reserve_refuses_inactive_service(customer, booking_day, day_slots):
    retired = create_service('Acrylic Set', duration=30, is_active=False)
    with pytest.raises(SlotUnavailableError):
        reserve_appointment(customer.id, booking_day, [retired.id], day_slots[0].id, today=TODAY)


def test_failure_while_writing_blocked_slots_leaves_nothing_behind(customer, booking_day, day_slots, services):
    def fail_insert(mapper, connection, target):
        raise SQLAlchemyError('disk full')

    event.listen(BlockedSlot, 'before_insert', fail_insert)
    try:
        with pytest.raises(ReservationError):
            book(customer, booking_day, services, day_slots[0])
    finally:
        event.remove(BlockedSlot, 'before_insert', fail_insert)

    assert Appointment.query.count() == 0
    assert AppointmentService.query.count() == 0
    assert BlockedSlot.query.count() == 0


# =========================================================
# TEST: status changes and cancellation
# =========================================================
def test_status_change_is_mirrored_on_blocked_slots(customer, booking_day, day_slots, services):
    appointment = book(customer, booking_day, services, day_slots[0])

    set_appointment_status(appointment, STATUS_CONFIRMED)

    assert {b.status for b in appointment.blocked_slots} == {STATUS_CONFIRMED}
    with pytest.raises(ValueError):
        set_appointment_status(appointment, 'done')


def test_cancelling_frees_the_slots(customer, booking_day, day_slots, services):
    appointment = book(customer, booking_day, services, day_slots[0])

    cancel_appointment(appointment, customer.id, TODAY)

    assert appointment.status == STATUS_CANCELLED
    assert booked_slot_ids(booking_day) == set()
    # the freed run can be booked again
    assert book(customer, booking_day, services, day_slots[0]).id != appointment.id


def test_cancel_rules(customer, booking_day, day_slots, services):
    appointment = book(customer, booking_day, services, day_slots[0])

    with pytest.raises(ReservationError, match='your own'):
        cancel_appointment(appointment, customer.id + 1, TODAY)
    with pytest.raises(ReservationError, match='already started'):
        cancel_appointment(appointment, customer.id, booking_day)

    cancel_appointment(appointment, customer.id, TODAY)
    with pytest.raises(ReservationError, match='already cancelled'):
        cancel_appointment(appointment, customer.id, TODAY)


def test_closed_weekday_is_refused(customer, services):
    sunday_slots = create_day_grid(6)
    sunday = next_weekday(6)
    with pytest.raises(SlotUnavailableError):
        reserve_appointment(customer.id, sunday, [services[0].id], sunday_slots[0].id,
                            today=TODAY, closed_weekday=6)


# =========================================================
# TEST: concurrent bookings
# =========================================================
def test_unique_index_rejects_the_loser_of_a_race(monkeypatch, customer, booking_day, day_slots, services):
    book(customer, booking_day, services, day_slots[0])

    # the second request read availability before the first one committed
    monkeypatch.setattr('nailstudio.booking.reservation.booked_slot_ids', lambda booking_date: set())

    with pytest.raises(SlotUnavailableError, match='just booked'):
        book(customer, booking_day, services, day_slots[1])

    assert Appointment.query.count() == 1
    assert BlockedSlot.query.count() == 3


def test_reactivating_a_cancelled_appointment_on_rebooked_slots_fails(customer, booking_day, day_slots, services):
    first = book(customer, booking_day, services, day_slots[0])
    cancel_appointment(first, customer.id, TODAY)
    book(customer, booking_day, services, day_slots[0])

    with pytest.raises(SlotUnavailableError, match='booked by another appointment'):
        set_appointment_status(first, STATUS_CONFIRMED)

    assert db.session.get(Appointment, first.id).status == STATUS_CANCELLED
    assert {b.status for b in first.blocked_slots} == {STATUS_CANCELLED}
