"""
Writes for bookings: reserving a run of slots, cancelling, status changes.

Every booking is written in a single transaction: the appointment, its
service links and one blocked-slot row per consumed cell either all land or
none do. The partial unique index on blocked_slots backs this up when two
customers race for the same cell.
"""
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from nailstudio import db
from nailstudio.booking import slots as slot_logic
from nailstudio.errors import ReservationError, SlotUnavailableError
from nailstudio.models.appointment import (Appointment, AppointmentService, BlockedSlot,
                                          STATUS_CANCELLED, STATUS_PENDING, STATUSES)
from nailstudio.models.service import Service
from nailstudio.models.time_slot import TimeSlot


def booked_slot_ids(booking_date):
    """Ids of grid cells held by live appointments on ``booking_date``"""
    rows = db.session.query(BlockedSlot.time_slot_id).filter(
        BlockedSlot.date == booking_date,
        BlockedSlot.status != STATUS_CANCELLED
    ).all()
    return {row.time_slot_id for row in rows}


def day_grid(booking_date):
    slots = TimeSlot.query.filter_by(day_of_week=booking_date.weekday(), is_available=True).all()
    return slot_logic.slots_for_day(slots, booking_date)


def reserve_appointment(user_id, booking_date, service_ids, start_slot_id, notes=None,
                        today=None, closed_weekday=None):
    """
    Book ``service_ids`` for ``user_id`` starting at ``start_slot_id``.

    The choice is re-validated against the store before writing. Raises
    SlotUnavailableError when the run cannot be reserved and ReservationError
    when the store rejects the write; in both cases nothing is persisted.
    """
    services = Service.query.filter(Service.id.in_(service_ids), Service.is_active.is_(True)).all()
    if not services or len(services) != len(set(service_ids)):
        raise SlotUnavailableError("One of the selected services is no longer offered.")

    if today is not None and not slot_logic.is_bookable_date(booking_date, today, closed_weekday):
        raise SlotUnavailableError("Appointments can only be booked for upcoming opening days.")

    required = slot_logic.required_slot_count(services)
    choice = slot_logic.validate_start_slot(
        day_grid(booking_date), booked_slot_ids(booking_date), required, start_slot_id
    )
    if not choice.accepted:
        raise SlotUnavailableError(choice.reason)

    try:
        appointment = Appointment(
            user_id=user_id,
            date=booking_date,
            time_slot_id=choice.slot_ids[0],
            notes=notes or None,
            status=STATUS_PENDING
        )
        for service in services:
            appointment.service_links.append(AppointmentService(service_id=service.id))
        for slot_id in choice.slot_ids:
            appointment.blocked_slots.append(
                BlockedSlot(date=booking_date, time_slot_id=slot_id, status=STATUS_PENDING)
            )

        db.session.add(appointment)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning(f"Slot conflict while booking {booking_date} slot {start_slot_id}: {e}")
        raise SlotUnavailableError("Sorry, this time was just booked by someone else. "
                                   "Please select another time.") from e
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to store appointment for user {user_id}: {e}")
        raise ReservationError("Failed to book appointment. Please try again.") from e

    current_app.logger.info(
        f"Appointment {appointment.id} booked for user {user_id} on {booking_date} "
        f"(slots {choice.slot_ids})"
    )
    return appointment


def set_appointment_status(appointment, status):
    """Change the status of an appointment and of every cell it holds"""
    if status not in STATUSES:
        raise ValueError(f"Unknown appointment status: {status}")

    try:
        appointment.status = status
        for blocked in appointment.blocked_slots:
            blocked.status = status
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise SlotUnavailableError("These time slots have been booked by another appointment.") from e
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to update appointment {appointment.id}: {e}")
        raise ReservationError("Failed to update appointment status. Please try again.") from e
    return appointment


def cancel_appointment(appointment, user_id, today):
    """Customer cancellation of their own upcoming appointment"""
    if appointment.user_id != user_id:
        raise ReservationError("You can only cancel your own appointments.")
    if appointment.status == STATUS_CANCELLED:
        raise ReservationError("This appointment is already cancelled.")
    if appointment.date <= today:
        raise ReservationError("Cannot cancel an appointment that has already started or completed.")
    return set_appointment_status(appointment, STATUS_CANCELLED)
