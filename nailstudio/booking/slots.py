"""
Slot allocation for multi-service bookings.

The salon's calendar is a recurring grid of fixed 30-minute cells defined per
weekday. A booking of several services needs a contiguous run of cells long
enough to cover their combined duration, on a date strictly after today, with
none of the cells already held by another live appointment on that date.

Nothing here touches the store: callers pass in the grid, the booked cell ids and
the selection, and get the same answer every time for the same inputs.
Rejections are returned as values (a reason string), not raised.
"""
import math
from collections import namedtuple
from datetime import time
from decimal import Decimal

from nailstudio.models.time_slot import TimeSlot

SLOT_MINUTES = 30

SlotChoice = namedtuple('SlotChoice', ['accepted', 'slot_ids', 'reason'])


def total_duration(services):
    """Combined duration in minutes of the selected services"""
    return sum(service.duration for service in services)


def total_price(services):
    return sum((Decimal(service.price) for service in services), Decimal('0'))


def required_slot_count(services, slot_minutes=SLOT_MINUTES):
    """Number of grid cells needed to cover the selected services"""
    return math.ceil(total_duration(services) / slot_minutes)


def is_bookable_date(day, today, closed_weekday=None):
    """Only dates after today, and not on the salon's closed weekday"""
    if day <= today:
        return False
    if closed_weekday is not None and day.weekday() == closed_weekday:
        return False
    return True


def slots_for_day(time_slots, day):
    """Available grid cells for the weekday of ``day``, earliest first"""
    weekday = day.weekday()
    day_slots = [slot for slot in time_slots if slot.day_of_week == weekday and slot.is_available]
    return sorted(day_slots, key=lambda slot: slot.start_time)


def _minutes(value):
    return value.hour * 60 + value.minute


def _check_run(day_slots, index, booked_slot_ids, required_slots, slot_minutes):
    """Return (slot_ids, reason) for the run starting at ``index``"""
    run = day_slots[index:index + required_slots]

    if len(run) < required_slots:
        return None, (f"This booking requires {required_slots * slot_minutes} minutes, "
                      f"not enough consecutive time is left on this day.")

    if any(slot.id in booked_slot_ids for slot in run):
        return None, "Part of this time is already booked. Please choose another time."

    for previous, following in zip(run, run[1:]):
        if _minutes(following.start_time) != _minutes(previous.start_time) + slot_minutes:
            return None, (f"This booking requires {required_slots * slot_minutes} minutes "
                          f"of consecutive time. Please choose another time.")

    return [slot.id for slot in run], None


def available_start_slots(day_slots, booked_slot_ids, required_slots, slot_minutes=SLOT_MINUTES):
    """
    Every slot of ``day_slots`` from which a full run can be reserved.

    ``day_slots`` must be one weekday's grid sorted by start time.
    """
    if required_slots < 1:
        raise ValueError("At least one slot is required")

    booked = set(booked_slot_ids)
    options = []
    for index, slot in enumerate(day_slots):
        slot_ids, _ = _check_run(day_slots, index, booked, required_slots, slot_minutes)
        if slot_ids:
            options.append(slot)
    return options


def validate_start_slot(day_slots, booked_slot_ids, required_slots, start_slot_id,
                        slot_minutes=SLOT_MINUTES):
    """Check one chosen start slot and return the run to reserve, or why not"""
    if required_slots < 1:
        raise ValueError("At least one slot is required")

    index = next((i for i, slot in enumerate(day_slots) if slot.id == start_slot_id), None)
    if index is None:
        return SlotChoice(False, [], "The selected time is not available on this day.")

    slot_ids, reason = _check_run(day_slots, index, set(booked_slot_ids), required_slots, slot_minutes)
    if slot_ids is None:
        return SlotChoice(False, [], reason)
    return SlotChoice(True, slot_ids, None)


def find_start_options(time_slots, day, today, services, booked_slot_ids, closed_weekday=None,
                       slot_minutes=SLOT_MINUTES):
    """Selectable start slots for ``services`` on ``day``; empty for non-bookable dates"""
    if not services or not is_bookable_date(day, today, closed_weekday):
        return []
    required = required_slot_count(services, slot_minutes)
    return available_start_slots(slots_for_day(time_slots, day), booked_slot_ids, required, slot_minutes)


def grid_times(open_time, close_time, slot_minutes=SLOT_MINUTES):
    """(start, end) pairs of back-to-back slots that fit between opening and closing"""
    start = _minutes(open_time)
    closing = _minutes(close_time)
    times = []
    while start + slot_minutes <= closing:
        end = start + slot_minutes
        times.append((time(start // 60, start % 60), time(end // 60, end % 60)))
        start = end
    return times


def build_slot_grid(day_of_week, open_time, close_time, existing_start_times=()):
    """Unsaved TimeSlot rows for ``grid_times``, skipping start times the day already has"""
    return [
        TimeSlot(start_time=start, end_time=end, day_of_week=day_of_week)
        for start, end in grid_times(open_time, close_time)
        if start not in existing_start_times
    ]
