"""
Booking wizard state, kept in the user's session between requests.

    selecting_services -> selecting_datetime -> confirming -> submitting
                                                     ^             |
                                                     +-- (failed) -+-> succeeded

A failed submission lands back on the confirmation step with its error set.
"""
from datetime import date

from nailstudio.errors import WizardError

STEP_SELECTING_SERVICES = 'selecting_services'
STEP_SELECTING_DATETIME = 'selecting_datetime'
STEP_CONFIRMING = 'confirming'
STEP_SUBMITTING = 'submitting'
STEP_SUCCEEDED = 'succeeded'

# Steps reachable with next_step() / back()
FORWARD_STEPS = [STEP_SELECTING_SERVICES, STEP_SELECTING_DATETIME, STEP_CONFIRMING]


class BookingWizard:

    def __init__(self, step=STEP_SELECTING_SERVICES, service_ids=None, booking_date=None,
                 time_slot_id=None, slot_ids=None, notes='', error=None, appointment_id=None):
        self.step = step
        self.service_ids = list(service_ids or [])
        self.booking_date = booking_date
        self.time_slot_id = time_slot_id
        self.slot_ids = list(slot_ids or [])
        self.notes = notes or ''
        self.error = error
        self.appointment_id = appointment_id

    # -- selection -------------------------------------------------------

    def toggle_service(self, service_id):
        if service_id in self.service_ids:
            self.service_ids.remove(service_id)
        else:
            self.service_ids.append(service_id)
        self._reset_slot()

    def set_services(self, service_ids):
        self.service_ids = list(dict.fromkeys(service_ids))
        self._reset_slot()

    def choose_date(self, booking_date):
        self._require_step(STEP_SELECTING_DATETIME)
        if booking_date != self.booking_date:
            self.booking_date = booking_date
            self._reset_slot()

    def choose_slot(self, choice):
        """Apply a SlotChoice from slot validation for the current date"""
        self._require_step(STEP_SELECTING_DATETIME)
        if not choice.accepted:
            self._reset_slot()
            self.error = choice.reason
            return False
        self.time_slot_id = choice.slot_ids[0]
        self.slot_ids = list(choice.slot_ids)
        self.error = None
        return True

    def set_notes(self, notes):
        self.notes = (notes or '').strip()

    # -- navigation ------------------------------------------------------

    def next_step(self):
        if self.step == STEP_SELECTING_SERVICES:
            if not self.service_ids:
                self.error = 'Please select at least one service'
                return False
        elif self.step == STEP_SELECTING_DATETIME:
            if not self.time_slot_id or not self.booking_date:
                self.error = 'Please select a time slot'
                return False
        else:
            raise WizardError(f"Cannot advance from step '{self.step}'")

        self.error = None
        self.step = FORWARD_STEPS[FORWARD_STEPS.index(self.step) + 1]
        return True

    def back(self):
        if self.step not in FORWARD_STEPS or self.step == STEP_SELECTING_SERVICES:
            raise WizardError(f"Cannot go back from step '{self.step}'")
        self.error = None
        self.step = FORWARD_STEPS[FORWARD_STEPS.index(self.step) - 1]

    # -- submission ------------------------------------------------------

    def begin_submit(self):
        self._require_step(STEP_CONFIRMING)
        self.error = None
        self.step = STEP_SUBMITTING

    def succeed(self, appointment_id):
        self._require_step(STEP_SUBMITTING)
        self.appointment_id = appointment_id
        self.step = STEP_SUCCEEDED

    def fail(self, message):
        """Record a failed submission and return to the confirmation step"""
        self._require_step(STEP_SUBMITTING)
        self.error = message
        self.step = STEP_CONFIRMING

    # -- helpers ---------------------------------------------------------

    @property
    def is_finished(self):
        return self.step == STEP_SUCCEEDED

    def _reset_slot(self):
        self.time_slot_id = None
        self.slot_ids = []

    def _require_step(self, step):
        if self.step != step:
            raise WizardError(f"Expected step '{step}', wizard is at '{self.step}'")

    def to_dict(self):
        return {
            'step': self.step,
            'service_ids': self.service_ids,
            'booking_date': self.booking_date.isoformat() if self.booking_date else None,
            'time_slot_id': self.time_slot_id,
            'slot_ids': self.slot_ids,
            'notes': self.notes,
            'error': self.error,
            'appointment_id': self.appointment_id,
        }

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        booking_date = data.get('booking_date')
        return cls(
            step=data.get('step', STEP_SELECTING_SERVICES),
            service_ids=data.get('service_ids'),
            booking_date=date.fromisoformat(booking_date) if booking_date else None,
            time_slot_id=data.get('time_slot_id'),
            slot_ids=data.get('slot_ids'),
            notes=data.get('notes', ''),
            error=data.get('error'),
            appointment_id=data.get('appointment_id'),
        )
