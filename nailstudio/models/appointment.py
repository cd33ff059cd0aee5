from nailstudio import db
from datetime import datetime

# Appointment status constants
STATUS_PENDING = 'pending'
STATUS_CONFIRMED = 'confirmed'
STATUS_CANCELLED = 'cancelled'

STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED)


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    # First slot of the reserved run; the full run lives in blocked_slots
    time_slot_id = db.Column(db.Integer, db.ForeignKey('time_slots.id'), nullable=False)
    status = db.Column(db.String(20), default=STATUS_PENDING, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    time_slot = db.relationship('TimeSlot')
    service_links = db.relationship('AppointmentService', backref='appointment',
                                    cascade='all, delete-orphan')
    blocked_slots = db.relationship('BlockedSlot', backref='appointment',
                                    cascade='all, delete-orphan')

    def __init__(self, user_id, date, time_slot_id, notes=None, status=STATUS_PENDING):
        self.user_id = user_id
        self.date = date
        self.time_slot_id = time_slot_id
        self.notes = notes
        self.status = status

    @property
    def services(self):
        return [link.service for link in self.service_links]

    @property
    def total_price(self):
        return sum((service.price for service in self.services), 0)

    def is_active(self):
        return self.status != STATUS_CANCELLED

    def __repr__(self):
        return f'<Appointment {self.id}: {self.date} slot {self.time_slot_id} ({self.status})>'


class AppointmentService(db.Model):
    """Links one appointment to one booked service"""
    __tablename__ = 'appointment_services'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=False)

    service = db.relationship('Service')

    def __init__(self, appointment_id=None, service_id=None):
        self.appointment_id = appointment_id
        self.service_id = service_id

    def __repr__(self):
        return f'<AppointmentService {self.appointment_id} -> {self.service_id}>'


class BlockedSlot(db.Model):
    """One grid cell consumed by an appointment on a specific date"""
    __tablename__ = 'blocked_slots'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    time_slot_id = db.Column(db.Integer, db.ForeignKey('time_slots.id'), nullable=False)
    status = db.Column(db.String(20), default=STATUS_PENDING, nullable=False)

    # A cell can only be held by one live appointment per date
    __table_args__ = (
        db.Index(
            'uq_blocked_slot_live',
            'date', 'time_slot_id',
            unique=True,
            sqlite_where=db.text("status != 'cancelled'"),
            postgresql_where=db.text("status != 'cancelled'"),
        ),
    )

    def __init__(self, date, time_slot_id, status=STATUS_PENDING, appointment_id=None):
        self.appointment_id = appointment_id
        self.date = date
        self.time_slot_id = time_slot_id
        self.status = status

    def __repr__(self):
        return f'<BlockedSlot {self.date} slot {self.time_slot_id} ({self.status})>'
