# Import all models here for easier imports elsewhere
from .user import User, UserProfile
from .service import Service
from .time_slot import TimeSlot
from .appointment import Appointment, AppointmentService, BlockedSlot
from .audit import AuditLog
