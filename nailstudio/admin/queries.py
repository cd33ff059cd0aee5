"""
Privileged joined reads. Each one runs the shared admin check first, so the
HTML back-office and the JSON API share the same gate.
"""
from sqlalchemy.orm import joinedload, selectinload

from nailstudio.auth.authorization import require_admin
from nailstudio.models.appointment import Appointment, AppointmentService
from nailstudio.models.user import User, UserProfile

NO_EMAIL = 'No email found'


def serialize_appointment(appointment):
    user = appointment.user
    profile = user.profile if user else None
    return {
        'id': appointment.id,
        'date': appointment.date.isoformat(),
        'status': appointment.status,
        'notes': appointment.notes,
        'created_at': appointment.created_at.isoformat() if appointment.created_at else None,
        'user_profiles': {
            'id': appointment.user_id,
            'full_name': profile.full_name if profile else None,
            'phone': profile.phone if profile else None,
            'email': user.email if user else None,
        },
        'time_slot': {
            'start_time': appointment.time_slot.start_time.strftime('%H:%M') if appointment.time_slot else None,
        },
        'services': [
            {'name': service.name, 'price': float(service.price)}
            for service in appointment.services
        ],
    }


def serialize_user(profile):
    return {
        'id': profile.id,
        'full_name': profile.full_name,
        'phone': profile.phone,
        'is_admin': profile.is_admin,
        'created_at': profile.created_at.isoformat() if profile.created_at else None,
        'email': profile.user.email if profile.user and profile.user.email else NO_EMAIL,
    }


def list_appointments_with_users(requester, status=None):
    """All appointments with requester identity info, most recent date first"""
    require_admin(requester)

    query = Appointment.query.options(
        joinedload(Appointment.user).joinedload(User.profile),
        joinedload(Appointment.time_slot),
        selectinload(Appointment.service_links).joinedload(AppointmentService.service),
    )
    if status:
        query = query.filter(Appointment.status == status)
    return query.order_by(Appointment.date.desc(), Appointment.created_at.desc()).all()


def list_users_with_email(requester, search=None):
    """All user profiles joined with their identity email, newest first"""
    require_admin(requester)

    profiles = UserProfile.query.options(joinedload(UserProfile.user)) \
        .order_by(UserProfile.created_at.desc()).all()

    if search and search.strip():
        term = search.strip().lower()
        profiles = [
            p for p in profiles
            if term in (p.full_name or '').lower()
            or term in (p.user.email if p.user else '').lower()
            or term in (p.phone or '').lower()
        ]
    return profiles
