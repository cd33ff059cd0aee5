from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app, g
from sqlalchemy.exc import SQLAlchemyError
from nailstudio import db
from nailstudio.admin.forms import ServiceForm, TimeSlotForm, GenerateSlotsForm, AppointmentStatusForm, ActionForm
from nailstudio.admin.queries import list_appointments_with_users, list_users_with_email
from nailstudio.auth.guards import admin_required
from nailstudio.booking.reservation import set_appointment_status
from nailstudio.booking.slots import build_slot_grid
from nailstudio.errors import AuthorizationError, ReservationError
from nailstudio.models.appointment import Appointment, AppointmentService, BlockedSlot, STATUS_PENDING, STATUSES
from nailstudio.models.audit import AuditLog
from nailstudio.models.service import Service
from nailstudio.models.time_slot import TimeSlot, DAY_NAMES, MONDAY
from nailstudio.models.user import UserProfile
from nailstudio.utils.audit import log_audit

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _service_details(service):
    return {
        'name': service.name,
        'description': service.description,
        'price': service.price,
        'duration': service.duration,
        'image_url': service.image_url,
        'is_active': service.is_active
    }


def _slot_details(slot):
    return {
        'day_of_week': slot.day_of_week,
        'start_time': slot.start_time.strftime('%H:%M'),
        'end_time': slot.end_time.strftime('%H:%M'),
        'is_available': slot.is_available
    }


@admin_bp.errorhandler(AuthorizationError)
def handle_authorization_error(error):
    flash('Access denied. This area is for administrators only.', 'danger')
    return redirect(url_for('auth.login'))


@admin_bp.route('/')
@admin_required
def dashboard():
    """Admin dashboard with booking and catalogue counts"""
    try:
        stats = {
            'total_appointments': Appointment.query.count(),
            'pending_appointments': Appointment.query.filter_by(status=STATUS_PENDING).count(),
            'total_services': Service.query.count(),
            'total_users': UserProfile.query.count()
        }
        recent_appointments = Appointment.query.order_by(Appointment.created_at.desc()).limit(5).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching dashboard data: {e}")
        flash('Failed to load dashboard data. Please try again.', 'danger')
        stats, recent_appointments = None, []

    return render_template('admin/dashboard.html', stats=stats, recent_appointments=recent_appointments)


# -- Services --------------------------------------------------------------

@admin_bp.route('/services')
@admin_required
def services():
    """List all salon services"""
    services_list = Service.query.order_by(Service.name).all()
    return render_template('admin/services.html', services=services_list, action_form=ActionForm())


@admin_bp.route('/services/create', methods=['GET', 'POST'])
@admin_required
def create_service():
    """Create a new salon service"""
    form = ServiceForm()

    if form.validate_on_submit():
        service = Service(
            name=form.name.data,
            description=form.description.data or None,
            price=form.price.data,
            duration=form.duration.data,
            image_url=form.image_url.data or None,
            is_active=form.is_active.data
        )

        try:
            db.session.add(service)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error saving service: {e}")
            flash('Failed to save service. Please try again.', 'danger')
            return render_template('admin/service_form.html', form=form, service=None)

        log_audit('create', 'service', entity_id=service.id, details=_service_details(service))

        flash(f'Service {service.name} created successfully.', 'success')
        return redirect(url_for('admin.services'))

    return render_template('admin/service_form.html', form=form, service=None)


@admin_bp.route('/services/<int:service_id>/edit', methods=['GET', 'POST'])
@admin_required
def update_service(service_id):
    """Update an existing service"""
    service = db.get_or_404(Service, service_id)
    form = ServiceForm(obj=service)

    if form.validate_on_submit():
        old_values = _service_details(service)

        service.name = form.name.data
        service.description = form.description.data or None
        service.price = form.price.data
        service.duration = form.duration.data
        service.image_url = form.image_url.data or None
        service.is_active = form.is_active.data

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error saving service {service_id}: {e}")
            flash('Failed to save service. Please try again.', 'danger')
            return render_template('admin/service_form.html', form=form, service=service)

        log_audit('update', 'service', entity_id=service.id, details={
            'old_values': old_values,
            'new_values': _service_details(service)
        })

        flash(f'Service {service.name} updated successfully.', 'success')
        return redirect(url_for('admin.services'))

    return render_template('admin/service_form.html', form=form, service=service)


@admin_bp.route('/services/<int:service_id>/delete', methods=['POST'])
@admin_required
def delete_service(service_id):
    service = db.get_or_404(Service, service_id)
    details = _service_details(service)

    if AppointmentService.query.filter_by(service_id=service_id).first():
        flash('This service has been booked and cannot be deleted. Deactivate it instead.', 'danger')
        return redirect(url_for('admin.services'))

    try:
        db.session.delete(service)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting service {service_id}: {e}")
        flash('Failed to delete service. Please try again.', 'danger')
        return redirect(url_for('admin.services'))

    log_audit('delete', 'service', entity_id=service_id, details=details)
    flash(f'Service {details["name"]} deleted.', 'success')
    return redirect(url_for('admin.services'))


# -- Time slots ------------------------------------------------------------

@admin_bp.route('/time-slots')
@admin_required
def time_slots():
    """Weekly slot grid, one weekday at a time"""
    active_day = request.args.get('day', MONDAY, type=int)
    if active_day not in DAY_NAMES:
        active_day = MONDAY

    slots = TimeSlot.query.filter_by(day_of_week=active_day).order_by(TimeSlot.start_time).all()
    generate_form = GenerateSlotsForm(day_of_week=active_day)

    return render_template(
        'admin/time_slots.html',
        time_slots=slots,
        active_day=active_day,
        day_names=DAY_NAMES,
        generate_form=generate_form,
        action_form=ActionForm()
    )


@admin_bp.route('/time-slots/create', methods=['GET', 'POST'])
@admin_required
def create_time_slot():
    form = TimeSlotForm()
    form.id.data = ''
    if request.method == 'GET':
        form.day_of_week.data = request.args.get('day', MONDAY, type=int)

    if form.validate_on_submit():
        slot = TimeSlot(
            start_time=form.start_time.data,
            end_time=form.end_time.data,
            day_of_week=form.day_of_week.data,
            is_available=form.is_available.data
        )

        try:
            db.session.add(slot)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error saving time slot: {e}")
            flash('Failed to save time slot. Please try again.', 'danger')
            return render_template('admin/time_slot_form.html', form=form, time_slot=None)

        log_audit('create', 'time_slot', entity_id=slot.id, details=_slot_details(slot))
        flash('Time slot created.', 'success')
        return redirect(url_for('admin.time_slots', day=slot.day_of_week))

    return render_template('admin/time_slot_form.html', form=form, time_slot=None)


@admin_bp.route('/time-slots/<int:slot_id>/edit', methods=['GET', 'POST'])
@admin_required
def update_time_slot(slot_id):
    slot = db.get_or_404(TimeSlot, slot_id)
    form = TimeSlotForm(obj=slot)
    form.id.data = str(slot.id)

    if form.validate_on_submit():
        old_values = _slot_details(slot)

        slot.start_time = form.start_time.data
        slot.end_time = form.end_time.data
        slot.day_of_week = form.day_of_week.data
        slot.is_available = form.is_available.data

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error saving time slot {slot_id}: {e}")
            flash('Failed to save time slot. Please try again.', 'danger')
            return render_template('admin/time_slot_form.html', form=form, time_slot=slot)

        log_audit('update', 'time_slot', entity_id=slot.id, details={
            'old_values': old_values,
            'new_values': _slot_details(slot)
        })
        flash('Time slot updated.', 'success')
        return redirect(url_for('admin.time_slots', day=slot.day_of_week))

    return render_template('admin/time_slot_form.html', form=form, time_slot=slot)


@admin_bp.route('/time-slots/<int:slot_id>/delete', methods=['POST'])
@admin_required
def delete_time_slot(slot_id):
    slot = db.get_or_404(TimeSlot, slot_id)
    details = _slot_details(slot)
    day = slot.day_of_week

    if BlockedSlot.query.filter_by(time_slot_id=slot_id).first():
        flash('This time slot is used by existing appointments. Mark it unavailable instead.', 'danger')
        return redirect(url_for('admin.time_slots', day=day))

    try:
        db.session.delete(slot)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting time slot {slot_id}: {e}")
        flash('Failed to delete time slot. Please try again.', 'danger')
        return redirect(url_for('admin.time_slots', day=day))

    log_audit('delete', 'time_slot', entity_id=slot_id, details=details)
    flash('Time slot deleted.', 'success')
    return redirect(url_for('admin.time_slots', day=day))


@admin_bp.route('/time-slots/generate', methods=['POST'])
@admin_required
def generate_time_slots():
    """Fill one weekday with 30 minute slots between opening and closing time"""
    form = GenerateSlotsForm()

    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        return redirect(url_for('admin.time_slots', day=form.day_of_week.data or MONDAY))

    day = form.day_of_week.data
    existing = {slot.start_time for slot in TimeSlot.query.filter_by(day_of_week=day).all()}
    new_slots = build_slot_grid(day, form.open_time.data, form.close_time.data, existing)

    try:
        db.session.add_all(new_slots)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error generating time slots for day {day}: {e}")
        flash('Failed to generate time slots. Please try again.', 'danger')
        return redirect(url_for('admin.time_slots', day=day))

    log_audit('create', 'time_slot', details={
        'day_of_week': day,
        'open_time': form.open_time.data.strftime('%H:%M'),
        'close_time': form.close_time.data.strftime('%H:%M'),
        'created': len(new_slots)
    })
    flash(f'{len(new_slots)} time slots added for {DAY_NAMES[day]}.', 'success')
    return redirect(url_for('admin.time_slots', day=day))


# -- Appointments ----------------------------------------------------------

@admin_bp.route('/appointments')
@admin_required
def appointments():
    """View all salon appointments with customer details"""
    status_filter = request.args.get('status', 'all')

    try:
        appointments_list = list_appointments_with_users(
            g.auth.user, status=status_filter if status_filter in STATUSES else None
        )
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching appointments: {e}")
        flash('Failed to load appointments. Please try again.', 'danger')
        appointments_list = []

    return render_template(
        'admin/appointments.html',
        appointments=appointments_list,
        status_filter=status_filter,
        statuses=list(STATUSES),
        status_form=AppointmentStatusForm()
    )


@admin_bp.route('/appointments/<int:appointment_id>/status', methods=['POST'])
@admin_required
def update_appointment_status(appointment_id):
    appointment = db.get_or_404(Appointment, appointment_id)
    form = AppointmentStatusForm()

    if not form.validate_on_submit():
        flash('Invalid appointment status.', 'danger')
        return redirect(url_for('admin.appointments'))

    old_status = appointment.status
    try:
        set_appointment_status(appointment, form.status.data)
    except ReservationError as e:
        flash(str(e), 'danger')
        return redirect(url_for('admin.appointments'))

    log_audit('update', 'appointment', entity_id=appointment.id, details={
        'old_status': old_status,
        'new_status': appointment.status
    })
    flash(f'Appointment marked as {appointment.status}.', 'success')
    return redirect(url_for('admin.appointments', status=request.args.get('filter', 'all')))


# -- Users -----------------------------------------------------------------

@admin_bp.route('/users')
@admin_required
def users():
    """List all customers and admins, optionally filtered by a search term"""
    search = request.args.get('q', '')

    try:
        profiles = list_users_with_email(g.auth.user, search=search)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching users: {e}")
        flash('Failed to load users. Please try again.', 'danger')
        profiles = []

    return render_template('admin/users.html', profiles=profiles, search=search, action_form=ActionForm())


@admin_bp.route('/users/<int:user_id>/toggle-admin', methods=['POST'])
@admin_required
def toggle_admin(user_id):
    profile = db.get_or_404(UserProfile, user_id)

    if profile.id == g.auth.user.id:
        flash('You cannot change your own admin access.', 'danger')
        return redirect(url_for('admin.users'))

    profile.is_admin = not profile.is_admin
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating admin flag for user {user_id}: {e}")
        flash('Failed to update user. Please try again.', 'danger')
        return redirect(url_for('admin.users'))

    log_audit('update', 'user', entity_id=profile.id, details={'is_admin': profile.is_admin})
    verb = 'granted' if profile.is_admin else 'revoked'
    flash(f'Admin access {verb} for {profile.full_name or profile.user.email}.', 'success')
    return redirect(url_for('admin.users'))


# -- Audit log -------------------------------------------------------------

@admin_bp.route('/audit-logs')
@admin_required
def audit_logs():
    """View the audit trail with filtering options"""
    action_filter = request.args.get('action', '')
    entity_type_filter = request.args.get('entity_type', '')
    entity_id_filter = request.args.get('entity_id', type=int)

    if entity_type_filter:
        query = AuditLog.for_entity(entity_type_filter, entity_id_filter)
    else:
        query = AuditLog.query
    if action_filter:
        query = query.filter(AuditLog.action == action_filter)

    page = request.args.get('page', 1, type=int)
    pagination = query.order_by(AuditLog.timestamp.desc()).paginate(page=page, per_page=50, error_out=False)

    actions = [row[0] for row in db.session.query(AuditLog.action).distinct().all()]
    entity_types = [row[0] for row in db.session.query(AuditLog.entity_type).distinct().all()]

    return render_template(
        'admin/audit_logs.html',
        audit_logs=pagination.items,
        pagination=pagination,
        actions=actions,
        entity_types=entity_types,
        filters={'action': action_filter, 'entity_type': entity_type_filter, 'entity_id': entity_id_filter or ''}
    )
