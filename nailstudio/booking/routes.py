from flask import Blueprint, render_template, redirect, url_for, flash, request, session, current_app, g
from sqlalchemy.exc import SQLAlchemyError
from datetime import date, timedelta

from nailstudio import db
from nailstudio.auth.guards import identity_required
from nailstudio.booking import slots as slot_logic
from nailstudio.booking.forms import (ServiceSelectionForm, DateSelectionForm, SlotSelectionForm,
                                      ConfirmBookingForm, StepForm)
from nailstudio.booking.reservation import (booked_slot_ids, day_grid, reserve_appointment,
                                            cancel_appointment as cancel_reservation)
from nailstudio.booking.wizard import (BookingWizard, STEP_SELECTING_SERVICES, STEP_SELECTING_DATETIME,
                                       STEP_CONFIRMING, STEP_SUBMITTING)
from nailstudio.errors import ReservationError, WizardError
from nailstudio.models.appointment import Appointment
from nailstudio.models.service import Service
from nailstudio.models.time_slot import TimeSlot
from nailstudio.utils.audit import log_audit

booking_bp = Blueprint('booking', __name__)

WIZARD_SESSION_KEY = 'booking_wizard'


def _today():
    return date.today()


def _load_wizard():
    return BookingWizard.from_dict(session.get(WIZARD_SESSION_KEY))


def _save_wizard(wizard):
    session[WIZARD_SESSION_KEY] = wizard.to_dict()


def _active_services():
    return Service.query.filter_by(is_active=True).order_by(Service.name).all()


def _selected_services(wizard):
    if not wizard.service_ids:
        return []
    return Service.query.filter(Service.id.in_(wizard.service_ids), Service.is_active.is_(True)).all()


def date_options(today, window_days, closed_weekday):
    """Bookable dates shown to the customer: tomorrow up to the booking window"""
    options = []
    for offset in range(1, window_days + 1):
        day = today + timedelta(days=offset)
        if slot_logic.is_bookable_date(day, today, closed_weekday):
            options.append(day)
    return options


def _start_options(wizard, services):
    """Selectable start slots for the wizard's date and services"""
    if not wizard.booking_date or not services:
        return []
    return slot_logic.find_start_options(
        day_grid(wizard.booking_date),
        wizard.booking_date,
        _today(),
        services,
        booked_slot_ids(wizard.booking_date),
        closed_weekday=current_app.config['CLOSED_WEEKDAY']
    )


@booking_bp.route('/book')
@identity_required
def book():
    """Multi-step booking: services, then date and time, then confirmation"""
    wizard = _load_wizard()
    if wizard.is_finished:
        wizard = BookingWizard()
        _save_wizard(wizard)
    elif wizard.step == STEP_SUBMITTING:
        wizard.fail('Your booking was not completed. Please confirm again.')
        _save_wizard(wizard)

    try:
        services = _active_services()
        selected_services = _selected_services(wizard)

        context = {
            'wizard': wizard,
            'services': services,
            'selected_services': selected_services,
            'total_price': slot_logic.total_price(selected_services),
            'total_duration': slot_logic.total_duration(selected_services),
            'step_form': StepForm(),
        }

        if wizard.step == STEP_SELECTING_SERVICES:
            form = ServiceSelectionForm(service_ids=wizard.service_ids)
            form.service_ids.choices = [(s.id, s.name) for s in services]
            context['form'] = form

        elif wizard.step == STEP_SELECTING_DATETIME:
            options = date_options(_today(), current_app.config['BOOKING_WINDOW_DAYS'],
                                   current_app.config['CLOSED_WEEKDAY'])
            if wizard.booking_date is None and options:
                wizard.choose_date(options[0])
                _save_wizard(wizard)
            context['date_options'] = options
            context['start_options'] = _start_options(wizard, selected_services)
            context['required_minutes'] = (slot_logic.required_slot_count(selected_services)
                                           * slot_logic.SLOT_MINUTES if selected_services else 0)

        elif wizard.step == STEP_CONFIRMING:
            context['time_slot'] = db.session.get(TimeSlot, wizard.time_slot_id) if wizard.time_slot_id else None
            context['form'] = ConfirmBookingForm(notes=wizard.notes)

    except SQLAlchemyError as e:
        current_app.logger.error(f"Error loading booking data: {e}")
        flash('Failed to load services and time slots. Please try again later.', 'danger')
        return render_template('booking/unavailable.html'), 500

    return render_template('booking/book.html', **context)


@booking_bp.route('/book/services', methods=['POST'])
@identity_required
def select_services():
    wizard = _load_wizard()
    form = ServiceSelectionForm()
    form.service_ids.choices = [(s.id, s.name) for s in _active_services()]

    if not form.validate_on_submit():
        flash('Please select services from the list.', 'danger')
        return redirect(url_for('booking.book'))

    try:
        if wizard.step != STEP_SELECTING_SERVICES:
            wizard = BookingWizard(notes=wizard.notes)
        wizard.set_services(form.service_ids.data)
        wizard.next_step()
    except WizardError as e:
        current_app.logger.warning(f"Booking wizard: {e}")
    _save_wizard(wizard)
    return redirect(url_for('booking.book'))


@booking_bp.route('/book/date', methods=['POST'])
@identity_required
def select_date():
    wizard = _load_wizard()
    form = DateSelectionForm()

    if not form.validate_on_submit():
        flash('Please select a valid date.', 'danger')
        return redirect(url_for('booking.book'))

    if not slot_logic.is_bookable_date(form.booking_date.data, _today(), current_app.config['CLOSED_WEEKDAY']):
        flash('Please select an upcoming opening day.', 'danger')
        return redirect(url_for('booking.book'))

    try:
        wizard.choose_date(form.booking_date.data)
    except WizardError as e:
        current_app.logger.warning(f"Booking wizard: {e}")
        flash('Please select your services first.', 'warning')
    _save_wizard(wizard)
    return redirect(url_for('booking.book'))


@booking_bp.route('/book/slot', methods=['POST'])
@identity_required
def select_slot():
    wizard = _load_wizard()
    form = SlotSelectionForm()

    if not form.validate_on_submit():
        flash('Please select a time slot.', 'danger')
        return redirect(url_for('booking.book'))

    try:
        # The date posted with the slot wins over an older date in the wizard
        wizard.choose_date(form.booking_date.data)

        services = _selected_services(wizard)
        if not services or not slot_logic.is_bookable_date(
                wizard.booking_date, _today(), current_app.config['CLOSED_WEEKDAY']):
            wizard.error = 'Please select an upcoming opening day.'
        else:
            choice = slot_logic.validate_start_slot(
                day_grid(wizard.booking_date),
                booked_slot_ids(wizard.booking_date),
                slot_logic.required_slot_count(services),
                form.time_slot_id.data
            )
            if wizard.choose_slot(choice):
                wizard.next_step()
    except WizardError as e:
        current_app.logger.warning(f"Booking wizard: {e}")
        flash('Please select your services first.', 'warning')
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error checking slot availability: {e}")
        flash('Failed to check availability. Please try again.', 'danger')

    _save_wizard(wizard)
    return redirect(url_for('booking.book'))


@booking_bp.route('/book/available-times')
@identity_required
def available_times():
    """HTMX endpoint listing start times for a date"""
    wizard = _load_wizard()
    date_str = request.args.get('date', '')

    try:
        selected_date = date.fromisoformat(date_str)
    except ValueError:
        return render_template('booking/partials/available_times.html',
                               error_message='Please select a valid date')

    if not slot_logic.is_bookable_date(selected_date, _today(), current_app.config['CLOSED_WEEKDAY']):
        return render_template('booking/partials/available_times.html', booking_date=selected_date,
                               error_message='Please select an upcoming opening day')

    try:
        services = _selected_services(wizard)
        if not services:
            return render_template('booking/partials/available_times.html', booking_date=selected_date,
                                   error_message='Please select your services first')
        options = slot_logic.find_start_options(
            day_grid(selected_date), selected_date, _today(), services,
            booked_slot_ids(selected_date), closed_weekday=current_app.config['CLOSED_WEEKDAY']
        )
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error generating available times: {e}")
        return render_template('booking/partials/available_times.html', booking_date=selected_date,
                               error_message='An error occurred. Please try again.')

    return render_template('booking/partials/available_times.html', booking_date=selected_date,
                           start_options=options, wizard=wizard, step_form=StepForm())


@booking_bp.route('/book/next', methods=['POST'])
@identity_required
def next_step():
    wizard = _load_wizard()
    try:
        wizard.next_step()
    except WizardError as e:
        current_app.logger.warning(f"Booking wizard: {e}")
    _save_wizard(wizard)
    return redirect(url_for('booking.book'))


@booking_bp.route('/book/back', methods=['POST'])
@identity_required
def previous_step():
    wizard = _load_wizard()
    try:
        wizard.back()
    except WizardError as e:
        current_app.logger.warning(f"Booking wizard: {e}")
    _save_wizard(wizard)
    return redirect(url_for('booking.book'))


@booking_bp.route('/book/reset', methods=['POST'])
@identity_required
def reset():
    session.pop(WIZARD_SESSION_KEY, None)
    return redirect(url_for('booking.book'))


@booking_bp.route('/book/confirm', methods=['POST'])
@identity_required
def confirm():
    """Submit the booking: one appointment, its services and its blocked slots"""
    wizard = _load_wizard()
    form = ConfirmBookingForm()

    if not form.validate_on_submit():
        flash('Special requests can be at most 500 characters.', 'danger')
        return redirect(url_for('booking.book'))

    try:
        wizard.set_notes(form.notes.data)
        wizard.begin_submit()
    except WizardError as e:
        current_app.logger.warning(f"Booking wizard: {e}")
        _save_wizard(wizard)
        return redirect(url_for('booking.book'))

    try:
        appointment = reserve_appointment(
            user_id=g.auth.user.id,
            booking_date=wizard.booking_date,
            service_ids=wizard.service_ids,
            start_slot_id=wizard.time_slot_id,
            notes=wizard.notes,
            today=_today(),
            closed_weekday=current_app.config['CLOSED_WEEKDAY']
        )
    except ReservationError as e:
        wizard.fail(str(e))
        _save_wizard(wizard)
        return redirect(url_for('booking.book'))

    wizard.succeed(appointment.id)
    session.pop(WIZARD_SESSION_KEY, None)

    log_audit('create', 'appointment', entity_id=appointment.id, details={
        'date': appointment.date,
        'time_slot_ids': [blocked.time_slot_id for blocked in appointment.blocked_slots],
        'services': [service.name for service in appointment.services],
        'total_price': appointment.total_price
    })

    flash('Appointment booked successfully! Please pay in cash at the time of your appointment.', 'success')
    return redirect(url_for('booking.my_appointments', new=appointment.id))


@booking_bp.route('/my-appointments')
@identity_required
def my_appointments():
    """Upcoming and past appointments of the signed in customer"""
    today = _today()
    new_appointment_id = request.args.get('new', type=int)

    try:
        appointments = Appointment.query.filter_by(user_id=g.auth.user.id).order_by(Appointment.date).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching appointments: {e}")
        flash('Failed to load your appointments. Please try again.', 'danger')
        appointments = []

    upcoming = [a for a in appointments if a.date >= today]
    past = [a for a in reversed(appointments) if a.date < today]

    return render_template(
        'booking/my_appointments.html',
        upcoming_appointments=upcoming,
        past_appointments=past,
        new_appointment_id=new_appointment_id,
        today=today,
        step_form=StepForm()
    )


@booking_bp.route('/my-appointments/<int:appointment_id>/cancel', methods=['POST'])
@identity_required
def cancel_appointment(appointment_id):
    """Cancel one of the customer's upcoming appointments"""
    appointment = db.get_or_404(Appointment, appointment_id)

    try:
        cancel_reservation(appointment, g.auth.user.id, _today())
    except ReservationError as e:
        flash(str(e), 'danger')
        return redirect(url_for('booking.my_appointments'))

    log_audit('cancel', 'appointment', entity_id=appointment.id, details={
        'date': appointment.date,
        'services': [service.name for service in appointment.services]
    })

    flash('Your appointment has been cancelled.', 'info')
    return redirect(url_for('booking.my_appointments'))
