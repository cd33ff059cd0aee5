from flask import Blueprint, render_template, redirect, url_for, flash, request, g
from nailstudio.auth.forms import LoginForm, RegistrationForm
from nailstudio.auth import identity
from nailstudio.errors import IdentityError
from nailstudio.utils.audit import log_audit

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _safe_next(default):
    next_page = request.args.get('next')
    if not next_page or not next_page.startswith('/') or next_page.startswith('//'):
        return default
    return next_page


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    if g.auth.is_authenticated:
        return redirect(url_for('booking.book'))

    form = RegistrationForm()

    if form.validate_on_submit():
        try:
            user = identity.sign_up(
                email=form.email.data,
                password=form.password.data,
                full_name=form.full_name.data,
                phone=form.phone.data
            )
        except IdentityError as e:
            flash(str(e), 'danger')
            return render_template('auth/register.html', form=form)

        log_audit('create', 'user', entity_id=user.id, user_id=user.id, details={
            'email': user.email,
            'full_name': form.full_name.data
        })

        flash('Registration successful! You can now log in.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('auth/register.html', form=form)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if g.auth.is_authenticated:
        return redirect(url_for('booking.book'))

    form = LoginForm()

    if form.validate_on_submit():
        try:
            user = identity.sign_in(form.email.data, form.password.data, remember=form.remember_me.data)
        except IdentityError as e:
            log_audit('attempt', 'login', details={
                'email': form.email.data,
                'reason': 'invalid_credentials'
            })
            flash(str(e), 'danger')
            return render_template('auth/login.html', form=form)

        log_audit('perform', 'login', entity_id=user.id, details={
            'email': user.email,
            'user_agent': request.user_agent.string,
            'remember_me': form.remember_me.data
        })

        default = url_for('admin.dashboard') if g.auth.is_admin else url_for('booking.book')
        flash('Login successful!', 'success')
        return redirect(_safe_next(default))

    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user = identity.get_session()
    if user is not None:
        log_audit('perform', 'logout', entity_id=user.id, details={'email': user.email})

    identity.sign_out()
    flash('You have been logged out.', 'info')
    return redirect(url_for('auth.login'))
