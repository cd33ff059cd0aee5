"""Thin facade over the identity store (Flask-Login session + users table)"""
from flask import current_app
from flask_login import login_user, logout_user, current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from nailstudio import db
from nailstudio.errors import IdentityError
from nailstudio.models.user import User, UserProfile


def sign_up(email, password, full_name=None, phone=None):
    """Create an identity and its profile together, or neither"""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise IdentityError('An account with this email already exists.')

    try:
        user = User(email=email, password=password)
        user.profile = UserProfile(full_name=full_name or None, phone=phone or None, is_admin=False)
        db.session.add(user)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise IdentityError('An account with this email already exists.') from e
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating account for {email}: {e}")
        raise IdentityError('Account could not be created. Please try again.') from e

    return user


def authenticate(email, password):
    """Return the user for valid credentials without starting a session"""
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None or not user.check_password(password):
        raise IdentityError('Invalid email or password.')
    return user


def sign_in(email, password, remember=False):
    user = authenticate(email, password)
    login_user(user, remember=remember)
    return user


def sign_out():
    logout_user()


def get_session():
    """The signed in user, or None"""
    if current_user and current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def is_user_admin(user_id):
    """Privileged admin-flag lookup; any store failure counts as not admin"""
    try:
        profile = db.session.get(UserProfile, user_id)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error checking admin status for user {user_id}: {e}")
        return False
    return bool(profile and profile.is_admin)
