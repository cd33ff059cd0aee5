"""
Per-request view of who is signed in.

``SessionHolder`` is the only place session state changes: identity events
(Flask-Login signals plus ``identity_deleted``) are translated into
``dispatch`` calls. Views read it from ``g.auth``.
"""
from blinker import Namespace
from flask import g, flash, redirect, request, url_for, current_app
from flask_login import (current_user, logout_user, user_logged_in, user_logged_out,
                         session_protected)

from nailstudio.auth.identity import is_user_admin

_signals = Namespace()

# Sent when a session refers to an identity that has been removed
identity_deleted = _signals.signal('identity-deleted')

INITIAL_SESSION = 'initial_session'
SIGNED_IN = 'signed_in'
SIGNED_OUT = 'signed_out'
SESSION_EXPIRED = 'session_expired'
USER_DELETED = 'user_deleted'

LOST_SESSION_EVENTS = (SIGNED_OUT, SESSION_EXPIRED, USER_DELETED)


class SessionHolder:

    def __init__(self, admin_check):
        self._admin_check = admin_check
        self.user = None
        self.is_admin = False
        self.is_loading = True
        self.session_lost = False

    @property
    def is_authenticated(self):
        return self.user is not None

    def dispatch(self, event, user=None):
        if event in LOST_SESSION_EVENTS:
            self.user = None
            self.is_admin = False
            self.session_lost = True
        elif event in (INITIAL_SESSION, SIGNED_IN):
            self.user = user
            self.is_admin = bool(user) and self._admin_check(user.id)
            if user is not None:
                self.session_lost = False
        else:
            raise ValueError(f"Unknown session event: {event}")
        self.is_loading = False

    def __repr__(self):
        return f'<SessionHolder user={self.user!r} admin={self.is_admin} loading={self.is_loading}>'


def _dispatch(event, user=None):
    holder = g.get('auth')
    if holder is not None:
        holder.dispatch(event, user)


def _on_signed_in(sender, user, **extra):
    _dispatch(SIGNED_IN, user)


def _on_signed_out(sender, user=None, **extra):
    _dispatch(SIGNED_OUT)


def _on_session_protected(sender, **extra):
    _dispatch(SESSION_EXPIRED)


def _on_identity_deleted(sender, user_id=None, **extra):
    current_app.logger.info(f"Session referenced deleted identity {user_id}")
    _dispatch(USER_DELETED)


def resolve_session():
    """Build the holder for this request; redirect to login if the session was lost"""
    g.auth = SessionHolder(admin_check=is_user_admin)

    # Loading the user may fire identity_deleted / session_protected
    user = current_user._get_current_object()

    if g.auth.session_lost:
        logout_user()
        if request.blueprint == 'api' or request.endpoint in ('auth.login', 'static'):
            return None
        flash('Your session has ended. Please log in again.', 'info')
        return redirect(url_for('auth.login'))

    g.auth.dispatch(INITIAL_SESSION, user if user.is_authenticated else None)
    return None


def init_session_holder(app):
    user_logged_in.connect(_on_signed_in, app)
    user_logged_out.connect(_on_signed_out, app)
    session_protected.connect(_on_session_protected, app)
    identity_deleted.connect(_on_identity_deleted, app)

    app.before_request(resolve_session)

    @app.context_processor
    def inject_auth():
        return {'auth': g.get('auth')}
