from functools import wraps
from flask import g, flash, redirect, render_template, request, url_for

from nailstudio.auth.authorization import require_admin
from nailstudio.errors import AuthorizationError


def requires(capability, message):
    """
    Build a route decorator that lets a request through only when
    ``capability(holder)`` is true for the current SessionHolder.

    While the holder is still resolving the loading page is shown instead.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            holder = g.get('auth')
            if holder is None or holder.is_loading:
                return render_template('loading.html'), 503
            if not capability(holder):
                flash(message, 'danger')
                return redirect(url_for('auth.login', next=request.full_path))
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def _has_identity(holder):
    return holder.is_authenticated


def _has_admin(holder):
    if not holder.is_authenticated:
        return False
    try:
        require_admin(holder.user)
    except AuthorizationError:
        return False
    return True


identity_required = requires(_has_identity, 'Please log in to access this page.')
admin_required = requires(_has_admin, 'Access denied. This area is for administrators only.')
