from flask import current_app

from nailstudio.auth.identity import is_user_admin
from nailstudio.errors import AuthorizationError


def require_admin(user):
    """
    The authorization check shared by every privileged operation:
    pages, JSON endpoints and admin queries all go through here.
    """
    if user is None or not getattr(user, 'is_authenticated', False):
        raise AuthorizationError('Authentication required')
    if not is_user_admin(user.id):
        current_app.logger.warning(f"User {user.id} denied access to a privileged operation")
        raise AuthorizationError('User is not an admin')
    return user
