from flask import current_app
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from nailstudio import db
from nailstudio.errors import AuthorizationError
from nailstudio.models.user import User

API_TOKEN_SALT = 'api-token'


def get_token_serializer():
    """Creates a secure token serializer using the app's secret key"""
    secret_key = current_app.config['SECRET_KEY']
    return URLSafeTimedSerializer(secret_key)


def issue_api_token(user):
    """Generate a timed bearer token for the privileged JSON endpoints"""
    s = get_token_serializer()
    return s.dumps({'user_id': user.id}, salt=API_TOKEN_SALT)


def verify_api_token(token, max_age=None):
    """Return the user a bearer token was issued to"""
    if max_age is None:
        max_age = current_app.config['API_TOKEN_MAX_AGE']
    s = get_token_serializer()
    try:
        payload = s.loads(token, salt=API_TOKEN_SALT, max_age=max_age)
    except SignatureExpired as e:
        raise AuthorizationError('Token has expired') from e
    except BadSignature as e:
        raise AuthorizationError('Invalid user token') from e

    user_id = payload.get('user_id') if isinstance(payload, dict) else None
    user = db.session.get(User, user_id) if user_id else None
    if user is None:
        raise AuthorizationError('Invalid user token')
    return user


def token_from_header(header_value):
    if not header_value:
        raise AuthorizationError('No authorization header')
    scheme, _, token = header_value.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise AuthorizationError('No authorization header')
    return token.strip()
