from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError

from nailstudio.admin.queries import (list_appointments_with_users, list_users_with_email,
                                      serialize_appointment, serialize_user)
from nailstudio.auth.identity import authenticate
from nailstudio.auth.tokens import issue_api_token, verify_api_token, token_from_header
from nailstudio.errors import AuthorizationError, IdentityError

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.errorhandler(AuthorizationError)
def handle_authorization_error(error):
    return jsonify({'error': error.message}), 403


@api_bp.errorhandler(SQLAlchemyError)
def handle_store_error(error):
    current_app.logger.error(f"Store error in API request {request.path}: {error}")
    return jsonify({'error': 'Internal server error'}), 500


def _requester():
    """The user a bearer token in the Authorization header was issued to"""
    return verify_api_token(token_from_header(request.headers.get('Authorization')))


@api_bp.route('/token', methods=['POST'])
def token():
    """Exchange email and password for a bearer token"""
    payload = request.get_json(silent=True) or {}
    email = payload.get('email')
    password = payload.get('password')

    if not email or not password:
        return jsonify({'error': 'Email and password are required'}), 400

    try:
        user = authenticate(email, password)
    except IdentityError as e:
        return jsonify({'error': str(e)}), 403

    return jsonify({
        'access_token': issue_api_token(user),
        'token_type': 'bearer',
        'expires_in': current_app.config['API_TOKEN_MAX_AGE']
    })


@api_bp.route('/admin/appointments')
def get_appointments():
    """All appointments joined with the booking customer's details"""
    appointments = list_appointments_with_users(_requester(), status=request.args.get('status'))
    return jsonify([serialize_appointment(a) for a in appointments])


@api_bp.route('/admin/users')
def list_users():
    """All user profiles joined with their sign-in email"""
    profiles = list_users_with_email(_requester(), search=request.args.get('q'))
    return jsonify([serialize_user(p) for p in profiles])
