from datetime import date

import pytest

from conftest import create_service, create_day_grid, next_weekday
from nailstudio import db
from nailstudio.auth.tokens import issue_api_token, verify_api_token, token_from_header
from nailstudio.booking.reservation import reserve_appointment
from nailstudio.errors import AuthorizationError
from nailstudio.models.time_slot import WEDNESDAY
from nailstudio.models.user import User


def get_token(client, email, password='secret123'):
    response = client.post('/api/token', json={'email': email, 'password': password})
    assert response.status_code == 200
    return response.get_json()['access_token']


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def booked(app, customer_id):
    """One appointment for the customer, two services, first slot of a Wednesday"""
    with app.app_context():
        services = [create_service('Gel Manicure', duration=45), create_service('Nail Art', duration=30)]
        slots = create_day_grid(WEDNESDAY)
        appointment = reserve_appointment(customer_id, next_weekday(WEDNESDAY), [s.id for s in services],
                                          slots[0].id, notes='Pastel colours', today=date.today())
        return appointment.id


# =========================================================
# TEST: POST /api/token
# =========================================================
def test_token_requires_credentials(client):
    response = client.post('/api/token', json={'email': 'admin@nailstudio.mk'})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Email and password are required'}


def test_token_rejects_bad_password(client, admin_id):
    response = client.post('/api/token', json={'email': 'admin@nailstudio.mk', 'password': 'wrong-one'})
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Invalid email or password.'


def test_token_response_shape(client, admin_id):
    response = client.post('/api/token', json={'email': 'admin@nailstudio.mk', 'password': 'secret123'})
    data = response.get_json()
    assert data['token_type'] == 'bearer'
    assert data['expires_in'] == 3600
    assert data['access_token']


# =========================================================
# TEST: GET /api/admin/appointments
# =========================================================
def test_appointments_without_header(client):
    response = client.get('/api/admin/appointments')
    assert response.status_code == 403
    assert response.get_json() == {'error': 'No authorization header'}


def test_appointments_with_garbage_token(client):
    response = client.get('/api/admin/appointments', headers=auth_header('not-a-token'))
    assert response.status_code == 403
    assert response.get_json() == {'error': 'Invalid user token'}


def test_appointments_forbidden_for_customers(client, customer_id):
    token = get_token(client, 'customer@nailstudio.mk')
    response = client.get('/api/admin/appointments', headers=auth_header(token))
    assert response.status_code == 403
    assert response.get_json() == {'error': 'User is not an admin'}


def test_appointments_joined_with_customer(client, admin_id, booked):
    token = get_token(client, 'admin@nailstudio.mk')
    response = client.get('/api/admin/appointments', headers=auth_header(token))
    assert response.status_code == 200

    data = response.get_json()
    assert len(data) == 1
    appointment = data[0]
    assert appointment['id'] == booked
    assert appointment['status'] == 'pending'
    assert appointment['notes'] == 'Pastel colours'
    assert appointment['time_slot'] == {'start_time': '09:00'}
    assert appointment['user_profiles']['full_name'] == 'Ana Petrova'
    assert appointment['user_profiles']['email'] == 'customer@nailstudio.mk'
    assert sorted(s['name'] for s in appointment['services']) == ['Gel Manicure', 'Nail Art']
    assert {s['price'] for s in appointment['services']} == {1200.0}


def test_appointments_status_filter(client, admin_id, booked):
    token = get_token(client, 'admin@nailstudio.mk')
    response = client.get('/api/admin/appointments?status=cancelled', headers=auth_header(token))
    assert response.get_json() == []


# =========================================================
# TEST: GET /api/admin/users
# =========================================================
def test_users_listing_and_search(client, admin_id, customer_id):
    token = get_token(client, 'admin@nailstudio.mk')

    data = client.get('/api/admin/users', headers=auth_header(token)).get_json()
    assert {u['email'] for u in data} == {'admin@nailstudio.mk', 'customer@nailstudio.mk'}

    data = client.get('/api/admin/users?q=petrova', headers=auth_header(token)).get_json()
    assert [u['id'] for u in data] == [customer_id]
    assert data[0]['is_admin'] is False


# =========================================================
# TEST: token helpers
# =========================================================
def test_expired_token_is_refused(app, admin_id):
    with app.app_context():
        token = issue_api_token(db.session.get(User, admin_id))
        with pytest.raises(AuthorizationError, match='expired'):
            verify_api_token(token, max_age=-1)


@pytest.mark.parametrize('header', [None, '', 'Basic abc', 'Bearer '])
def test_malformed_authorization_header(header):
    with pytest.raises(AuthorizationError, match='No authorization header'):
        token_from_header(header)
