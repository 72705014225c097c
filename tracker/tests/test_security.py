import pytest
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from tracker.models import AuditEvent, User
from tracker.tests.factories import PASSWORD, make_user

pytestmark = pytest.mark.django_db


def login(client, email, password):
    return client.post('/api/auth/login', {'email': email, 'password': password}, format='json')


def test_login_returns_bearer_token(faculty):
    client = APIClient()
    r = login(client, faculty.email, PASSWORD)
    assert r.status_code == 200
    assert r.data['success'] is True
    token = r.data['data']['token']
    assert r.data['data']['user']['role'] == User.ROLE_FACULTY

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    me = client.get('/api/auth/me')
    assert me.status_code == 200
    assert me.data['data']['email'] == faculty.email


def test_login_email_is_case_insensitive(faculty):
    r = login(APIClient(), 'FACULTY@hospital.edu', PASSWORD)
    assert r.status_code == 200


def test_login_wrong_password(faculty):
    r = login(APIClient(), faculty.email, 'nope-nope')
    assert r.status_code == 401
    assert r.data == {'success': False, 'error': 'Invalid email or password'}
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_login_ignores_role_in_payload(intern):
    client = APIClient()
    r = client.post('/api/auth/login', {'email': intern.email, 'password': PASSWORD, 'role': 'HOD'}, format='json')
    assert r.status_code == 200
    intern.refresh_from_db()
    assert intern.role == User.ROLE_INTERN


def test_disabled_account_cannot_login(faculty):
    faculty.is_active = False
    faculty.save()
    r = login(APIClient(), faculty.email, PASSWORD)
    assert r.status_code == 403


def test_missing_token_is_401():
    r = APIClient().get('/api/auth/me')
    assert r.status_code == 401
    assert r.data['success'] is False


def test_invalid_token_is_401():
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
    r = client.get('/api/auth/me')
    assert r.status_code == 401
    assert r.data['error'] == 'Not authorized, token failed'


def test_token_of_disabled_account_is_403(faculty, faculty_client):
    faculty.is_active = False
    faculty.save()
    r = faculty_client.get('/api/auth/me')
    assert r.status_code == 403
    assert r.data['error'] == 'User account is deactivated'


def test_logout_deletes_token(faculty, faculty_client):
    r = faculty_client.post('/api/auth/logout')
    assert r.status_code == 200
    assert not Token.objects.filter(user=faculty).exists()
    assert faculty_client.get('/api/auth/me').status_code == 401


def test_intern_profile_includes_batch(intern_client, batch):
    r = intern_client.get('/api/auth/me')
    assert r.data['data']['batch'] == {'id': batch.id, 'name': batch.name, 'status': batch.status}


def test_role_gates(intern_client, faculty_client):
    assert intern_client.get('/api/admin/stats').status_code == 403
    assert faculty_client.get('/api/admin/stats').status_code == 403
    assert faculty_client.get('/api/admin/audit').status_code == 403


def test_healthz_is_public():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'success': True, 'data': {'db': True}}


def test_new_user_has_no_token_until_login():
    u = make_user('fresh@hospital.edu', User.ROLE_FACULTY)
    assert not Token.objects.filter(user=u).exists()
