import pytest

from tracker.models import AuditEvent, User
from tracker.tests.factories import make_user

pytestmark = pytest.mark.django_db


def test_create_faculty_sends_onboarding_email(hod_client, mailoutbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = hod_client.post('/api/admin/faculty', {'fullName': 'Dr Meera', 'email': 'Meera@Hospital.edu'},
                            format='json')
    assert r.status_code == 201
    assert r.data['data']['email'] == 'meera@hospital.edu'
    assert r.data['data']['role'] == User.ROLE_FACULTY
    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == ['meera@hospital.edu']
    assert AuditEvent.objects.filter(action='faculty_create').exists()


def test_create_faculty_rejects_taken_email(hod_client, faculty):
    r = hod_client.post('/api/admin/faculty', {'fullName': 'Dr Other', 'email': faculty.email}, format='json')
    assert r.status_code == 400


def test_list_faculty_includes_hod(hod_client, hod, faculty):
    r = hod_client.get('/api/admin/faculty')
    assert r.status_code == 200
    assert {u['email'] for u in r.data['data']} == {hod.email, faculty.email}


def test_update_faculty(hod_client, faculty):
    r = hod_client.put(f'/api/admin/faculty/{faculty.id}', {'fullName': 'Dr R. Rao', 'isActive': False},
                       format='json')
    assert r.status_code == 200
    faculty.refresh_from_db()
    assert faculty.full_name == 'Dr R. Rao'
    assert faculty.is_active is False


def test_last_hod_cannot_be_demoted_or_deactivated(hod_client, hod):
    r = hod_client.put(f'/api/admin/faculty/{hod.id}', {'role': User.ROLE_FACULTY}, format='json')
    assert r.status_code == 403
    r = hod_client.put(f'/api/admin/faculty/{hod.id}', {'isActive': False}, format='json')
    assert r.status_code == 403
    hod.refresh_from_db()
    assert hod.role == User.ROLE_HOD and hod.is_active


def test_hod_can_be_demoted_when_another_exists(hod_client, hod):
    second = make_user('hod2@hospital.edu', User.ROLE_HOD)
    r = hod_client.put(f'/api/admin/faculty/{second.id}', {'role': User.ROLE_FACULTY}, format='json')
    assert r.status_code == 200
    second.refresh_from_db()
    assert second.role == User.ROLE_FACULTY


def test_delete_faculty_but_never_hod(hod_client, hod, faculty):
    r = hod_client.delete(f'/api/admin/faculty/{faculty.id}')
    assert r.status_code == 200
    assert not User.objects.filter(pk=faculty.id).exists()

    r = hod_client.delete(f'/api/admin/faculty/{hod.id}')
    assert r.status_code == 403
    assert User.objects.filter(pk=hod.id).exists()


def test_faculty_detail_unknown_is_404(hod_client, intern):
    assert hod_client.delete(f'/api/admin/faculty/{intern.id}').status_code == 404


def test_faculty_routes_are_hod_only(faculty_client):
    assert faculty_client.get('/api/admin/faculty').status_code == 403


def test_intern_list_for_evaluators(faculty_client, intern_client, intern, batch):
    r = faculty_client.get('/api/admin/interns')
    assert r.status_code == 200
    assert r.data['data'][0]['regNo'] == 'PG-001'
    assert r.data['data'][0]['batch']['name'] == batch.name
    assert intern_client.get('/api/admin/interns').status_code == 403


def test_stats(hod_client, faculty, intern, other_intern):
    r = hod_client.get('/api/admin/stats')
    assert r.status_code == 200
    assert r.data['data']['activeBatches'] == 1
    assert r.data['data']['faculty'] == 1
    assert r.data['data']['interns'] == 2


def test_audit_log_lists_recent_actions(hod_client, faculty):
    hod_client.put(f'/api/admin/faculty/{faculty.id}', {'fullName': 'Dr Renamed'}, format='json')
    r = hod_client.get('/api/admin/audit?limit=5')
    assert r.status_code == 200
    assert r.data['data'][0]['action'] == 'faculty_update'
    assert r.data['data'][0]['objectId'] == str(faculty.id)


def test_validate_intern_by_id_or_reg_no(faculty_client, intern):
    r = faculty_client.get(f'/api/interns/validate/{intern.id}')
    assert r.status_code == 200
    assert r.data['data']['email'] == intern.email

    r = faculty_client.get('/api/interns/validate/pg-001')
    assert r.status_code == 200
    assert r.data['data']['id'] == intern.id

    r = faculty_client.get('/api/interns/validate/NOPE-9')
    assert r.status_code == 404
