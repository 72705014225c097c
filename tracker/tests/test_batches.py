import datetime

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from tracker.models import AuditEvent, Batch, BatchIntern, User
from tracker.services.batches import create_batch
from tracker.tests.factories import make_user

pytestmark = pytest.mark.django_db


def intern_rows(n=4, prefix='pg'):
    return [{'fullName': f'Intern {i}', 'email': f'{prefix}{i}@hospital.edu', 'regNo': f'PG-{i:03d}'}
            for i in range(1, n + 1)]


def batch_payload(**overrides):
    data = {
        'name': 'January 2027',
        'startDate': (timezone.localdate() + datetime.timedelta(days=7)).isoformat(),
        'interns': intern_rows(),
    }
    data.update(overrides)
    return data


def test_create_batch_with_four_interns(hod_client, mailoutbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = hod_client.post('/api/admin/batches', batch_payload(), format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['status'] == Batch.STATUS_ACTIVE
    assert [i['email'] for i in data['interns']] == [f'pg{i}@hospital.edu' for i in range(1, 5)]

    batch = Batch.objects.get()
    interns = User.objects.filter(batch=batch)
    assert interns.count() == 4
    assert all(u.role == User.ROLE_INTERN for u in interns)
    assert BatchIntern.objects.filter(batch=batch, user__isnull=False).count() == 4
    assert len(mailoutbox) == 4
    assert AuditEvent.objects.filter(action='batch_create').count() == 1


def test_onboarding_code_is_initial_password(hod_client, mailoutbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        hod_client.post('/api/admin/batches', batch_payload(), format='json')
    message = next(m for m in mailoutbox if m.to == ['pg1@hospital.edu'])
    code = message.body.split('\n\n')[2].strip()
    assert User.objects.get(email='pg1@hospital.edu').check_password(code)


@pytest.mark.parametrize('n', [3, 5])
def test_batch_must_have_exactly_four(hod_client, n):
    r = hod_client.post('/api/admin/batches', batch_payload(interns=intern_rows(n)), format='json')
    assert r.status_code == 400
    assert 'exactly 4' in r.data['error']
    assert not Batch.objects.exists()
    assert not User.objects.filter(role=User.ROLE_INTERN).exists()
    assert not BatchIntern.objects.exists()


def test_batch_start_date_cannot_be_past(hod_client):
    yesterday = (timezone.localdate() - datetime.timedelta(days=1)).isoformat()
    r = hod_client.post('/api/admin/batches', batch_payload(startDate=yesterday), format='json')
    assert r.status_code == 400
    assert not Batch.objects.exists()


def test_batch_start_date_today_is_allowed(hod_client):
    r = hod_client.post('/api/admin/batches', batch_payload(startDate=timezone.localdate().isoformat()),
                        format='json')
    assert r.status_code == 201


def test_duplicate_email_within_request(hod_client):
    rows = intern_rows()
    rows[3]['email'] = rows[0]['email']
    r = hod_client.post('/api/admin/batches', batch_payload(interns=rows), format='json')
    assert r.status_code == 400
    assert 'Duplicate' in r.data['error']
    assert not Batch.objects.exists()


def test_duplicate_email_against_existing_user(hod_client, faculty):
    rows = intern_rows()
    rows[2]['email'] = faculty.email
    r = hod_client.post('/api/admin/batches', batch_payload(interns=rows), format='json')
    assert r.status_code == 400
    assert faculty.email in r.data['error']
    assert not Batch.objects.exists()
    assert User.objects.filter(role=User.ROLE_INTERN).count() == 0


def test_duplicate_email_check_ignores_case(hod_client):
    make_user('Dr.Rao@Hospital.edu', User.ROLE_FACULTY)
    rows = intern_rows()
    rows[1]['email'] = 'dr.rao@hospital.edu'
    r = hod_client.post('/api/admin/batches', batch_payload(interns=rows), format='json')
    assert r.status_code == 400
    assert 'dr.rao@hospital.edu' in r.data['error']
    assert not Batch.objects.exists()
    assert User.objects.filter(email__iexact='dr.rao@hospital.edu').count() == 1


def test_create_batch_rolls_back_completely(hod):
    make_user('pg4@hospital.edu', User.ROLE_FACULTY)
    with pytest.raises(ValidationError):
        create_batch(name='Broken', start_date=timezone.localdate(), interns=intern_rows(), created_by=hod)
    assert not Batch.objects.exists()
    assert not BatchIntern.objects.exists()
    assert not User.objects.filter(role=User.ROLE_INTERN).exists()


def test_only_hod_manages_batches(faculty_client, intern_client):
    assert faculty_client.post('/api/admin/batches', batch_payload(), format='json').status_code == 403
    assert intern_client.get('/api/admin/batches').status_code == 403


def test_list_archive_and_delete(hod_client, batch, intern):
    r = hod_client.get('/api/admin/batches')
    assert r.status_code == 200
    assert [b['id'] for b in r.data['data']] == [batch.id]

    r = hod_client.post(f'/api/admin/batches/{batch.id}/archive')
    assert r.status_code == 200
    assert r.data['data']['status'] == Batch.STATUS_ARCHIVED
    assert hod_client.post(f'/api/admin/batches/{batch.id}/archive').status_code == 400

    r = hod_client.delete(f'/api/admin/batches/{batch.id}')
    assert r.status_code == 200
    assert r.data['data']['unlinkedInterns'] == 1
    intern.refresh_from_db()
    assert intern.batch_id is None


def test_delete_with_purge_removes_interns(hod_client, batch, intern, other_intern):
    r = hod_client.delete(f'/api/admin/batches/{batch.id}?purge=true')
    assert r.status_code == 200
    assert r.data['data']['deletedInterns'] == 2
    assert not User.objects.filter(role=User.ROLE_INTERN).exists()
    assert not Batch.objects.exists()


def test_delete_unknown_batch_is_404(hod_client):
    assert hod_client.delete('/api/admin/batches/424242').status_code == 404
