import datetime

import pytest
from django.core.cache import cache

from tracker.models import Batch, User
from tracker.tests.factories import client_for, make_user


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def hod(db):
    return make_user('hod@hospital.edu', User.ROLE_HOD)


@pytest.fixture
def faculty(db):
    return make_user('faculty@hospital.edu', User.ROLE_FACULTY, full_name='Dr Rao')


@pytest.fixture
def batch(db):
    return Batch.objects.create(name='2026 Intake', start_date=datetime.date(2026, 11, 1))


@pytest.fixture
def intern(db, batch):
    return make_user('intern@hospital.edu', User.ROLE_INTERN, reg_no='PG-001', batch=batch)


@pytest.fixture
def other_intern(db, batch):
    return make_user('intern2@hospital.edu', User.ROLE_INTERN, reg_no='PG-002', batch=batch)


@pytest.fixture
def hod_client(hod):
    return client_for(hod)


@pytest.fixture
def faculty_client(faculty):
    return client_for(faculty)


@pytest.fixture
def intern_client(intern):
    return client_for(intern)
