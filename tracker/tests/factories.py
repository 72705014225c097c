from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from tracker.models import User
from tracker.services.modules import ACADEMIC, OPD, SURGERY, WETLAB

PASSWORD = 'P@ssw0rd123'


def make_user(email, role, password=PASSWORD, **extra):
    extra.setdefault('full_name', email.split('@')[0])
    return User.objects.create_user(username=email, email=email, password=password, role=role, **extra)


def client_for(user):
    client = APIClient()
    token, _ = Token.objects.get_or_create(user=user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.key}')
    return client


def surgery_payload(patient='Ravi Kumar', score=4, overrides=None, **extra):
    """Every item scored ``score``; ``overrides`` maps item key to (score, remark)."""
    overrides = overrides or {}
    answers = []
    for key in SURGERY.item_keys:
        value, remark = overrides.get(key, (score, ''))
        answers.append({'itemKey': key, 'scoreValue': value, 'remark': remark})
    data = {'patientName': patient, 'surgeryName': 'SICS', 'answers': answers}
    data.update(extra)
    return data


def opd_payload(no=(), **extra):
    answers = [{'itemKey': k, 'ynValue': 'N' if k in no else 'Y'} for k in OPD.item_keys]
    data = {'procedureName': 'Refraction', 'answers': answers}
    data.update(extra)
    return data


def wetlab_payload(score=4, **extra):
    data = {'exerciseName': 'Goat eye SICS', 'scores': {k: score for k in WETLAB.item_keys}}
    data.update(extra)
    return data


def academic_payload(score=4, **extra):
    data = {'evaluationType': 'SEMINAR', 'topic': 'Glaucoma', 'scores': {k: score for k in ACADEMIC.item_keys}}
    data.update(extra)
    return data
