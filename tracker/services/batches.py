"""
Batch administration.

A batch is created together with its interns in a single transaction:
the batch row, one user per intern and the snapshot rows either all
exist afterwards or none do.  Onboarding emails are only sent once the
transaction has committed.
"""
import logging
from functools import partial
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, ValidationError

from tracker.exceptions import StateConflict
from tracker.models import Batch, BatchIntern
from tracker.services.audit import log_action
from tracker.services.notifications import make_onboarding_code, send_onboarding_email

logger = logging.getLogger(__name__)
User = get_user_model()


def serialize_batch(b: Batch) -> dict:
    return {
        'id': b.pk,
        'name': b.name,
        'startDate': b.start_date.isoformat(),
        'endDate': b.end_date.isoformat() if b.end_date else None,
        'status': b.status,
        'createdAt': b.created_at.isoformat() if b.created_at else None,
        'interns': [{
            'userId': s.user_id,
            'fullName': s.full_name,
            'email': s.email,
            'regNo': s.reg_no,
        } for s in b.interns.all()],
    }


@transaction.atomic
def _create_batch_rows(name, start_date, end_date, interns, created_by, ip) -> Batch:
    batch = Batch.objects.create(name=name, start_date=start_date, end_date=end_date)
    for position, entry in enumerate(interns):
        code = make_onboarding_code()
        user = User.objects.create_user(
            username=entry['email'],
            email=entry['email'],
            password=code,
            full_name=entry['fullName'],
            role=User.ROLE_INTERN,
            reg_no=entry.get('regNo') or None,
            batch=batch,
        )
        BatchIntern.objects.create(
            batch=batch,
            user=user,
            full_name=entry['fullName'],
            email=entry['email'],
            reg_no=entry.get('regNo') or '',
            position=position,
        )
        transaction.on_commit(partial(
            send_onboarding_email,
            email=user.email, full_name=user.full_name, role=user.role, code=code,
        ))
    log_action(
        user=created_by, action='batch_create', object_type='Batch', object_id=batch.pk,
        detail={'name': name, 'interns': [i['email'] for i in interns]}, ip=ip,
    )
    return batch


def create_batch(*, name: str, start_date, interns: list[dict], created_by,
                 end_date=None, ip: Optional[str] = None) -> Batch:
    try:
        batch = _create_batch_rows(name, start_date, end_date, interns, created_by, ip)
    except IntegrityError:
        logger.warning('Batch %r rolled back: an intern email is already registered', name)
        raise ValidationError({'interns': 'An intern email is already registered'})
    logger.info('Batch %s (%s) created with %s interns', batch.pk, name, len(interns))
    return batch


def list_batches() -> list[dict]:
    qs = Batch.objects.prefetch_related('interns')
    return [serialize_batch(b) for b in qs]


def _get_batch(batch_id) -> Batch:
    try:
        return Batch.objects.get(pk=batch_id)
    except Batch.DoesNotExist:
        raise NotFound('Batch not found')


def archive_batch(batch_id, *, user, ip: Optional[str] = None) -> Batch:
    with transaction.atomic():
        batch = _get_batch(batch_id)
        if batch.status == Batch.STATUS_ARCHIVED:
            raise StateConflict('Batch is already archived')
        previous = batch.status
        batch.status = Batch.STATUS_ARCHIVED
        batch.save(update_fields=['status', 'updated_at'])
        log_action(user=user, action='batch_archive', object_type='Batch', object_id=batch.pk,
                   detail={'previousStatus': previous}, ip=ip)
    logger.info('Batch %s archived', batch.pk)
    return batch


def delete_batch(batch_id, *, user, purge: bool = False, ip: Optional[str] = None) -> dict:
    """Delete a batch; members are unlinked, or deleted with ``purge``."""
    with transaction.atomic():
        batch = _get_batch(batch_id)
        members = User.objects.filter(batch=batch, role=User.ROLE_INTERN)
        if purge:
            affected = {'deletedInterns': members.count()}
            members.delete()
        else:
            affected = {'unlinkedInterns': members.update(batch=None)}
        name = batch.name
        batch.delete()
        log_action(user=user, action='batch_delete', object_type='Batch', object_id=batch_id,
                   detail={'name': name, 'purge': purge, **affected}, ip=ip)
    logger.info('Batch %s deleted (purge=%s)', batch_id, purge)
    return {'id': batch_id, **affected}

