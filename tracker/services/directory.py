"""
Faculty and intern directory.

Faculty accounts are created by the HOD with an onboarding code as the
initial password.  The programme must always keep at least one active
HOD, so the last one can be neither demoted nor deactivated, and HOD
accounts are never deleted through the API.
"""
import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.exceptions import NotFound, PermissionDenied

from tracker.models import Batch
from tracker.services.audit import log_action
from tracker.services.notifications import make_onboarding_code, send_onboarding_email

logger = logging.getLogger(__name__)
User = get_user_model()


def serialize_user(u: User) -> dict:
    data = {
        'id': u.pk,
        'fullName': u.full_name,
        'email': u.email,
        'role': u.role,
        'isActive': u.is_active,
    }
    if u.role == User.ROLE_INTERN:
        data['regNo'] = u.reg_no
        data['batch'] = {
            'id': u.batch_id,
            'name': u.batch.name,
            'status': u.batch.status,
        } if u.batch_id else None
    return data


def get_staff(user_id) -> User:
    try:
        return User.objects.get(pk=user_id, role__in=[User.ROLE_FACULTY, User.ROLE_HOD])
    except User.DoesNotExist:
        raise NotFound('Faculty not found')


def create_faculty(*, full_name: str, email: str, role: str, created_by, ip: Optional[str] = None) -> User:
    code = make_onboarding_code()
    with transaction.atomic():
        user = User.objects.create_user(
            username=email, email=email, password=code, full_name=full_name, role=role,
        )
        log_action(user=created_by, action='faculty_create', object_type='User', object_id=user.pk,
                   detail={'email': email, 'role': role}, ip=ip)
        transaction.on_commit(lambda: send_onboarding_email(
            email=email, full_name=full_name, role=role, code=code,
        ))
    logger.info('%s account %s created', role, email)
    return user


def list_faculty() -> list[dict]:
    qs = User.objects.filter(role__in=[User.ROLE_FACULTY, User.ROLE_HOD]).order_by('full_name', 'id')
    return [serialize_user(u) for u in qs]


def _active_hod_count() -> int:
    return User.objects.filter(role=User.ROLE_HOD, is_active=True).count()


def update_faculty(user_id, *, changes: dict, updated_by, ip: Optional[str] = None) -> User:
    with transaction.atomic():
        target = get_staff(user_id)
        # serialise concurrent HOD changes
        list(User.objects.select_for_update().filter(role=User.ROLE_HOD, is_active=True))
        losing_hod = target.role == User.ROLE_HOD and target.is_active and (
            changes.get('role', User.ROLE_HOD) != User.ROLE_HOD or changes.get('isActive') is False
        )
        if losing_hod and _active_hod_count() <= 1:
            logger.warning('Refused to demote or deactivate the last active HOD (%s)', target.email)
            raise PermissionDenied('Cannot demote or deactivate the last active HOD')

        if 'fullName' in changes:
            target.full_name = changes['fullName']
        if 'email' in changes:
            target.email = changes['email']
            target.username = changes['email']
        if 'role' in changes:
            target.role = changes['role']
        if 'isActive' in changes:
            target.is_active = changes['isActive']
        target.save()
        log_action(user=updated_by, action='faculty_update', object_type='User', object_id=target.pk,
                   detail=dict(changes), ip=ip)
    logger.info('Staff account %s updated: %s', target.pk, ', '.join(sorted(changes)))
    return target


def delete_faculty(user_id, *, deleted_by, ip: Optional[str] = None) -> None:
    with transaction.atomic():
        target = get_staff(user_id)
        if target.role == User.ROLE_HOD:
            logger.warning('Refused to delete HOD account %s', target.email)
            raise PermissionDenied('HOD accounts cannot be deleted')
        email = target.email
        target.delete()
        log_action(user=deleted_by, action='faculty_delete', object_type='User', object_id=user_id,
                   detail={'email': email}, ip=ip)
    logger.info('Faculty account %s deleted', email)


def list_interns() -> list[dict]:
    qs = User.objects.filter(role=User.ROLE_INTERN).select_related('batch').order_by('full_name', 'id')
    return [serialize_user(u) for u in qs]


def find_intern(identifier: str) -> User:
    """Look an intern up by numeric id or by registration number."""
    identifier = (identifier or '').strip()
    qs = User.objects.filter(role=User.ROLE_INTERN).select_related('batch')
    intern = None
    if identifier.isdigit():
        intern = qs.filter(pk=int(identifier)).first()
    if intern is None and identifier:
        intern = qs.filter(reg_no__iexact=identifier).first()
    if intern is None:
        raise NotFound('Intern not found')
    return intern


def dashboard_stats() -> dict:
    return {
        'activeBatches': Batch.objects.filter(status=Batch.STATUS_ACTIVE).count(),
        'totalBatches': Batch.objects.count(),
        'faculty': User.objects.filter(role=User.ROLE_FACULTY, is_active=True).count(),
        'hods': User.objects.filter(role=User.ROLE_HOD, is_active=True).count(),
        'interns': User.objects.filter(role=User.ROLE_INTERN, is_active=True).count(),
    }
