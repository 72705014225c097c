"""
Attempt lifecycle shared by every evaluation module.

An attempt is appended to the intern's container for a module under a row
lock on the container, so concurrent submissions always receive distinct,
dense numbers.  The streak for OPD competency is updated in the same
transaction as the attempt and its audit entry.
"""
import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from tracker.exceptions import StateConflict
from tracker.models import Attempt, EvaluationRecord, OpdCompetency
from tracker.services.audit import log_action
from tracker.services.modules import KIND_YESNO, EvaluationModule

logger = logging.getLogger(__name__)
User = get_user_model()

DEFAULT_OPD_GRADE = 'Average'


def get_intern_or_404(intern_id) -> User:
    try:
        return User.objects.select_related('batch').get(pk=intern_id, role=User.ROLE_INTERN)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound('Intern not found')


def _is_intern(user) -> bool:
    return getattr(user, 'role', None) == User.ROLE_INTERN


def check_read_access(viewer, intern_id) -> None:
    """Interns may only read their own evaluations."""
    if _is_intern(viewer) and str(viewer.pk) != str(intern_id):
        raise PermissionDenied('Not authorized to view these evaluations')


def _normalise_answers(module: EvaluationModule, answers) -> list[dict]:
    value_key = 'ynValue' if module.kind == KIND_YESNO else 'scoreValue'
    order = {k: i for i, k in enumerate(module.item_keys)}
    rows = [{
        'itemKey': a['itemKey'],
        value_key: a[value_key],
        'remark': a.get('remark') or '',
    } for a in answers]
    return sorted(rows, key=lambda r: order.get(r['itemKey'], len(order)))


def _header_details(module: EvaluationModule, data) -> dict:
    return {f: data[f] for f in module.header_fields if f in data}


def _check_unique_detail(module: EvaluationModule, record: EvaluationRecord, details: dict,
                         exclude_pk: Optional[int] = None) -> None:
    field = module.unique_detail
    if not field:
        return
    wanted = (details.get(field) or '').strip().lower()
    if not wanted:
        return
    for pk, existing in record.attempts.values_list('pk', 'details'):
        if pk == exclude_pk:
            continue
        if ((existing or {}).get(field) or '').strip().lower() == wanted:
            logger.warning('Duplicate %s %r rejected for intern %s', field, wanted, record.intern_id)
            raise ValidationError({field: f"An evaluation for '{details[field]}' already exists for this intern"})


def _lock_record(module: EvaluationModule, intern: User, code: str) -> EvaluationRecord:
    record, created = EvaluationRecord.objects.get_or_create(
        intern=intern, module=module.module, module_code=code,
    )
    if created:
        logger.info('Opened %s/%s record for intern %s', module.module, code, intern.pk)
    return EvaluationRecord.objects.select_for_update().get(pk=record.pk)


def _next_number(record: EvaluationRecord) -> int:
    EvaluationRecord.objects.filter(pk=record.pk).update(attempt_count=F('attempt_count') + 1)
    record.refresh_from_db(fields=['attempt_count'])
    return record.attempt_count


def _lock_competency(intern: User, code: str) -> OpdCompetency:
    comp, _ = OpdCompetency.objects.get_or_create(intern=intern, module_code=code)
    return OpdCompetency.objects.select_for_update().get(pk=comp.pk)


def reset_streak(intern: User, code: str) -> OpdCompetency:
    comp = _lock_competency(intern, code)
    if comp.consecutive_success_count or comp.competent:
        logger.info('OPD streak reset for intern %s on %s (was %s)', intern.pk, code, comp.consecutive_success_count)
    comp.consecutive_success_count = 0
    comp.competent = False
    comp.save(update_fields=['consecutive_success_count', 'competent', 'updated_at'])
    return comp


def advance_streak(intern: User, code: str) -> OpdCompetency:
    comp = _lock_competency(intern, code)
    comp.consecutive_success_count += 1
    if comp.consecutive_success_count >= settings.OPD_COMPETENCY_STREAK:
        if not comp.competent:
            logger.info('Intern %s reached OPD competency on %s', intern.pk, code)
        comp.competent = True
        # first achievement only
        if comp.achieved_at is None:
            comp.achieved_at = timezone.now()
    comp.save(update_fields=['consecutive_success_count', 'competent', 'achieved_at', 'updated_at'])
    return comp


def serialize_competency(comp: Optional[OpdCompetency], code: str) -> dict:
    if comp is None:
        return {'moduleCode': code, 'consecutiveSuccessCount': 0, 'competent': False, 'achievedAt': None}
    return {
        'moduleCode': comp.module_code,
        'consecutiveSuccessCount': comp.consecutive_success_count,
        'competent': comp.competent,
        'achievedAt': comp.achieved_at.isoformat() if comp.achieved_at else None,
    }


def get_competency(*, intern_id, viewer, module_code: str) -> dict:
    check_read_access(viewer, intern_id)
    intern = get_intern_or_404(intern_id)
    code = (module_code or '').strip().upper()
    comp = OpdCompetency.objects.filter(intern=intern, module_code=code).first()
    return serialize_competency(comp, code)


def serialize_attempt(a: Attempt) -> dict:
    data = {
        'id': a.pk,
        'attemptNumber': a.number,
        'attemptDate': a.attempt_date.isoformat() if a.attempt_date else None,
        'facultyId': a.faculty_id,
        'facultyName': a.faculty.display_name if a.faculty else None,
        'answers': a.answers,
        'totalScore': a.total_score,
        'maxScore': a.max_score,
        'grade': a.grade or None,
        'result': a.result or None,
        'remarks': a.remarks,
        'status': a.status,
        'acknowledgedBy': {
            'userId': a.acknowledged_by_id,
            'fullName': a.acknowledged_by.display_name,
        } if a.acknowledged_by else None,
        'acknowledgedAt': a.acknowledged_at.isoformat() if a.acknowledged_at else None,
        'moduleCode': a.record.module_code,
    }
    data.update(a.details or {})
    return data


def submit_attempt(module: EvaluationModule, *, intern_id, faculty, data,
                   module_code: Optional[str] = None, ip: Optional[str] = None) -> tuple[Attempt, Optional[OpdCompetency]]:
    """Validate and append a new attempt.

    Returns the attempt and, for OPD, the competency row touched by it
    (``None`` otherwise or when a PASS left it untouched).
    """
    intern = get_intern_or_404(intern_id)
    code = module.resolve_code(module_code)
    answers = _normalise_answers(module, data.get('answers') or [])
    outcome = module.evaluate(answers)
    details = _header_details(module, data)
    grade = outcome.grade
    if module.kind == KIND_YESNO:
        grade = data.get('grade') or DEFAULT_OPD_GRADE

    competency = None
    with transaction.atomic():
        record = _lock_record(module, intern, code)
        _check_unique_detail(module, record, details)
        number = _next_number(record)
        attempt = Attempt.objects.create(
            record=record,
            number=number,
            attempt_date=data.get('attemptDate') or timezone.now(),
            faculty=faculty,
            answers=answers,
            details=details,
            total_score=outcome.total_score,
            max_score=outcome.max_score,
            grade=grade,
            result=outcome.result,
            remarks=data.get('remarks') or '',
            status=outcome.status,
        )
        if outcome.result == Attempt.RESULT_FAIL:
            competency = reset_streak(intern, code)
        elif module.kind == KIND_YESNO:
            competency = OpdCompetency.objects.filter(intern=intern, module_code=code).first()
        log_action(
            user=faculty, action='attempt_create', object_type='Attempt', object_id=attempt.pk,
            detail={'module': module.module, 'moduleCode': code, 'internId': intern.pk,
                    'attemptNumber': number, 'status': attempt.status},
            ip=ip,
        )
    logger.info('%s attempt #%s recorded for intern %s by %s (%s)',
                module.title, number, intern.pk, getattr(faculty, 'pk', None), attempt.status)
    return attempt, competency


def _get_attempt_for_update(module: EvaluationModule, intern: User, code: str, number: int) -> Attempt:
    try:
        return (Attempt.objects.select_for_update()
                .select_related('record')
                .get(record__intern=intern, record__module=module.module,
                     record__module_code=code, number=number))
    except Attempt.DoesNotExist:
        raise NotFound('Attempt not found')


def edit_attempt(module: EvaluationModule, *, intern_id, number: int, editor, data,
                 ip: Optional[str] = None) -> Attempt:
    """Overwrite an attempt and send it back for acknowledgement."""
    intern = get_intern_or_404(intern_id)
    code = module.resolve_code(None)
    with transaction.atomic():
        attempt = _get_attempt_for_update(module, intern, code, number)
        answers = _normalise_answers(module, data['answers']) if 'answers' in data else attempt.answers
        outcome = module.evaluate(answers)
        details = {**(attempt.details or {}), **_header_details(module, data)}
        _check_unique_detail(module, attempt.record, details, exclude_pk=attempt.pk)

        previous_status = attempt.status
        attempt.answers = answers
        attempt.details = details
        attempt.total_score = outcome.total_score
        attempt.max_score = outcome.max_score
        attempt.grade = outcome.grade
        attempt.result = outcome.result
        if 'remarks' in data:
            attempt.remarks = data['remarks'] or ''
        if data.get('attemptDate'):
            attempt.attempt_date = data['attemptDate']
        attempt.status = Attempt.STATUS_PENDING_ACK
        attempt.acknowledged_by = None
        attempt.acknowledged_at = None
        attempt.save()
        log_action(
            user=editor, action='attempt_edit', object_type='Attempt', object_id=attempt.pk,
            detail={'module': module.module, 'moduleCode': code, 'internId': intern.pk,
                    'attemptNumber': number, 'previousStatus': previous_status},
            ip=ip,
        )
    logger.info('%s attempt #%s for intern %s edited by %s', module.title, number, intern.pk,
                getattr(editor, 'pk', None))
    return attempt


def list_attempts(module: EvaluationModule, *, intern_id, viewer, module_code: Optional[str] = None) -> dict:
    check_read_access(viewer, intern_id)
    intern = get_intern_or_404(intern_id)
    code = module.resolve_code(module_code)
    record = EvaluationRecord.objects.filter(intern=intern, module=module.module, module_code=code).first()
    attempts = []
    attempt_count = 0
    if record is not None:
        qs = record.attempts.select_related('faculty', 'acknowledged_by', 'record')
        attempt_count = record.attempt_count
        if _is_intern(viewer):
            qs = qs.exclude(status=Attempt.STATUS_TEMPORARY)
        attempts = [serialize_attempt(a) for a in qs]
        if _is_intern(viewer):
            # hidden attempts are not counted either
            attempt_count = len(attempts)
    data = {
        'internId': intern.pk,
        'internName': intern.display_name,
        'module': module.module,
        'moduleCode': code,
        'attemptCount': attempt_count,
        'maxScore': module.max_score,
        'attempts': attempts,
    }
    if module.kind == KIND_YESNO:
        comp = OpdCompetency.objects.filter(intern=intern, module_code=code).first()
        data['competency'] = serialize_competency(comp, code)
    return data


def acknowledge_attempt(module: EvaluationModule, *, user, intern_id, number: int,
                        module_code: Optional[str] = None,
                        ip: Optional[str] = None) -> tuple[Attempt, Optional[OpdCompetency]]:
    if str(user.pk) != str(intern_id):
        logger.warning('User %s tried to acknowledge an attempt of intern %s', user.pk, intern_id)
        raise PermissionDenied('You can only acknowledge your own evaluations')
    intern = get_intern_or_404(intern_id)
    code = module.resolve_code(module_code)
    competency = None
    with transaction.atomic():
        attempt = _get_attempt_for_update(module, intern, code, number)
        if attempt.status != Attempt.STATUS_PENDING_ACK:
            raise StateConflict(f'Cannot acknowledge attempt with status {attempt.status}')
        attempt.status = Attempt.STATUS_ACKNOWLEDGED
        attempt.acknowledged_by = user
        attempt.acknowledged_at = timezone.now()
        attempt.save(update_fields=['status', 'acknowledged_by', 'acknowledged_at', 'updated_at'])
        if module.kind == KIND_YESNO:
            if attempt.result == Attempt.RESULT_PASS:
                competency = advance_streak(intern, code)
            else:
                competency = reset_streak(intern, code)
        log_action(
            user=user, action='attempt_acknowledge', object_type='Attempt', object_id=attempt.pk,
            detail={'module': module.module, 'moduleCode': code, 'attemptNumber': number},
            ip=ip,
        )
    logger.info('%s attempt #%s acknowledged by intern %s', module.title, number, intern.pk)
    return attempt, competency
