from collections import defaultdict

from tracker.models import Attempt, EvaluationRecord, OpdCompetency
from tracker.services.evaluations import get_intern_or_404, serialize_attempt, serialize_competency
from tracker.services.modules import MODULES


def module_summary(attempts: list[Attempt]) -> dict:
    scored = [a for a in attempts if a.total_score is not None and a.max_score]
    latest = attempts[-1] if attempts else None
    return {
        'attempts': len(attempts),
        'acknowledged': sum(1 for a in attempts if a.status == Attempt.STATUS_ACKNOWLEDGED),
        'passed': sum(1 for a in attempts if a.result == Attempt.RESULT_PASS),
        'latestGrade': (latest.grade or None) if latest else None,
        'averagePercentage': round(
            sum(a.total_score / a.max_score * 100 for a in scored) / len(scored), 1
        ) if scored else None,
    }


def collect_attempts(intern) -> dict[str, list[Attempt]]:
    """Visible (non-temporary) attempts of one intern, grouped by module."""
    grouped = defaultdict(list)
    qs = (Attempt.objects
          .filter(record__intern=intern)
          .exclude(status=Attempt.STATUS_TEMPORARY)
          .select_related('record', 'faculty', 'acknowledged_by')
          .order_by('record__module', 'record__module_code', 'number'))
    for a in qs:
        grouped[a.record.module].append(a)
    return grouped


def intern_performance(intern_id) -> dict:
    intern = get_intern_or_404(intern_id)
    grouped = collect_attempts(intern)
    codes = defaultdict(list)
    for module, code in (EvaluationRecord.objects.filter(intern=intern)
                         .order_by('module_code').values_list('module', 'module_code')):
        codes[module].append(code)

    modules = {}
    for name, mod in MODULES.items():
        attempts = grouped.get(name, [])
        modules[name.lower()] = {
            'title': mod.title,
            'moduleCodes': codes.get(name, []),
            'maxScore': mod.max_score,
            'summary': module_summary(attempts),
            'attempts': [serialize_attempt(a) for a in attempts],
        }

    competencies = OpdCompetency.objects.filter(intern=intern).order_by('module_code')
    return {
        'intern': {
            'id': intern.pk,
            'fullName': intern.full_name,
            'email': intern.email,
            'regNo': intern.reg_no,
            'batch': {'id': intern.batch_id, 'name': intern.batch.name} if intern.batch_id else None,
        },
        'modules': modules,
        'opdCompetency': [serialize_competency(c, c.module_code) for c in competencies],
    }
