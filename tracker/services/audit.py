from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from tracker.models import AuditEvent

User = get_user_model()


def client_ip(request) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None, object_id: Any = None,
               detail: Optional[Dict[str, Any]] = None, ip: Optional[str] = None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
        ip=ip,
    )


def recent_events(limit: int = 100) -> list[dict]:
    events = AuditEvent.objects.select_related('user').order_by('-created_at', '-id')[:limit]
    return [{
        'id': e.id,
        'action': e.action,
        'userId': e.user_id,
        'userEmail': e.user.email if e.user else None,
        'objectType': e.object_type,
        'objectId': e.object_id,
        'detail': e.detail,
        'ip': e.ip,
        'createdAt': e.created_at.isoformat(),
    } for e in events]
