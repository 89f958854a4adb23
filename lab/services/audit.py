from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from lab.models import AuditEvent

User = get_user_model()


def log_action(*, user, action: str, object_type: Optional[str] = None, object_id: Any = None,
               detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )


def client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def actor_name(user) -> str:
    """Display name stored in ``recorded_by`` columns."""
    if user is None or not getattr(user, 'pk', None):
        return 'admin'
    return str(getattr(user, 'name', '') or getattr(user, 'email', '') or user.pk)
