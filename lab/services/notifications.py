from __future__ import annotations

import logging
from typing import Optional

from lab.models import Appointment, Notification, User
from lab.permissions import is_admin_role

from .push import send_expo_push

logger = logging.getLogger(__name__)


def first_admin() -> Optional[User]:
    for user in User.objects.exclude(role='patient').order_by('id'):
        if is_admin_role(user.role):
            return user
    return None


def notify(user: User, *, audience: str, type: str, title: str, message: str,
           icon: str = 'notifications', icon_color: str = '#3B82F6',
           appointment: Optional[Appointment] = None, push: bool = False) -> Notification:
    n = Notification.objects.create(
        user=user,
        audience=audience,
        type=type,
        title=title,
        message=message,
        icon=icon,
        icon_color=icon_color,
        appointment=appointment,
    )
    if push and user.expo_push_token:
        send_expo_push(user.expo_push_token, title, message, {
            'appointmentId': str(appointment.pk) if appointment else None,
            'type': type,
        })
    return n


def notify_admin(**kwargs) -> Optional[Notification]:
    admin = first_admin()
    if admin is None:
        logger.info("no admin user to notify (%s)", kwargs.get('type'))
        return None
    return notify(admin, audience='admin', **kwargs)


def serialize_notification(n: Notification) -> dict:
    return {
        'id': n.id,
        'user': n.user_id,
        'audience': n.audience,
        'type': n.type,
        'title': n.title,
        'message': n.message,
        'icon': n.icon,
        'iconColor': n.icon_color,
        'appointment': n.appointment_id,
        'read': n.read,
        'createdAt': n.created_at,
    }
