from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Notification, User
from ..serializers.users import NotificationCreateSerializer
from ..services.notifications import serialize_notification
from ..validation import validate


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_notifications(request):
    rows = Notification.objects.filter(user=request.user).order_by('-created_at', '-id')
    return Response({'success': True, 'notifications': [serialize_notification(n) for n in rows]})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    Notification.objects.filter(user=request.user, read=False).update(read=True)
    return Response({'success': True})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def mark_read(request, pk: int):
    n = Notification.objects.filter(pk=pk, user=request.user).first()
    if n is None:
        raise NotFound('Notification not found')
    n.read = True
    n.save(update_fields=['read'])
    return Response({'success': True, 'notification': serialize_notification(n)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@validate(NotificationCreateSerializer)
def create_notification(request):
    vd = request.validated_data
    target = User.objects.filter(pk=vd['userId']).first()
    if target is None:
        raise NotFound('User not found')
    appointment = None
    if vd.get('appointmentId'):
        appointment = Appointment.objects.filter(pk=vd['appointmentId']).first()
    n = Notification.objects.create(
        user=target,
        audience=vd['audience'],
        type=vd.get('type') or '',
        title=vd['title'],
        message=vd['message'],
        icon=vd.get('icon') or 'notifications',
        icon_color=vd.get('iconColor') or '#3B82F6',
        appointment=appointment,
    )
    return Response({'success': True, 'notification': serialize_notification(n)}, status=201)
