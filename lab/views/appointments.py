"""
Appointment booking for patients and the admin appointment desk.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment
from ..permissions import IsAdminRole, IsPatientRole
from ..serializers.appointments import (
    AppointmentCreateSerializer,
    AppointmentStatusSerializer,
    AppointmentUpdateSerializer,
    CancelAppointmentSerializer,
)
from ..services.appointments import (
    book_appointment,
    cancel_by_patient,
    serialize_appointment,
    set_status,
    update_appointment,
)
from ..validation import validate


def _get_or_404(pk, **filters) -> Appointment:
    appointment = Appointment.objects.filter(pk=pk, **filters).first()
    if appointment is None:
        raise NotFound('Appointment not found')
    return appointment


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
@validate(AppointmentCreateSerializer)
def create_appointment(request):
    appointment = book_appointment(request.validated_data, request.user)
    return Response({'success': True, 'appointment': serialize_appointment(appointment)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def my_appointments(request):
    rows = Appointment.objects.filter(patient=request.user).order_by('-created_at', '-id')
    return Response({'success': True, 'appointments': [serialize_appointment(a) for a in rows]})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsPatientRole])
def cancel_my_appointment(request, pk: int):
    appointment = _get_or_404(pk, patient=request.user)
    s = CancelAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    cancel_by_patient(
        appointment,
        is_reschedule=vd.get('isReschedule', False),
        new_date=vd.get('newDate') or '',
        new_time=vd.get('newTime') or '',
    )
    return Response({'success': True, 'appointment': serialize_appointment(appointment)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_appointments(request):
    if request.method == 'POST':
        return _admin_create(request)
    rows = Appointment.objects.order_by('-created_at', '-id')
    return Response({'success': True, 'appointments': [serialize_appointment(a) for a in rows]})


@validate(AppointmentCreateSerializer)
def _admin_create(request):
    appointment = book_appointment(request.validated_data, request.user)
    return Response({'success': True, 'appointment': serialize_appointment(appointment)}, status=201)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_appointment_detail(request, pk: int):
    appointment = _get_or_404(pk)
    if request.method == 'DELETE':
        appointment.delete()
        return Response({'success': True})
    return _admin_update(request, appointment)


@validate(AppointmentUpdateSerializer)
def _admin_update(request, appointment: Appointment):
    update_appointment(appointment, request.validated_data)
    return Response({'success': True, 'appointment': serialize_appointment(appointment)})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
@validate(AppointmentStatusSerializer)
def admin_appointment_status(request, pk: int):
    appointment = _get_or_404(pk)
    set_status(appointment, request.validated_data['status'])
    return Response({'success': True, 'appointment': serialize_appointment(appointment)})
