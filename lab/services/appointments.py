"""
Appointment booking rules.

Slots are identified by the literal ``date`` (YYYY-MM-DD) and ``time``
(e.g. ``10:30 AM``) strings. A slot is taken while any appointment on
it is not cancelled. Patients may cancel up to three hours before the
slot; admins may change anything.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any, Optional

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from lab.exceptions import DomainError
from lab.models import Appointment, User

from .notifications import notify, notify_admin

logger = logging.getLogger(__name__)

PAID_METHODS = {'easypaisa', 'jazzcash', 'bank account'}
HOME_PAY_METHOD = 'pay on home sampling'
CANCEL_CUTOFF = dt.timedelta(hours=3)
_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})\s*(AM|PM)$', re.IGNORECASE)


class AppointmentError(DomainError):
    pass


def _parse_date(value: Any) -> Optional[dt.date]:
    try:
        y, m, d = (int(p) for p in str(value).split('-'))
        return dt.date(y, m, d)
    except (TypeError, ValueError):
        return None


def slot_datetime(date: Any, time: Any) -> Optional[dt.datetime]:
    day = _parse_date(date)
    match = _TIME_RE.match(str(time or '').strip())
    if day is None or not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    ampm = match.group(3).upper()
    if ampm == 'PM' and hours < 12:
        hours += 12
    if ampm == 'AM' and hours == 12:
        hours = 0
    try:
        naive = dt.datetime(day.year, day.month, day.day, hours, minutes)
    except ValueError:
        return None
    return timezone.make_aware(naive)


def derived_payment_status(method: Any) -> Optional[str]:
    m = str(method or '').strip().lower()
    if m in PAID_METHODS:
        return 'Paid'
    if m == HOME_PAY_METHOD:
        return 'Not paid'
    return None


def _ensure_slot_free(date, time, exclude_pk=None) -> None:
    qs = Appointment.objects.filter(date=date, time=time).exclude(status='Cancelled')
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    if qs.exists():
        raise AppointmentError(
            'This date and time slot is already booked. Please choose another time.',
            code='TIME_SLOT_TAKEN',
        )


def serialize_appointment(a: Appointment) -> dict[str, Any]:
    return {
        'id': a.id,
        'appointmentCode': a.appointment_code,
        'appointmentSequence': a.appointment_sequence,
        'patient': a.patient_id,
        'patientName': a.patient_name,
        'contact': a.contact,
        'cnic': a.cnic,
        'gender': a.gender,
        'age': a.age,
        'guardian': a.guardian,
        'guardianName': a.guardian_name,
        'referringDoctor': a.referring_doctor,
        'address': a.address,
        'priority': a.priority,
        'testPriority': a.test_priority,
        'homeSamplingPriority': a.home_sampling_priority,
        'testName': a.test_name,
        'testFee': a.test_fee,
        'date': a.date,
        'time': a.time,
        'status': a.status,
        'cancelledBy': a.cancelled_by,
        'paymentMethod': a.payment_method,
        'paymentStatus': a.payment_status,
        'createdAt': a.created_at,
        'updatedAt': a.updated_at,
    }


def book_appointment(data: dict[str, Any], user: Optional[User]) -> Appointment:
    day = _parse_date(data.get('date'))
    if day is not None and day < timezone.localdate():
        raise AppointmentError(
            'You can only book appointments for today or future dates.',
            code='PAST_DATE_NOT_ALLOWED',
        )

    with transaction.atomic():
        _ensure_slot_free(data['date'], data['time'])
        last = Appointment.objects.aggregate(m=Max('appointment_sequence'))['m'] or 0
        seq = last + 1
        test_priority = data.get('testPriority') or data.get('priority') or 'normal'
        is_patient = bool(user and str(user.role or '').strip().lower() == 'patient')
        appointment = Appointment.objects.create(
            patient=user if is_patient else None,
            patient_name=data['fullName'],
            contact=data['email'],
            cnic=data['cnic'],
            gender=data['gender'],
            age=data['age'],
            guardian=data.get('selectedGuardian') or '',
            guardian_name=data.get('guardianName') or '',
            referring_doctor=data.get('referringDoctor') or '',
            address=data.get('address') or '',
            priority=test_priority,
            test_priority=test_priority,
            home_sampling_priority=data.get('homeSamplingPriority') or 'normal',
            test_name=data['selectedTest'],
            test_fee=data.get('testFee'),
            date=data['date'],
            time=data['time'],
            status='Pending',
            payment_method=data.get('paymentMethod') or '',
            payment_status=data.get('paymentStatus') or derived_payment_status(data.get('paymentMethod')) or 'Pending',
            appointment_sequence=seq,
            appointment_code=f"AP{seq}",
        )

    # a reschedule is announced once by the cancellation of the old slot
    if not data.get('isReschedule'):
        notify_admin(
            type='appointment_booked',
            title='New Appointment Booked',
            message=f"A patient booked {appointment.test_name} on {appointment.date} at {appointment.time}.",
            icon='calendar',
            icon_color='#3B82F6',
            appointment=appointment,
        )
    logger.info("appointment %s booked for %s %s", appointment.appointment_code, appointment.date, appointment.time)
    return appointment


FIELD_MAP = {
    'fullName': 'patient_name',
    'email': 'contact',
    'cnic': 'cnic',
    'gender': 'gender',
    'age': 'age',
    'selectedGuardian': 'guardian',
    'guardianName': 'guardian_name',
    'referringDoctor': 'referring_doctor',
    'address': 'address',
    'selectedTest': 'test_name',
    'testFee': 'test_fee',
    'date': 'date',
    'time': 'time',
    'homeSamplingPriority': 'home_sampling_priority',
    'paymentMethod': 'payment_method',
}

NULLABLE_FIELDS = {'age', 'test_fee'}


def update_appointment(appointment: Appointment, data: dict[str, Any]) -> Appointment:
    next_date = data['date'] if 'date' in data else appointment.date
    next_time = data['time'] if 'time' in data else appointment.time
    if str(next_date or '') != appointment.date or str(next_time or '') != appointment.time:
        _ensure_slot_free(next_date, next_time, exclude_pk=appointment.pk)

    for key, attr in FIELD_MAP.items():
        if key not in data:
            continue
        value = data[key]
        if value is None and attr not in NULLABLE_FIELDS:
            value = ''
        if value is None and attr == 'age':
            continue
        setattr(appointment, attr, value)

    incoming_priority = data['testPriority'] if 'testPriority' in data else data.get('priority')
    if incoming_priority:
        appointment.priority = incoming_priority
        appointment.test_priority = incoming_priority

    if data.get('paymentStatus') is not None:
        appointment.payment_status = data['paymentStatus']
    elif 'paymentMethod' in data:
        derived = derived_payment_status(appointment.payment_method)
        if derived:
            appointment.payment_status = derived

    appointment.save()
    return appointment


def set_status(appointment: Appointment, status: str) -> Appointment:
    appointment.status = status
    if status == 'Cancelled':
        appointment.cancelled_by = 'admin'
    appointment.save(update_fields=['status', 'cancelled_by', 'updated_at'])

    if appointment.patient_id and status in ('Confirmed', 'Cancelled'):
        confirmed = status == 'Confirmed'
        verb = 'confirmed' if confirmed else 'cancelled'
        notify(
            appointment.patient,
            audience='patient',
            type=f"appointment_{verb}",
            title='Appointment Confirmed' if confirmed else 'Appointment Cancelled',
            message=(f"Your appointment for {appointment.test_name} on {appointment.date} "
                     f"at {appointment.time} has been {verb}."),
            icon='checkmark-circle' if confirmed else 'close-circle',
            icon_color='#059669' if confirmed else '#DC2626',
            appointment=appointment,
            push=True,
        )
    return appointment


def cancel_by_patient(appointment: Appointment, *, is_reschedule: bool = False,
                      new_date: str = '', new_time: str = '') -> Appointment:
    when = slot_datetime(appointment.date, appointment.time)
    if when is not None and when - timezone.now() < CANCEL_CUTOFF:
        raise AppointmentError(
            'Appointments can only be cancelled at least 3 hours before the scheduled time.',
            code='TOO_LATE_TO_CANCEL',
        )
    old_date, old_time = appointment.date, appointment.time
    appointment.status = 'Cancelled'
    appointment.cancelled_by = 'patient'
    appointment.save(update_fields=['status', 'cancelled_by', 'updated_at'])

    if is_reschedule and new_date and new_time:
        notify_admin(
            type='appointment_rescheduled',
            title='Patient Rescheduled Appointment',
            message=(f"Patient rescheduled {appointment.test_name} from {old_date} at {old_time} "
                     f"to {new_date} at {new_time}."),
            icon='swap-horizontal',
            icon_color='#8B5CF6',
            appointment=appointment,
        )
    else:
        notify_admin(
            type='appointment_cancelled',
            title='Patient Cancelled Appointment',
            message=f"Patient cancelled appointment for {appointment.test_name} on {old_date} at {old_time}.",
            icon='close-circle',
            icon_color='#DC2626',
            appointment=appointment,
        )
    return appointment
