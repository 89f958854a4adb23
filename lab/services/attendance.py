"""
Staff directory, daily attendance, monthly salaries, leaves and deductions.

Attendance rows are keyed by ``(staff, date)`` where ``date`` is the
local ``YYYY-MM-DD`` string; check-in and check-out always use the
server clock.
"""
from __future__ import annotations

import datetime as dt
import logging
import math
import re
from typing import Any, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from lab.exceptions import ConflictError, DomainError
from lab.models import Attendance, FinanceRecord, Staff, StaffDeduction, StaffLeave, StaffSalary, StaffSetting

logger = logging.getLogger(__name__)

MONTH_RE = re.compile(r'^\d{4}-\d{2}$')
TIME_RE = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
MONTHLY_COUNTED = ('present', 'absent', 'late', 'leave')


def today_key() -> str:
    return timezone.localdate().isoformat()


def now_hhmm() -> str:
    return timezone.localtime().strftime('%H:%M')


def server_time() -> dict[str, str]:
    now = timezone.now()
    return {'iso': now.isoformat(), 'date': today_key(), 'time': now_hhmm()}


def date_key(value: Any) -> str:
    text = str(value or '').strip()
    match = re.match(r'^(\d{4}-\d{2}-\d{2})', text)
    return match.group(1) if match else today_key()


def time_key(value: Any, field: str) -> str:
    text = str(value or '').strip()
    if not text:
        return ''
    if not TIME_RE.match(text):
        raise DomainError(f"Invalid {field} time. Expected HH:MM (24-hour).")
    return text


def next_staff_code() -> str:
    highest = 0
    for code in Staff.objects.filter(staff_code__regex=r'^LS\d+$').values_list('staff_code', flat=True):
        highest = max(highest, int(code[2:]))
    return f"LS{highest + 1}"


def serialize_attendance(row: Attendance, with_staff: bool = False) -> dict[str, Any]:
    out = {
        'id': row.id,
        'staffId': row.staff_id,
        'date': row.date,
        'status': row.status,
        'checkIn': row.check_in,
        'checkOut': row.check_out,
        'checkInTime': row.check_in,
        'checkOutTime': row.check_out,
        'notes': row.notes,
    }
    if with_staff:
        out['staffName'] = row.staff.name
        out['staffPosition'] = row.staff.position
    return out


def serialize_staff(s: Staff, attendance: Optional[list[Attendance]] = None) -> dict[str, Any]:
    return {
        'id': s.id,
        'staffCode': s.staff_code,
        'name': s.name,
        'position': s.position,
        'phone': s.phone,
        'email': s.email,
        'address': s.address,
        'salary': s.salary,
        'joinDate': s.join_date,
        'status': s.status,
        'attendance': [serialize_attendance(a) for a in attendance or []],
        'createdAt': s.created_at,
        'updatedAt': s.updated_at,
    }


def serialize_salary(s: StaffSalary) -> dict[str, Any]:
    return {
        'id': s.id,
        'staffId': s.staff_id,
        'month': s.month,
        'amount': s.amount,
        'bonus': s.bonus,
        'status': s.status,
        'createdAt': s.created_at,
        'updatedAt': s.updated_at,
    }


def create_staff(data: dict[str, Any]) -> Staff:
    staff = Staff(
        name=data['name'],
        position=data['position'],
        phone=data.get('phone') or '',
        email=data.get('email') or '',
        address=data.get('address') or '',
        salary=data.get('salary') or 0,
        join_date=data.get('joinDate'),
        status=data.get('status') or 'active',
    )
    for _ in range(3):
        staff.staff_code = next_staff_code()
        try:
            with transaction.atomic():
                staff.save()
            return staff
        except IntegrityError:
            logger.warning("staff code %s taken, retrying", staff.staff_code)
    raise ConflictError('Failed to generate staff ID')


def upsert_attendance(staff: Staff, data: dict[str, Any]) -> Attendance:
    day = date_key(data.get('date'))
    defaults = {
        'status': data.get('status') or 'present',
        'check_in': time_key(data.get('checkIn'), 'checkIn'),
        'check_out': time_key(data.get('checkOut'), 'checkOut'),
        'notes': data.get('notes') or '',
    }
    row, _ = Attendance.objects.update_or_create(staff=staff, date=day, defaults=defaults)
    return row


def check_in(staff: Staff) -> Attendance:
    day = today_key()
    with transaction.atomic():
        row = Attendance.objects.select_for_update().filter(staff=staff, date=day).first()
        if row is not None and row.check_in:
            raise ConflictError('Already checked in today', checkIn=row.check_in)
        if row is None:
            row = Attendance(staff=staff, date=day, status='present')
        row.check_in = now_hhmm()
        if row.status != 'leave':
            row.status = 'present'
        row.save()
    return row


def check_out(staff: Staff) -> Attendance:
    day = today_key()
    with transaction.atomic():
        row = Attendance.objects.select_for_update().filter(staff=staff, date=day).first()
        if row is None or not row.check_in:
            raise DomainError('Cannot check out without checking in first')
        row.check_out = now_hhmm()
        row.save(update_fields=['check_out', 'updated_at'])
    return row


def monthly(staff: Staff, month: str) -> dict[str, Any]:
    if not MONTH_RE.match(month or ''):
        raise DomainError('month must be YYYY-MM')
    rows = list(Attendance.objects.filter(staff=staff, date__startswith=f"{month}-").order_by('date'))
    counts = {status: 0 for status in MONTHLY_COUNTED}
    for row in rows:
        if row.status in counts:
            counts[row.status] += 1
    return {'days': [serialize_attendance(r) for r in rows], **counts}


def add_salary(staff: Staff, data: dict[str, Any], recorded_by: str) -> StaffSalary:
    """Record a month's salary and mirror it as a Lab expense."""
    month = data['month']
    amount = data['amount']
    bonus = data.get('bonus') or 0
    try:
        with transaction.atomic():
            salary = StaffSalary.objects.create(
                staff=staff, month=month, amount=amount, bonus=bonus, status=data.get('status') or 'pending',
            )
            label = f"{staff.staff_code} - {staff.name}" if staff.staff_code else staff.name
            year, mon = (int(p) for p in month.split('-'))
            FinanceRecord.objects.create(
                date=timezone.make_aware(dt.datetime(year, mon, 1)),
                amount=amount + bonus,
                category='Salaries',
                description=f"Salary for {label} ({month})",
                department='Lab',
                type='Expense',
                recorded_by=recorded_by,
                reference=f"SALARY:{staff.pk}:{month}",
            )
    except IntegrityError as exc:
        raise ConflictError(f"Salary for {month} already recorded") from exc
    return salary


def update_salary(salary: StaffSalary, data: dict[str, Any]) -> StaffSalary:
    """Apply amount/bonus/status changes and keep the month's Lab expense in step."""
    for key in ('amount', 'bonus', 'status'):
        if data.get(key) is not None:
            setattr(salary, key, data[key])
    with transaction.atomic():
        salary.save()
        _salary_expenses(salary).update(amount=salary.amount + salary.bonus, updated_at=timezone.now())
    return salary


def delete_salary(salary: StaffSalary) -> None:
    with transaction.atomic():
        _salary_expenses(salary).delete()
        salary.delete()


def _salary_expenses(salary: StaffSalary):
    return FinanceRecord.objects.filter(
        reference=f"SALARY:{salary.staff_id}:{salary.month}",
        department='Lab', type='Expense', category='Salaries',
    )


def serialize_leave(row: StaffLeave) -> dict[str, Any]:
    return {
        'id': row.id,
        'staffId': row.staff_id,
        'date': row.date,
        'days': row.days,
        'type': row.type,
        'reason': row.reason,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
    }


def serialize_deduction(row: StaffDeduction) -> dict[str, Any]:
    return {
        'id': row.id,
        'staffId': row.staff_id,
        'date': row.date,
        'amount': row.amount,
        'reason': row.reason,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
    }


def add_leave(staff: Staff, data: dict[str, Any]) -> StaffLeave:
    days = data.get('days')
    return StaffLeave.objects.create(
        staff=staff,
        date=date_key(data.get('date')),
        days=1 if days is None else days,
        type=data.get('type') or '',
        reason=data.get('reason') or '',
    )


def add_deduction(staff: Staff, data: dict[str, Any]) -> StaffDeduction:
    return StaffDeduction.objects.create(
        staff=staff,
        date=date_key(data.get('date')),
        amount=data['amount'],
        reason=data.get('reason') or '',
    )


# Attendance policy

ATTENDANCE_KEY = 'attendance'
WEEKDAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')
ATTENDANCE_AMOUNTS = ('paidAbsentDays', 'absentDeduction', 'lateReliefMinutes', 'lateDeduction', 'earlyOutDeduction')
ATTENDANCE_TIMES = {'clockInTime': '09:00', 'clockOutTime': '18:00'}


def _non_negative(value: Any) -> float:
    if isinstance(value, bool) or not value:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(number) if number.is_integer() else number


def _days_off(value: Any) -> list[int]:
    days: list[int] = []
    for item in value if isinstance(value, list) else []:
        if isinstance(item, bool):
            continue
        try:
            number = float(item)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number) and number.is_integer() and 0 <= number <= 6 and int(number) not in days:
            days.append(int(number))
    return days


def sanitize_attendance_settings(raw: Any) -> dict[str, Any]:
    """Keep only the supported policy keys, clamped to usable values."""
    raw = raw if isinstance(raw, dict) else {}
    days_off = _days_off(raw.get('officialDaysOff'))
    out: dict[str, Any] = {key: _non_negative(raw.get(key)) for key in ATTENDANCE_AMOUNTS}
    out['officialDaysOff'] = days_off
    out['officialDaysOffNames'] = [WEEKDAY_NAMES[d] for d in days_off]
    for key, default in ATTENDANCE_TIMES.items():
        value = raw.get(key)
        out[key] = value if isinstance(value, str) and TIME_RE.match(value) else default
    return out


def load_attendance_settings() -> dict[str, Any]:
    row = StaffSetting.objects.filter(key=ATTENDANCE_KEY).first()
    return sanitize_attendance_settings(row.value if row else None)


def save_attendance_settings(body: dict[str, Any]) -> dict[str, Any]:
    value = sanitize_attendance_settings(body)
    StaffSetting.objects.update_or_create(key=ATTENDANCE_KEY, defaults={'value': value})
    logger.info("attendance settings saved", extra={'daysOff': value['officialDaysOff']})
    return value
