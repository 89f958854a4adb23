"""Lab ledger queries and totals."""
from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from django.db.models import QuerySet, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from lab.models import FinanceRecord

DEPARTMENTS = {'IPD', 'OPD', 'Pharmacy', 'Lab'}
TYPES = {'Income', 'Expense'}


def parse_day(value: Any) -> Optional[dt.date]:
    text = str(value or '').strip()
    if not text:
        return None
    try:
        day = parse_date(text[:10])
    except ValueError:
        return None
    return day


def as_datetime(value: Any) -> dt.datetime:
    """Read a ledger date; a bare day becomes local midnight."""
    if isinstance(value, dt.datetime):
        when = value
    else:
        text = str(value or '').strip()
        when = None
        if text:
            try:
                when = parse_datetime(text)
            except ValueError:
                when = None
            if when is None:
                day = parse_day(text)
                if day is not None:
                    when = dt.datetime(day.year, day.month, day.day)
        if when is None:
            return timezone.now()
    if timezone.is_naive(when):
        when = timezone.make_aware(when)
    return when


def ledger_queryset(params) -> QuerySet:
    qs = FinanceRecord.objects.all()
    department = params.get('department')
    if department in DEPARTMENTS:
        qs = qs.filter(department=department)
    kind = params.get('type')
    if kind in TYPES:
        qs = qs.filter(type=kind)
    start = parse_day(params.get('from'))
    end = parse_day(params.get('to'))
    if start:
        qs = qs.filter(date__date__gte=start)
    if end:
        # whole day
        qs = qs.filter(date__date__lte=end)
    return qs.order_by('-date', '-created_at')


def serialize_record(r: FinanceRecord) -> dict[str, Any]:
    return {
        'id': r.id,
        'date': r.date,
        'amount': r.amount,
        'category': r.category,
        'description': r.description,
        'department': r.department,
        'type': r.type,
        'recordedBy': r.recorded_by,
        'patientId': r.patient_id or None,
        'admissionId': r.admission_id or None,
        'reference': r.reference or None,
        'createdAt': r.created_at,
        'updatedAt': r.updated_at,
    }


def summary(params) -> dict[str, Any]:
    qs = ledger_queryset(params)
    income = qs.filter(type='Income').aggregate(t=Sum('amount'))['t'] or 0
    expense = qs.filter(type='Expense').aggregate(t=Sum('amount'))['t'] or 0

    by_category: dict[str, dict[str, float]] = {}
    for row in qs.order_by().values('category', 'type').annotate(total=Sum('amount')):
        bucket = by_category.setdefault(row['category'], {'income': 0, 'expense': 0})
        bucket['income' if row['type'] == 'Income' else 'expense'] += row['total'] or 0

    return {
        'totalIncome': income,
        'totalExpense': expense,
        'net': income - expense,
        'byCategory': by_category,
    }
