"""
Patient profiling: one row per identity seen at sample intake.

An identity is the CNIC when the sample has one, otherwise the phone
number. Stored profiling notes and patient master data are merged into
each row. Rows without a stored record carry a synthetic id
(``CNIC:<cnic>`` or ``PHONE:<phone>``) that can be used to create one.
"""
from __future__ import annotations

from typing import Any, Optional

from django.db.models import Q

from lab.exceptions import DomainError
from lab.models import Patient, ProfilingRecord, Sample

CNIC_PREFIX = 'CNIC:'
PHONE_PREFIX = 'PHONE:'


def _visits(samples) -> dict[str, Any]:
    samples = sorted(samples, key=lambda s: s.created_at, reverse=True)
    types: list[str] = []
    for s in samples:
        kind = (s.collected_sample or '').strip()
        if kind and kind not in types:
            types.append(kind)
    return {
        'numberOfVisits': len(samples),
        'lastVisitDate': samples[0].created_at if samples else None,
        'sampleTypes': types,
    }


def identities_from_samples() -> list[dict[str, Any]]:
    groups: dict[str, dict[str, Any]] = {}
    qs = Sample.objects.exclude(Q(cnic='') & Q(phone='')).order_by('-created_at')
    for s in qs:
        cnic = (s.cnic or '').strip()
        phone = (s.phone or '').strip()
        key = f"cnic:{cnic}" if cnic else f"phone:{phone}"
        group = groups.setdefault(key, {'cnic': cnic, 'phone': phone, 'name': (s.patient_name or '').strip(),
                                        'samples': []})
        group['samples'].append(s)
    return list(groups.values())


def serialize_record(r: ProfilingRecord) -> dict[str, Any]:
    match = Q()
    if r.phone:
        match |= Q(phone=r.phone)
    if r.cnic:
        match |= Q(cnic=r.cnic)
    samples = list(Sample.objects.filter(match)) if match else []
    return {
        'id': r.id,
        'name': r.name,
        'cnic': r.cnic,
        'phone': r.phone,
        'profilingNotes': r.profiling_notes,
        **_visits(samples),
        'createdAt': r.created_at,
        'updatedAt': r.updated_at,
    }


def profiling_list() -> list[dict[str, Any]]:
    identities = identities_from_samples()
    cnics = [i['cnic'] for i in identities if i['cnic']]
    phones = [i['phone'] for i in identities if i['phone']]

    records = ProfilingRecord.objects.filter(Q(cnic__in=cnics) | Q(phone__in=phones))
    record_by_cnic = {r.cnic: r for r in records if r.cnic}
    record_by_phone = {r.phone: r for r in records if r.phone}
    patients = Patient.objects.filter(Q(cnic__in=cnics) | Q(phone__in=phones))
    patient_by_cnic = {p.cnic: p for p in patients if p.cnic}
    patient_by_phone = {p.phone: p for p in patients if p.phone}

    items = []
    for ident in identities:
        cnic, phone = ident['cnic'], ident['phone']
        record = (record_by_cnic.get(cnic) if cnic else None) or record_by_phone.get(phone)
        patient = (patient_by_cnic.get(cnic) if cnic else None) or patient_by_phone.get(phone)
        items.append({
            'id': record.id if record else (f"{CNIC_PREFIX}{cnic}" if cnic else f"{PHONE_PREFIX}{phone}"),
            'patientId': patient.patient_id if patient else None,
            'name': ident['name'],
            'cnic': cnic,
            'phone': phone,
            'age': (patient.age or None) if patient else None,
            'gender': (patient.gender or None) if patient else None,
            'address': patient.address if patient else '',
            'profilingNotes': record.profiling_notes if record else '',
            **_visits(ident['samples']),
            'createdAt': record.created_at if record else None,
            'updatedAt': record.updated_at if record else None,
        })
    return items


def upsert_by_cnic(data: dict[str, Any]) -> tuple[ProfilingRecord, bool]:
    record, created = ProfilingRecord.objects.update_or_create(
        cnic=data['cnic'],
        defaults={
            'name': data['name'],
            'phone': data['phone'],
            'profiling_notes': data.get('profilingNotes') or '',
        },
    )
    return record, created


def _apply(record: ProfilingRecord, data: dict[str, Any]) -> ProfilingRecord:
    for key, attr in (('name', 'name'), ('cnic', 'cnic'), ('phone', 'phone'), ('profilingNotes', 'profiling_notes')):
        if data.get(key) is not None:
            setattr(record, attr, data[key])
    if not record.cnic:
        record.cnic = None
    record.save()
    return record


def find_record(ident: str) -> Optional[ProfilingRecord]:
    if ident.isdigit():
        return ProfilingRecord.objects.filter(pk=int(ident)).first()
    return None


def update_record(ident: str, data: dict[str, Any]) -> Optional[ProfilingRecord]:
    """Update a stored record, or create one from a synthetic row id."""
    if ident.startswith(CNIC_PREFIX):
        cnic = ident[len(CNIC_PREFIX):].strip()
        if not cnic:
            raise DomainError('CNIC is required')
        record = ProfilingRecord.objects.filter(cnic=cnic).first() or ProfilingRecord(cnic=cnic)
        return _apply(record, {k: v for k, v in data.items() if k != 'cnic'})
    if ident.startswith(PHONE_PREFIX):
        phone = ident[len(PHONE_PREFIX):].strip()
        if not phone:
            raise DomainError('Phone is required')
        record = ProfilingRecord.objects.filter(phone=phone).first() or ProfilingRecord(phone=phone, name='')
        return _apply(record, {k: v for k, v in data.items() if k != 'phone'})
    record = find_record(ident)
    if record is None:
        return None
    return _apply(record, data)
