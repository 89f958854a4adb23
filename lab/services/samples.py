"""
Sample intake, result entry and deletion.

Creating a sample is one transaction: the patient lookup or creation,
the ``LAB-YYYY-NNN`` number, the consumables stock decrements and the
finance income rows either all land or none do.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound

from lab.exceptions import ConflictError, DomainError
from lab.models import Counter, FinanceRecord, InventoryItem, LabResult, LabTest, Patient, Sample
from lab.services.audit import actor_name

logger = logging.getLogger(__name__)

SAMPLE_STATUSES = (
    ('collect', 'collected'),
    ('process', 'processing'),
    ('complet', 'completed'),
    ('cancel', 'cancelled'),
)


class InsufficientStock(DomainError):
    default_detail = 'Insufficient stock'
    default_code = 'insufficient_stock'


def normalize_status(raw: Any) -> str:
    text = str(raw or '').lower()
    for needle, status in SAMPLE_STATUSES:
        if needle in text:
            return status
    return 'collected'


def find_sample(ident: Any) -> Sample:
    text = str(ident or '').strip()
    qs = Sample.objects.filter(pk=int(text)) if text.isdigit() else Sample.objects.filter(sample_number=text)
    sample = qs.first()
    if sample is None:
        raise NotFound('Sample not found')
    return sample


def next_sample_number(year: int) -> str:
    """Allocate `LAB-YYYY-NNN` from the per-year counter; call inside a transaction."""
    prefix = f"LAB-{year}-"
    name = f"sample-{year}"
    if not Counter.objects.filter(name=name).exists():
        # Start after any numbers already issued this year
        suffixes = Sample.objects.filter(sample_number__startswith=prefix).values_list('sample_number', flat=True)
        highest = max((int(s[len(prefix):]) for s in suffixes if s[len(prefix):].isdigit()), default=0)
        Counter.objects.get_or_create(name=name, defaults={'seq': highest})
    return f"{prefix}{next_counter(name):03d}"


def next_counter(name: str) -> int:
    counter, _ = Counter.objects.select_for_update().get_or_create(name=name)
    Counter.objects.filter(pk=counter.pk).update(seq=F('seq') + 1)
    counter.refresh_from_db()
    return counter.seq


def find_or_create_patient(data: dict[str, Any]) -> Patient:
    cnic = (data.get('cnic') or '').strip()
    phone = (data.get('phone') or '').strip()
    patient = None
    if cnic:
        patient = Patient.objects.filter(cnic=cnic).first()
    if patient is None and phone:
        patient = Patient.objects.filter(phone=phone).first()
    if patient is not None:
        return patient
    seq = next_counter('patientId')
    return Patient.objects.create(
        patient_id=f"LP{seq:02d}",
        name=data.get('patientName') or '',
        cnic=cnic or None,
        phone=phone,
        age=data.get('age') or '',
        gender=data.get('gender') or '',
        address=data.get('address') or '',
        guardian_relation=data.get('guardianRelation') or '',
        guardian_name=data.get('guardianName') or '',
    )


def collected_samples_from(data: dict[str, Any]) -> list[str]:
    if isinstance(data.get('collectedSamples'), list):
        return [str(v).strip() for v in data['collectedSamples'] if str(v or '').strip()]
    raw = str(data.get('collectedSample') or '').strip()
    return [v.strip() for v in raw.split(',') if v.strip()]


def resolve_tests(ids: list[int]) -> list[dict[str, Any]]:
    by_id = {t.pk: t for t in LabTest.objects.filter(pk__in=ids)}
    out = []
    for pk in ids:
        t = by_id.get(pk)
        if t is not None:
            out.append({'test': t.pk, 'name': t.name, 'price': t.price or 0})
    return out


def unit_sale_price(item: InventoryItem) -> float:
    if item.sale_price_per_unit and item.sale_price_per_unit > 0:
        return item.sale_price_per_unit
    if item.sale_price_per_pack and item.sale_price_per_pack > 0 and item.items_per_pack and item.items_per_pack > 0:
        return item.sale_price_per_pack / item.items_per_pack
    return 0.0


def consume_stock(lines: list[dict[str, Any]]) -> tuple[float, list[str]]:
    """Decrement stock for each consumable line; returns (profit, sold descriptions)."""
    profit = 0.0
    sold: list[str] = []
    items = InventoryItem.objects.in_bulk([line['item'] for line in lines])
    for line in lines:
        qty = line.get('quantity') or 0
        if qty <= 0:
            continue
        item = items.get(line['item'])
        if item is None:
            raise DomainError('Inventory item not found')
        updated = (InventoryItem.objects
                   .filter(pk=item.pk, current_stock__gte=qty)
                   .update(current_stock=F('current_stock') - qty))
        if not updated:
            raise InsufficientStock(f"Insufficient stock for {item.name}")
        unit_price = unit_sale_price(item)
        unit_profit = unit_price - (item.cost_per_unit or 0) if unit_price > 0 else 0
        if unit_profit > 0:
            profit += unit_profit * qty
        qty_text = int(qty) if float(qty).is_integer() else qty
        sold.append(f"{item.name} x{qty_text}{' ' + item.unit if item.unit else ''}")
    return profit, sold


def create_sample(data: dict[str, Any], user=None) -> Sample:
    now = timezone.localtime()
    collected = collected_samples_from(data)
    collected_text = ', '.join(collected) if collected else (data.get('collectedSample') or '')
    total = data.get('totalAmount') or 0
    paid_amount = data.get('paidAmount')
    consumables = [{'item': c['item'], 'quantity': c.get('quantity') or 1} for c in data.get('consumables') or []]

    try:
        with transaction.atomic():
            patient = find_or_create_patient(data)
            sample = Sample.objects.create(
                sample_number=next_sample_number(now.year),
                patient=patient,
                patient_code=patient.patient_id,
                patient_name=data['patientName'],
                phone=data['phone'],
                age=data.get('age') or '',
                gender=data.get('gender') or '',
                address=data.get('address') or '',
                guardian_relation=data.get('guardianRelation') or '',
                guardian_name=data.get('guardianName') or '',
                cnic=data.get('cnic') or '',
                sample_collected_by=data.get('sampleCollectedBy') or '',
                collected_sample=collected_text,
                collected_samples=collected,
                referring_doctor=data.get('referringDoctor') or '',
                tests=resolve_tests(data.get('tests') or []),
                consumables=consumables,
                total_amount=total,
                payment_method=data.get('paymentMethod') or '',
                payment_status=data.get('paymentStatus') or 'Paid',
                paid_amount=paid_amount if paid_amount is not None else total,
                priority=data.get('priority') or 'normal',
                status=normalize_status(data.get('status')),
            )
            profit, sold = consume_stock(consumables) if consumables else (0.0, [])
            record_sample_income(sample, profit, sold, actor_name(user))
    except IntegrityError as exc:
        if 'sample_number' in str(exc):
            logger.warning("duplicate sample number on create: %s", exc)
            raise ConflictError('A sample with this sampleNumber already exists. Please retry.') from exc
        raise
    logger.info("sample %s created for patient %s", sample.sample_number, sample.patient_code)
    return sample


def record_sample_income(sample: Sample, consumables_profit: float, sold: list[str], recorded_by: str) -> None:
    """Book consumables profit and the remaining test revenue as Lab income."""
    if (sample.payment_status or 'Paid') != 'Paid':
        return
    now = timezone.now()
    if consumables_profit > 0:
        FinanceRecord.objects.create(
            date=now,
            amount=consumables_profit,
            category='Consumables Profit',
            description=f"Consumables profit for Sample {sample.sample_number} ({sample.patient_name}). {', '.join(sold)}",
            department='Lab',
            type='Income',
            recorded_by=recorded_by,
            reference=sample.sample_number,
        )
    paid_total = sample.paid_amount if sample.paid_amount > 0 else sample.total_amount
    revenue = paid_total - consumables_profit
    if revenue > 0:
        FinanceRecord.objects.create(
            date=now,
            amount=revenue,
            category='Test Revenue',
            description=f"Test revenue for Sample {sample.sample_number} ({sample.patient_name})",
            department='Lab',
            type='Income',
            recorded_by=recorded_by,
            reference=sample.sample_number,
        )


def update_sample(sample: Sample, data: dict[str, Any]) -> Sample:
    raw_status = data.get('status') if data.get('status') is not None else data.get('sampleStatus')
    status = normalize_status(raw_status) if raw_status is not None else None

    if status:
        sample.status = status
        if status == 'completed':
            sample.completed_at = timezone.now()
    if data.get('barcode') is not None:
        sample.barcode = data['barcode']
    if data.get('processingBy') is not None:
        sample.processing_by = data['processingBy']
    if data.get('expectedCompletionAt'):
        sample.expected_completion_at = data['expectedCompletionAt']
    if 'results' in data:
        sample.results = data['results']
    if data.get('interpretation') is not None:
        sample.interpretation = data['interpretation']
    if 'interpretations' in data:
        sample.interpretations = data['interpretations']
    elif 'testInterpretations' in data:
        sample.interpretations = data['testInterpretations']

    with transaction.atomic():
        sample.save()
        if data.get('results'):
            upsert_result(sample, status)
    return sample


def upsert_result(sample: Sample, status: Optional[str]) -> LabResult:
    payload = {
        'sample_number': sample.sample_number,
        'patient_name': sample.patient_name,
        'phone': sample.phone,
        'age': sample.age,
        'gender': sample.gender,
        'address': sample.address,
        'cnic': sample.cnic,
        'tests': [{'name': t.get('name'), 'test': t.get('test')} for t in sample.tests or [] if isinstance(t, dict)],
        'results': sample.results,
        'interpretation': sample.interpretation or '',
        'interpretations': sample.interpretations or [],
        'status': status or sample.status,
    }
    existing = sample.lab_results.order_by('-created_at', '-id').first()
    if existing is None:
        return LabResult.objects.create(sample=sample, **payload)
    for key, value in payload.items():
        setattr(existing, key, value)
    existing.save()
    return existing


def latest_result(ident: Any) -> LabResult:
    text = str(ident or '').strip()
    qs = LabResult.objects.order_by('-created_at', '-id')
    result = qs.filter(sample_id=int(text)).first() if text.isdigit() else None
    if result is None:
        number = text
        if text.isdigit():
            number = Sample.objects.filter(pk=int(text)).values_list('sample_number', flat=True).first() or ''
        if number:
            result = qs.filter(sample_number=number).first()
    if result is None:
        raise NotFound('No test result found for this sample')
    return result


def delete_sample(sample: Sample) -> None:
    with transaction.atomic():
        LabResult.objects.filter(sample_number=sample.sample_number).delete()
        sample.delete()
    logger.info("sample %s deleted", sample.sample_number)


def serialize_sample(s: Sample) -> dict[str, Any]:
    return {
        'id': s.id,
        'sampleNumber': s.sample_number,
        'barcode': s.barcode,
        'patient': s.patient_id,
        'patientId': s.patient_code,
        'patientName': s.patient_name,
        'phone': s.phone,
        'age': s.age,
        'gender': s.gender,
        'address': s.address,
        'guardianRelation': s.guardian_relation,
        'guardianName': s.guardian_name,
        'cnic': s.cnic,
        'sampleCollectedBy': s.sample_collected_by,
        'processingBy': s.processing_by,
        'expectedCompletionAt': s.expected_completion_at,
        'collectedSample': s.collected_sample,
        'collectedSamples': s.collected_samples,
        'referringDoctor': s.referring_doctor,
        'tests': s.tests,
        'consumables': s.consumables,
        'totalAmount': s.total_amount,
        'paymentMethod': s.payment_method,
        'paymentStatus': s.payment_status,
        'paidAmount': s.paid_amount,
        'priority': s.priority,
        'status': s.status,
        'results': s.results,
        'interpretation': s.interpretation,
        'interpretations': s.interpretations,
        'completedAt': s.completed_at,
        'createdAt': s.created_at,
        'updatedAt': s.updated_at,
    }


def serialize_result(r: LabResult) -> dict[str, Any]:
    return {
        'id': r.id,
        'sample': r.sample_id,
        'sampleNumber': r.sample_number,
        'patientName': r.patient_name,
        'phone': r.phone,
        'age': r.age,
        'gender': r.gender,
        'address': r.address,
        'cnic': r.cnic,
        'tests': r.tests,
        'results': r.results,
        'interpretation': r.interpretation,
        'interpretations': r.interpretations,
        'status': r.status,
        'createdAt': r.created_at,
        'updatedAt': r.updated_at,
    }


def sample_from_payload(data: dict[str, Any]) -> Sample:
    """Build an unsaved sample from camelCase fields, for report previews."""
    data = data if isinstance(data, dict) else {}
    return Sample(
        sample_number=str(data.get('sampleNumber') or ''),
        barcode=str(data.get('barcode') or ''),
        patient_code=str(data.get('patientId') or ''),
        patient_name=str(data.get('patientName') or ''),
        phone=str(data.get('phone') or ''),
        age=str(data.get('age') or ''),
        gender=str(data.get('gender') or ''),
        address=str(data.get('address') or ''),
        cnic=str(data.get('cnic') or ''),
        referring_doctor=str(data.get('referringDoctor') or ''),
        sample_collected_by=str(data.get('sampleCollectedBy') or ''),
        collected_sample=str(data.get('collectedSample') or ''),
        collected_samples=data.get('collectedSamples') if isinstance(data.get('collectedSamples'), list) else [],
        tests=data.get('tests') if isinstance(data.get('tests'), list) else [],
        results=data.get('results') if isinstance(data.get('results'), list) else [],
        interpretation=str(data.get('interpretation') or ''),
        interpretations=data.get('interpretations') if isinstance(data.get('interpretations'), list) else [],
        priority=str(data.get('priority') or 'normal'),
    )
