from __future__ import annotations

import logging
from typing import Any

from django.db import transaction
from django.utils import timezone

from lab.exceptions import DomainError
from lab.models import FinanceRecord, Supplier

logger = logging.getLogger(__name__)

CONTACT_FIELDS = {
    'name': 'name',
    'contactPerson': 'contact_person',
    'email': 'email',
    'phone': 'phone',
    'address': 'address',
    'contractStartDate': 'contract_start_date',
    'contractEndDate': 'contract_end_date',
    'status': 'status',
}


def split_products(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(p).strip() for p in value if str(p).strip()]
    raw = str(value or '').replace('\n', ',')
    return [p.strip() for p in raw.split(',') if p.strip()]


def serialize_supplier(s: Supplier) -> dict[str, Any]:
    remaining = s.outstanding
    return {
        'id': s.id,
        'name': s.name,
        'contactPerson': s.contact_person,
        'email': s.email,
        'phone': s.phone,
        'address': s.address,
        'products': s.products,
        'contractStartDate': s.contract_start_date,
        'contractEndDate': s.contract_end_date,
        'status': s.status,
        'totalPurchase': s.total_purchase,
        'paidAmount': s.paid_amount,
        'remaining': remaining,
        'balanceStatus': 'Cleared' if remaining <= 0 else 'Pending',
        'payments': s.payments,
        'purchases': s.purchases,
        'createdAt': s.created_at,
        'updatedAt': s.updated_at,
    }


def create_supplier(data: dict[str, Any]) -> Supplier:
    supplier = Supplier(total_purchase=data.get('totalPurchase') or 0, paid_amount=0)
    for key, attr in CONTACT_FIELDS.items():
        if data.get(key) is not None:
            setattr(supplier, attr, data[key])
    supplier.products = split_products(data.get('products'))
    supplier.save()
    return supplier


def _purchase_line(raw: dict[str, Any]) -> dict[str, Any]:
    line = dict(raw)
    line['amount'] = float(raw.get('amount') or 0)
    line.setdefault('createdAt', timezone.now().isoformat())
    return line


def update_supplier(supplier: Supplier, data: dict[str, Any]) -> Supplier:
    """Apply contact edits, a new total, or appended purchases.

    Purchases passed in ``purchases`` are appended; the total is then
    recomputed from the purchase list but never drops below what has
    already been paid.
    """
    with transaction.atomic():
        for key, attr in CONTACT_FIELDS.items():
            if key in data and data[key] is not None:
                setattr(supplier, attr, data[key])
        if 'products' in data and data['products'] is not None:
            supplier.products = split_products(data['products'])

        if data.get('totalPurchase') is not None:
            total = data['totalPurchase']
            if total < supplier.paid_amount:
                raise DomainError(
                    f"Total purchase cannot be less than already paid amount ({supplier.paid_amount:g})"
                )
            supplier.total_purchase = total

        if data.get('purchases'):
            purchases = list(supplier.purchases or []) + [_purchase_line(p) for p in data['purchases']]
            supplier.purchases = purchases
            total = sum(float(p.get('amount') or 0) for p in purchases)
            supplier.total_purchase = max(total, supplier.paid_amount)
        supplier.save()
    return supplier


def _invoice_sum(rows: list[dict], invoice: str) -> float:
    return sum(float(r.get('amount') or 0) for r in rows if str(r.get('invoiceNumber') or '').strip() == invoice)


def record_payment(supplier: Supplier, data: dict[str, Any], recorded_by: str) -> Supplier:
    """Pay part of the outstanding balance and book it as a Lab expense."""
    amount = data['amount']
    note = data.get('note') or ''
    method = data.get('method') or 'Cash'
    invoice = (data.get('invoiceNumber') or '').strip()
    item_id = data.get('itemId')
    item_name = (data.get('itemName') or '').strip()

    with transaction.atomic():
        supplier = Supplier.objects.select_for_update().get(pk=supplier.pk)
        remaining = supplier.outstanding
        if amount > remaining:
            raise DomainError(f"Payment exceeds remaining balance ({remaining:g})")
        if invoice:
            invoice_total = _invoice_sum(supplier.purchases or [], invoice)
            if invoice_total <= 0:
                raise DomainError('Selected invoice has no purchases recorded.')
            invoice_remaining = max(invoice_total - _invoice_sum(supplier.payments or [], invoice), 0)
            if amount > invoice_remaining:
                raise DomainError(f"Payment exceeds invoice remaining balance ({invoice_remaining:g})")

        supplier.paid_amount = (supplier.paid_amount or 0) + amount
        supplier.payments = list(supplier.payments or []) + [{
            'amount': amount,
            'note': note,
            'method': method,
            'invoiceNumber': invoice,
            'itemId': item_id,
            'itemName': item_name,
            'paidAt': timezone.now().isoformat(),
        }]
        supplier.save(update_fields=['paid_amount', 'payments', 'updated_at'])

        labels = [f"Invoice {invoice}" if invoice else 'No invoice']
        if item_name:
            labels.append(f"Item: {item_name}")
        if note:
            labels.append(f"Note: {note}")
        FinanceRecord.objects.create(
            date=timezone.now(),
            amount=amount,
            category='Supplies',
            description=f"Supplier Payment - {supplier.name}. {'. '.join(labels)}",
            department='Lab',
            type='Expense',
            recorded_by=recorded_by,
            reference=invoice or f"SUP-{supplier.pk}",
        )
    logger.info("supplier %s paid %.2f (remaining %.2f)", supplier.pk, amount, supplier.outstanding)
    return supplier
