"""
Inventory items and the supplier purchases they imply.

Adding stock (a new item, more packs or more units) is recorded as a
purchase against the item's supplier, which is created on first use.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Optional

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from lab.models import InventoryItem, Supplier

logger = logging.getLogger(__name__)

EXPIRY_WINDOW = dt.timedelta(days=30)

ITEM_FIELDS = {
    'name': 'name',
    'currentStock': 'current_stock',
    'minThreshold': 'min_threshold',
    'maxCapacity': 'max_capacity',
    'unit': 'unit',
    'costPerUnit': 'cost_per_unit',
    'supplier': 'supplier',
    'location': 'location',
    'expiryDate': 'expiry_date',
    'packs': 'packs',
    'itemsPerPack': 'items_per_pack',
    'buyPricePerPack': 'buy_price_per_pack',
    'salePricePerPack': 'sale_price_per_pack',
    'salePricePerUnit': 'sale_price_per_unit',
    'invoiceNumber': 'invoice_number',
}


def serialize_item(item: InventoryItem) -> dict[str, Any]:
    return {
        'id': item.id,
        'name': item.name,
        'category': {'id': item.category_id, 'name': item.category.name} if item.category_id else None,
        'currentStock': item.current_stock,
        'minThreshold': item.min_threshold,
        'maxCapacity': item.max_capacity,
        'unit': item.unit,
        'costPerUnit': item.cost_per_unit,
        'supplier': item.supplier,
        'location': item.location,
        'expiryDate': item.expiry_date,
        'lastRestocked': item.last_restocked,
        'packs': item.packs,
        'itemsPerPack': item.items_per_pack,
        'buyPricePerPack': item.buy_price_per_pack,
        'salePricePerPack': item.sale_price_per_pack,
        'salePricePerUnit': item.sale_price_per_unit,
        'invoiceNumber': item.invoice_number,
        'createdAt': item.created_at,
        'updatedAt': item.updated_at,
    }


def supplier_by_name(name: str) -> Optional[Supplier]:
    name = (name or '').strip()
    if not name:
        return None
    supplier = Supplier.objects.filter(name__iexact=name).first()
    if supplier is None:
        supplier = Supplier.objects.create(name=name, status='Active')
    return supplier


def record_purchase(item: InventoryItem, amount: float, quantity_units: float = 0, packs: float = 0) -> None:
    if amount <= 0:
        return
    supplier = supplier_by_name(item.supplier)
    if supplier is None:
        return
    supplier.total_purchase = (supplier.total_purchase or 0) + amount
    supplier.purchases = list(supplier.purchases or []) + [{
        'amount': amount,
        'itemId': item.pk,
        'itemName': item.name,
        'invoiceNumber': item.invoice_number,
        'quantityUnits': quantity_units,
        'packs': packs,
        'createdAt': timezone.now().isoformat(),
    }]
    supplier.save(update_fields=['total_purchase', 'purchases', 'updated_at'])
    logger.info("purchase of %.2f recorded against supplier %s", amount, supplier.name)


def initial_purchase_amount(item: InventoryItem) -> tuple[float, float]:
    """Value and unit count of the stock an item was created with."""
    if item.buy_price_per_pack > 0 and item.packs > 0:
        amount = item.buy_price_per_pack * item.packs
    elif item.cost_per_unit > 0 and item.current_stock > 0:
        amount = item.cost_per_unit * item.current_stock
    elif item.buy_price_per_pack > 0 and item.current_stock > 0:
        amount = item.buy_price_per_pack * item.current_stock
    else:
        amount = 0.0
    units = item.items_per_pack * item.packs if item.items_per_pack > 0 and item.packs > 0 else item.current_stock
    return amount, units


def create_item(data: dict[str, Any]) -> InventoryItem:
    with transaction.atomic():
        item = InventoryItem(category_id=data['category'], last_restocked=timezone.now())
        for key, attr in ITEM_FIELDS.items():
            if data.get(key) is not None:
                setattr(item, attr, data[key])
        item.save()
        amount, units = initial_purchase_amount(item)
        record_purchase(item, amount, units, item.packs)
    return item


def update_item(item: InventoryItem, data: dict[str, Any]) -> InventoryItem:
    before_packs, before_stock = item.packs, item.current_stock
    with transaction.atomic():
        for key, attr in ITEM_FIELDS.items():
            if key in data and data[key] is not None:
                setattr(item, attr, data[key])
        if data.get('category'):
            item.category_id = data['category']
        item.last_restocked = timezone.now()
        item.save()

        packs_delta = item.packs - before_packs
        stock_delta = item.current_stock - before_stock
        if packs_delta > 0 and item.buy_price_per_pack > 0:
            units = item.items_per_pack * packs_delta if item.items_per_pack > 0 else 0
            record_purchase(item, item.buy_price_per_pack * packs_delta, units, packs_delta)
        elif stock_delta > 0 and item.cost_per_unit > 0:
            record_purchase(item, item.cost_per_unit * stock_delta, stock_delta)
        elif stock_delta > 0 and item.buy_price_per_pack > 0:
            record_purchase(item, item.buy_price_per_pack * stock_delta, stock_delta)
    return item


def delete_item(item: InventoryItem) -> None:
    """Delete an item and drop its purchases from every supplier."""
    pk = item.pk
    with transaction.atomic():
        item.delete()
        for supplier in Supplier.objects.select_for_update():
            kept = [p for p in supplier.purchases or [] if str(p.get('itemId') or '') != str(pk)]
            if len(kept) == len(supplier.purchases or []):
                continue
            supplier.purchases = kept
            total = sum(float(p.get('amount') or 0) for p in kept)
            supplier.total_purchase = max(total, supplier.paid_amount or 0)
            supplier.save(update_fields=['purchases', 'total_purchase', 'updated_at'])


def inventory_summary(today: Optional[dt.date] = None) -> dict[str, Any]:
    today = today or timezone.localdate()
    qs = InventoryItem.objects.all()
    total_value = qs.aggregate(v=Sum(F('current_stock') * F('cost_per_unit')))['v'] or 0
    return {
        'totalItems': qs.count(),
        'lowStock': qs.filter(current_stock__lte=F('min_threshold')).count(),
        'outOfStock': qs.filter(current_stock__lte=0).count(),
        'expiringSoon': qs.filter(expiry_date__isnull=False,
                                  expiry_date__gte=today,
                                  expiry_date__lte=today + EXPIRY_WINDOW).count(),
        'totalValue': round(float(total_value), 2),
    }
