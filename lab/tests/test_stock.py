"""
Inventory, supplier balances and the lab ledger.
"""
import datetime as dt

import pytest
from django.utils import timezone

from lab.models import FinanceRecord, InventoryCategory, InventoryItem, Supplier
from lab.services.inventory import inventory_summary

pytestmark = pytest.mark.django_db


@pytest.fixture
def category():
    return InventoryCategory.objects.create(name='Reagents')


def new_item(tech_client, category, **overrides):
    body = {
        'name': 'Glucose Reagent',
        'category': category.id,
        'supplier': 'MedSupply',
        'packs': 2,
        'itemsPerPack': 100,
        'buyPricePerPack': 500,
        'currentStock': 200,
        'unit': 'tests',
    }
    body.update(overrides)
    return tech_client.post('/api/lab/inventory/inventory', body, format='json')


# ---------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------
def test_category_names_are_unique(tech_client):
    assert tech_client.post('/api/lab/inventory/categories', {'name': 'Reagents'}, format='json').status_code == 201
    r = tech_client.post('/api/lab/inventory/categories', {'name': 'reagents'}, format='json')
    assert r.status_code == 409
    assert r.data['message'] == 'Category already exists'


def test_category_name_required(tech_client):
    r = tech_client.post('/api/lab/inventory/categories', {'name': ''}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Category name is required'


def test_item_requires_known_category(tech_client):
    r = tech_client.post('/api/lab/inventory/inventory', {'name': 'Gloves', 'category': 999}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Category not found'


def test_new_item_is_a_supplier_purchase(tech_client, category):
    r = new_item(tech_client, category)
    assert r.status_code == 201
    assert r.data['category'] == {'id': category.id, 'name': 'Reagents'}
    supplier = Supplier.objects.get(name='MedSupply')
    assert supplier.total_purchase == 1000
    assert supplier.purchases[0]['itemId'] == r.data['id']
    assert supplier.purchases[0]['quantityUnits'] == 200


def test_restock_by_packs_adds_purchase(tech_client, category):
    item_id = new_item(tech_client, category).data['id']
    r = tech_client.put(f'/api/lab/inventory/inventory/{item_id}', {'packs': 3, 'currentStock': 300}, format='json')
    assert r.status_code == 200
    assert r.data['packs'] == 3
    supplier = Supplier.objects.get(name='MedSupply')
    assert supplier.total_purchase == 1500
    assert len(supplier.purchases) == 2


def test_stock_reduction_is_not_a_purchase(tech_client, category):
    item_id = new_item(tech_client, category).data['id']
    tech_client.put(f'/api/lab/inventory/inventory/{item_id}', {'currentStock': 150}, format='json')
    assert Supplier.objects.get(name='MedSupply').total_purchase == 1000


def test_deleting_item_drops_its_purchases(tech_client, category):
    item_id = new_item(tech_client, category).data['id']
    r = tech_client.delete(f'/api/lab/inventory/inventory/{item_id}')
    assert r.data == {'success': True}
    supplier = Supplier.objects.get(name='MedSupply')
    assert supplier.purchases == []
    assert supplier.total_purchase == 0
    assert tech_client.get(f'/api/lab/inventory/inventory/{item_id}').status_code == 404


def test_item_list_filters(tech_client, category):
    other = InventoryCategory.objects.create(name='Glassware')
    new_item(tech_client, category)
    new_item(tech_client, other, name='Test Tube', supplier='')
    names = [i['name'] for i in tech_client.get(f'/api/lab/inventory/inventory?category={other.id}').data]
    assert names == ['Test Tube']
    names = [i['name'] for i in tech_client.get('/api/lab/inventory/inventory?q=glucose').data]
    assert names == ['Glucose Reagent']


def test_inventory_summary(category):
    today = timezone.localdate()
    InventoryItem.objects.create(name='A', category=category, current_stock=5, min_threshold=10, cost_per_unit=2)
    InventoryItem.objects.create(name='B', category=category, current_stock=0)
    InventoryItem.objects.create(name='C', category=category, current_stock=100, min_threshold=10,
                                 cost_per_unit=1.5, expiry_date=today + dt.timedelta(days=10))
    InventoryItem.objects.create(name='D', category=category, current_stock=50, min_threshold=10,
                                 expiry_date=today - dt.timedelta(days=1))
    assert inventory_summary(today) == {
        'totalItems': 4,
        'lowStock': 2,
        'outOfStock': 1,
        'expiringSoon': 1,
        'totalValue': 160.0,
    }


def test_summary_endpoint(tech_client, category):
    InventoryItem.objects.create(name='A', category=category, current_stock=0)
    r = tech_client.get('/api/lab/inventory/inventory/summary')
    assert r.status_code == 200
    assert r.data['outOfStock'] == 1


# ---------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------
@pytest.fixture
def supplier():
    return Supplier.objects.create(
        name='MedSupply',
        total_purchase=1500,
        purchases=[{'amount': 1000, 'invoiceNumber': 'INV-1'}, {'amount': 500, 'invoiceNumber': 'INV-2'}],
    )


def test_supplier_products_are_split(tech_client):
    r = tech_client.post('/api/lab/suppliers', {'name': 'Lab Depot', 'products': 'Gloves, Tubes\nSwabs'},
                         format='json')
    assert r.status_code == 201
    assert r.data['products'] == ['Gloves', 'Tubes', 'Swabs']
    assert r.data['balanceStatus'] == 'Cleared'


def test_payment_cannot_exceed_balance(tech_client, supplier):
    r = tech_client.post(f'/api/lab/suppliers/{supplier.id}/payments', {'amount': 2000}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Payment exceeds remaining balance (1500)'
    assert not FinanceRecord.objects.exists()


def test_payment_must_be_positive(tech_client, supplier):
    r = tech_client.post(f'/api/lab/suppliers/{supplier.id}/payments', {'amount': 0}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Payment amount must be greater than 0'


def test_payment_books_supplies_expense(tech_client, supplier):
    r = tech_client.post(f'/api/lab/suppliers/{supplier.id}/payments',
                         {'amount': 600, 'note': 'first instalment'}, format='json')
    assert r.status_code == 201
    assert r.data['paidAmount'] == 600
    assert r.data['remaining'] == 900
    assert r.data['balanceStatus'] == 'Pending'
    record = FinanceRecord.objects.get()
    assert (record.category, record.type, record.amount) == ('Supplies', 'Expense', 600)
    assert record.recorded_by == 'Tech One'
    assert 'Note: first instalment' in record.description


def test_invoice_payment_limits(tech_client, supplier):
    url = f'/api/lab/suppliers/{supplier.id}/payments'
    r = tech_client.post(url, {'amount': 100, 'invoiceNumber': 'INV-9'}, format='json')
    assert r.data['message'] == 'Selected invoice has no purchases recorded.'
    r = tech_client.post(url, {'amount': 600, 'invoiceNumber': 'INV-2'}, format='json')
    assert r.data['message'] == 'Payment exceeds invoice remaining balance (500)'
    assert tech_client.post(url, {'amount': 500, 'invoiceNumber': 'INV-2'}, format='json').status_code == 201


def test_total_cannot_drop_below_paid(tech_client, supplier):
    tech_client.post(f'/api/lab/suppliers/{supplier.id}/payments', {'amount': 600}, format='json')
    r = tech_client.put(f'/api/lab/suppliers/{supplier.id}', {'totalPurchase': 100}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Total purchase cannot be less than already paid amount (600)'


def test_appended_purchases_recompute_total(tech_client, supplier):
    r = tech_client.put(f'/api/lab/suppliers/{supplier.id}',
                        {'purchases': [{'amount': 250, 'invoiceNumber': 'INV-3'}]}, format='json')
    assert r.status_code == 200
    assert r.data['totalPurchase'] == 1750
    assert len(r.data['purchases']) == 3


def test_unknown_supplier_is_404(tech_client):
    r = tech_client.get('/api/lab/suppliers/999')
    assert r.status_code == 404
    assert r.data['message'] == 'Supplier not found'


# ---------------------------------------------------------------------
# Finance
# ---------------------------------------------------------------------
def add(client, **body):
    return client.post('/api/finance/ledger', body, format='json')


def test_manual_entry_defaults(tech_client):
    r = add(tech_client, amount=250, category='Utilities')
    assert r.status_code == 201
    assert r.data['type'] == 'Expense'
    assert r.data['department'] == 'Lab'
    assert r.data['description'] == 'Utilities'
    assert r.data['recordedBy'] == 'Tech One'


def test_invalid_amount(tech_client):
    r = add(tech_client, amount=-5)
    assert r.status_code == 400
    assert r.data['message'] == 'Invalid amount'


def test_summary_and_filters(tech_client):
    add(tech_client, amount=1000, type='Income', category='Consultation', date='2025-01-10')
    add(tech_client, amount=300, type='Expense', category='Rent', date='2025-01-15')
    add(tech_client, amount=200, type='Income', category='Consultation', department='OPD')

    r = tech_client.get('/api/finance/summary')
    assert r.data['totalIncome'] == 1200
    assert r.data['totalExpense'] == 300
    assert r.data['net'] == 900
    assert r.data['byCategory']['Consultation'] == {'income': 1200, 'expense': 0}

    assert tech_client.get('/api/finance/summary?department=Lab').data['totalIncome'] == 1000
    rows = tech_client.get('/api/finance/ledger?from=2025-01-12&to=2025-01-31').data
    assert [row['category'] for row in rows] == ['Rent']
    rows = tech_client.get('/api/finance/ledger?type=Income').data
    assert len(rows) == 2


def test_delete_unknown_entry(tech_client):
    r = tech_client.delete('/api/finance/ledger/999')
    assert r.status_code == 404
    assert r.data['message'] == 'Record not found'


def test_ipd_entries_are_booked_under_ipd(admin_client):
    r = admin_client.post('/api/ipd/finance', {'amount': 5000, 'type': 'Income', 'department': 'Lab',
                                               'admissionId': 'ADM-7'}, format='json')
    assert r.status_code == 201
    assert (r.data['department'], r.data['category'], r.data['admissionId']) == ('IPD', 'General', 'ADM-7')
    assert r.data['recordedBy'] == 'Admin'


def test_ipd_list_only_shows_ipd(admin_client, viewer_client):
    add(admin_client, amount=100, category='Rent')
    admin_client.post('/api/ipd/finance', {'amount': 700, 'category': 'Ward', 'date': '2025-02-01'}, format='json')
    admin_client.post('/api/ipd/finance', {'amount': 900, 'type': 'Income', 'date': '2025-02-03'}, format='json')

    rows = viewer_client.get('/api/ipd/finance').data
    assert [row['amount'] for row in rows] == [900, 700]
    rows = viewer_client.get('/api/ipd/finance?type=Expense').data
    assert [row['category'] for row in rows] == ['Ward']


def test_ipd_writes_need_admin(tech_client, anon):
    r = tech_client.post('/api/ipd/finance', {'amount': 10}, format='json')
    assert r.status_code == 403
    assert r.data['message'] == 'Admin access required'
    assert anon.get('/api/ipd/finance').status_code == 401


def test_ipd_rejects_non_positive_amount(admin_client):
    r = admin_client.post('/api/ipd/finance', {'amount': 0}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Invalid amount'


def test_ipd_delete_leaves_lab_rows_alone(admin_client):
    lab_row = add(admin_client, amount=100, category='Rent').data
    r = admin_client.delete(f'/api/ipd/finance/{lab_row["id"]}')
    assert r.status_code == 404
    assert r.data['message'] == 'Record not found'

    ipd_row = admin_client.post('/api/ipd/finance', {'amount': 700}, format='json').data
    assert admin_client.delete(f'/api/ipd/finance/{ipd_row["id"]}').data == {'ok': True}
    assert list(FinanceRecord.objects.values_list('department', flat=True)) == ['Lab']
