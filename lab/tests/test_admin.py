"""
User and role administration, the test catalog, profiling and the
management commands.
"""
import io

import pytest
from django.core.management import call_command
from django.test import override_settings

from lab.models import AuditEvent, LabTest, ProfilingRecord, Role, Sample, User

from .conftest import PASSWORD, make_user

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------
# Users and roles
# ---------------------------------------------------------------------
def test_user_list_excludes_patients(anon, admin_user, patient_user):
    emails = [u['email'] for u in anon.get('/api/admin/users').data]
    assert emails == ['admin@lab.test']


def test_create_user(admin_client):
    r = admin_client.post('/api/admin/users',
                          {'name': 'Tech Two', 'email': 'Tech2@Lab.test', 'password': 'longenough1'}, format='json')
    assert r.status_code == 201
    assert r.data['role'] == 'Lab Technician'
    assert r.data['email'] == 'tech2@lab.test'
    assert 'password' not in r.data
    user = User.objects.get(email='tech2@lab.test')
    assert user.check_password('longenough1')
    assert AuditEvent.objects.filter(action='user_create', object_id=str(user.pk)).exists()


def test_create_user_duplicate_and_missing(admin_client, tech_user):
    r = admin_client.post('/api/admin/users', {'name': 'X', 'email': 'tech@lab.test', 'password': 'p'}, format='json')
    assert r.status_code == 409
    assert r.data['message'] == 'Email already in use'
    r = admin_client.post('/api/admin/users', {'email': 'a@b.test'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'name, email and password are required'


def test_update_user(admin_client, tech_user):
    r = admin_client.put(f'/api/admin/users/{tech_user.id}',
                         {'role': 'Lab Supervisor', 'password': 'brand-new-pass'}, format='json')
    assert r.status_code == 200
    assert r.data['role'] == 'Lab Supervisor'
    tech_user.refresh_from_db()
    assert tech_user.check_password('brand-new-pass')


def test_update_user_email_conflict(admin_client, tech_user, viewer_user):
    r = admin_client.put(f'/api/admin/users/{tech_user.id}', {'email': 'viewer@lab.test'}, format='json')
    assert r.status_code == 409


def test_patients_are_not_administered_here(admin_client, patient_user):
    r = admin_client.put(f'/api/admin/users/{patient_user.id}', {'name': 'x'}, format='json')
    assert r.status_code == 404
    assert r.data['message'] == 'User not found'


def test_replace_permissions(admin_client, tech_user):
    perms = [{'name': 'Finance', 'view': True}]
    r = admin_client.put(f'/api/admin/users/{tech_user.id}/permissions', {'permissions': perms}, format='json')
    assert r.status_code == 200
    assert r.data['permissions'] == [{'name': 'Finance', 'view': True, 'edit': False, 'delete': False}]
    r = admin_client.put(f'/api/admin/users/{tech_user.id}/permissions', {'permissions': 'all'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'permissions must be an array'


def test_delete_user(admin_client, tech_user):
    assert admin_client.delete(f'/api/admin/users/{tech_user.id}').data == {'success': True}
    assert not User.objects.filter(pk=tech_user.pk).exists()


def test_non_admin_cannot_edit_users(tech_client, viewer_user):
    r = tech_client.delete(f'/api/admin/users/{viewer_user.id}')
    assert r.status_code == 403


def test_roles(admin_client, anon):
    r = admin_client.post('/api/admin/roles',
                          {'name': ' Receptionist ', 'permissions': [{'name': 'Samples', 'view': True}]},
                          format='json')
    assert r.status_code == 201
    assert r.data['name'] == 'Receptionist'
    assert admin_client.post('/api/admin/roles', {'name': 'receptionist'}, format='json').status_code == 409

    other = Role.objects.create(name='Cashier')
    r = admin_client.put(f'/api/admin/roles/{other.id}', {'name': 'RECEPTIONIST'}, format='json')
    assert r.status_code == 409
    assert r.data['message'] == 'Role already exists'

    assert [x['name'] for x in anon.get('/api/admin/roles').data] == ['Cashier', 'Receptionist']
    assert admin_client.delete(f'/api/admin/roles/{other.id}').data == {'success': True}
    assert admin_client.delete(f'/api/admin/roles/{other.id}').status_code == 404


# ---------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------
def test_catalog_crud(tech_client, anon):
    r = tech_client.post('/api/tests', {
        'name': '<span onclick="x()">HbA1c</span>', 'price': 1200, 'notes': 'Three month average',
        'parameters': [{'name': 'HbA1c', 'unit': '%'}],
    }, format='json')
    assert r.status_code == 201
    assert r.data['name'] == 'HbA1c'
    assert r.data['description'] == 'Three month average'
    assert r.data['sampleType'] == 'blood'

    pk = r.data['id']
    r = tech_client.put(f'/api/tests/{pk}', {'name': 'HbA1c', 'price': 1300, 'sampleType': 'other'}, format='json')
    assert r.data['price'] == 1300
    assert r.data['parameters'] == [{'name': 'HbA1c', 'unit': '%'}]
    assert anon.delete(f'/api/tests/{pk}').status_code == 401
    assert tech_client.delete(f'/api/tests/{pk}').data == {'success': True}
    assert anon.get(f'/api/tests/{pk}').status_code == 404


# ---------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------
def sample(number, **fields):
    defaults = {'patient_name': 'Sara Ahmed', 'phone': '03001234567', 'cnic': '35202-1234567-1'}
    defaults.update(fields)
    return Sample.objects.create(sample_number=number, **defaults)


def test_profiling_rows_group_samples(tech_client):
    sample('LAB-2025-001', collected_sample='Blood')
    sample('LAB-2025-002', collected_sample='Urine')
    sample('LAB-2025-003', cnic='', phone='03110000000', patient_name='Walk In')

    items = tech_client.get('/api/lab/profiling').data['items']
    by_id = {i['id']: i for i in items}
    sara = by_id['CNIC:35202-1234567-1']
    assert sara['numberOfVisits'] == 2
    assert sorted(sara['sampleTypes']) == ['Blood', 'Urine']
    assert by_id['PHONE:03110000000']['name'] == 'Walk In'


def test_profiling_upsert_by_cnic(tech_client):
    body = {'name': 'Sara Ahmed', 'cnic': '35202-1234567-1', 'phone': '03001234567', 'profilingNotes': 'Diabetic'}
    r = tech_client.post('/api/lab/profiling', body, format='json')
    assert r.status_code == 201
    body['profilingNotes'] = 'Diabetic, on insulin'
    r = tech_client.post('/api/lab/profiling', body, format='json')
    assert r.status_code == 200
    assert r.data['item']['profilingNotes'] == 'Diabetic, on insulin'
    assert ProfilingRecord.objects.count() == 1


def test_profiling_requires_identity(tech_client):
    r = tech_client.post('/api/lab/profiling', {'name': 'Sara'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Name, CNIC and phone are required.'


def test_notes_on_synthetic_row_create_record(tech_client):
    sample('LAB-2025-001', cnic='', phone='03110000000', patient_name='Walk In')
    r = tech_client.put('/api/lab/profiling/PHONE:03110000000',
                        {'name': 'Walk In', 'profilingNotes': 'Allergic to latex'}, format='json')
    assert r.status_code == 200
    record = ProfilingRecord.objects.get()
    assert (record.phone, record.cnic, record.profiling_notes) == ('03110000000', None, 'Allergic to latex')
    assert r.data['item']['numberOfVisits'] == 1

    items = tech_client.get('/api/lab/profiling').data['items']
    assert items[0]['id'] == record.id


def test_profiling_detail(tech_client):
    record = ProfilingRecord.objects.create(name='A', cnic='111', phone='0300')
    assert tech_client.get(f'/api/lab/profiling/{record.id}').data['item']['name'] == 'A'
    assert tech_client.delete(f'/api/lab/profiling/{record.id}').data == {'success': True}
    r = tech_client.get(f'/api/lab/profiling/{record.id}')
    assert r.status_code == 404
    assert r.data['message'] == 'Profile not found'


# ---------------------------------------------------------------------
# Management commands
# ---------------------------------------------------------------------
@override_settings(ADMIN_EMAIL='Owner@Lab.test', ADMIN_PASSWORD='Owner#123')
def test_create_admin_is_idempotent():
    out = io.StringIO()
    call_command('create_admin', stdout=out)
    assert 'admin created' in out.getvalue()
    call_command('create_admin', '--password', PASSWORD, stdout=out)
    assert 'admin updated' in out.getvalue()

    user = User.objects.get()
    assert (user.email, user.username, user.role) == ('owner@lab.test', 'owner@lab.test', 'admin')
    assert user.check_password(PASSWORD)


def test_create_admin_can_promote_existing_account():
    make_user('boss@lab.test', 'Lab Technician')
    call_command('create_admin', '--email', 'boss@lab.test', '--password', 'x' * 10, stdout=io.StringIO())
    assert User.objects.get(email='boss@lab.test').role == 'admin'
    assert User.objects.count() == 1


def test_seed_tests_is_idempotent():
    LabTest.objects.create(name='complete blood count (cbc)', price=1)
    call_command('seed_tests', stdout=io.StringIO())
    assert LabTest.objects.count() == 20
    assert LabTest.objects.get(name__iexact='complete blood count (cbc)').price == 1
    call_command('seed_tests', stdout=io.StringIO())
    assert LabTest.objects.count() == 20
    cbc_params = LabTest.objects.get(name='Blood Glucose (Random)').parameters
    assert cbc_params[0]['name'] == 'Glucose (Random)'
