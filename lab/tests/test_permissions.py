import pytest

from lab.permissions import (
    MODULES,
    HasModuleCapability,
    capability_map,
    is_admin_role,
    module_capabilities,
    module_capability,
)

from .conftest import client_for, make_user

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize('role', ['admin', 'Administrator', 'Lab Supervisor', 'lab_supervisor', 'LAB-SUPERVISOR',
                                  ' supervisor '])
def test_admin_equivalent_roles(role):
    assert is_admin_role(role)
    caps = module_capabilities(role, [], 'Finance')
    assert (caps.view, caps.edit, caps.delete) == (True, True, True)


def test_non_admin_roles():
    assert not is_admin_role('Lab Technician')
    assert not is_admin_role(None)


def test_entry_matching_is_trimmed_and_case_insensitive():
    perms = [{'name': '  inventory ', 'view': True, 'edit': True, 'delete': False}]
    caps = module_capabilities('Lab Technician', perms, 'Inventory')
    assert (caps.view, caps.edit, caps.delete) == (True, True, False)


def test_missing_entry_is_view_only():
    caps = module_capabilities('Lab Technician', [{'name': 'Samples', 'view': True}], 'Finance')
    assert (caps.view, caps.edit, caps.delete) == (True, False, False)


def test_patients_get_no_module_access():
    caps = module_capabilities('patient', None, 'Samples')
    assert not caps.view


def test_capability_map_covers_every_module():
    user = make_user('t@lab.test', 'Lab Technician', permissions=[{'name': 'Finance', 'view': False}])
    caps = capability_map(user)
    assert set(caps) == set(MODULES)
    assert caps['Finance'] == {'view': False, 'edit': False, 'delete': False}
    assert caps['Samples'] == {'view': True, 'edit': False, 'delete': False}


def test_capabilities_endpoint(tech_client):
    r = tech_client.get('/api/profile/capabilities')
    assert r.status_code == 200
    assert r.data['role'] == 'Lab Technician'
    assert r.data['capabilities']['Samples']['delete'] is True


def test_view_only_user_cannot_write(viewer_client):
    assert viewer_client.get('/api/lab/inventory/categories').status_code == 200
    r = viewer_client.post('/api/lab/inventory/categories', {'name': 'Reagents'}, format='json')
    assert r.status_code == 403
    assert r.data['success'] is False
    assert r.data['message'] == 'You do not have edit permission for Inventory'


def test_edit_without_delete():
    user = make_user('e@lab.test', 'Lab Technician',
                     permissions=[{'name': 'Finance', 'view': True, 'edit': True, 'delete': False}])
    client = client_for(user)
    r = client.post('/api/finance/ledger', {'amount': 100, 'type': 'Income'}, format='json')
    assert r.status_code == 201
    r = client.delete(f"/api/finance/ledger/{r.data['id']}")
    assert r.status_code == 403
    assert r.data['message'] == 'You do not have delete permission for Finance'


def test_module_hidden_from_user(db):
    user = make_user('h@lab.test', 'Lab Technician', permissions=[{'name': 'Finance', 'view': False}])
    r = client_for(user).get('/api/finance/ledger')
    assert r.status_code == 403


def test_patient_blocked_from_lab_modules(patient_client):
    assert patient_client.get('/api/labtech/samples').status_code == 403


def test_catalog_is_publicly_readable(anon, tech_client):
    assert anon.get('/api/tests').status_code == 200
    assert anon.post('/api/tests', {'name': 'CBC'}, format='json').status_code == 401
    r = tech_client.post('/api/tests', {'name': 'CBC', 'price': 650, 'sampleType': 'blood'}, format='json')
    assert r.status_code == 201
    assert anon.get(f"/api/tests/{r.data['id']}").data['name'] == 'CBC'


def test_admin_user_list_is_public_but_writes_are_admin_only(anon, tech_client, admin_client):
    assert anon.get('/api/admin/users').status_code == 200
    body = {'name': 'New Tech', 'email': 'new@lab.test', 'password': 'longenough1'}
    assert anon.post('/api/admin/users', body, format='json').status_code == 401
    r = tech_client.post('/api/admin/users', body, format='json')
    assert r.status_code == 403
    assert r.data['message'] == 'Admin access required'
    assert admin_client.post('/api/admin/users', body, format='json').status_code == 201


@pytest.mark.parametrize('role', ['', 'patient', 'Lab Technician', 'super visor admin'])
def test_admin_desk_refuses_non_admin_roles(role):
    user = make_user('x@lab.test', role)
    r = client_for(user).get('/api/appointments/admin')
    assert r.status_code == 403
    assert r.data == {'success': False, 'message': 'Admin access required'}


@pytest.mark.parametrize('role', ['Admin', 'LAB SUPERVISOR', 'Lab-Supervisor', 'administrator'])
def test_admin_desk_accepts_admin_equivalents(role):
    user = make_user('x@lab.test', role)
    r = client_for(user).get('/api/appointments/admin')
    assert r.status_code == 200


def test_module_capability_builds_named_permission_classes():
    perm = module_capability('Staff Attendance')
    assert issubclass(perm, HasModuleCapability)
    assert perm.__name__ == 'HasStaffAttendanceCapability'
    assert (perm.module, perm.public_read) == ('Staff Attendance', False)
    assert module_capability('Test Catalog', public_read=True).public_read is True


def test_validation_reports_every_violation(anon):
    r = anon.post('/api/auth/signup-patient', {}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'name is required'
    assert r.data['errors'] == ['name is required', 'email is required', 'password is required']


def test_validation_mixes_custom_and_generic_messages(anon):
    r = anon.post('/api/auth/signup-patient', {'email': 'not-an-email', 'password': 'short'}, format='json')
    assert r.data['errors'] == [
        'name is required',
        'Please provide a valid email address',
        'Password must be at least 8 characters long',
    ]
