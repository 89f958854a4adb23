import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from lab.authentication import issue_token
from lab.models import User

PASSWORD = 'P@ssw0rd123'

ALL_MODULES = [
    'Dashboard', 'Appointments', 'Test Catalog', 'Samples', 'Result Entry', 'Report Designer',
    'Inventory', 'Suppliers', 'Profiling', 'Staff Attendance', 'Finance', 'User Management', 'Settings',
]


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


def make_user(email, role, permissions=None, **extra):
    return User.objects.create_user(
        username=email,
        email=email,
        password=PASSWORD,
        name=extra.pop('name', email.split('@')[0]),
        role=role,
        permissions=permissions if permissions is not None else [],
        **extra,
    )


def client_for(user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(user)}')
    return client


def full_access(*modules):
    return [{'name': m, 'view': True, 'edit': True, 'delete': True} for m in (modules or ALL_MODULES)]


@pytest.fixture
def admin_user(db):
    return make_user('admin@lab.test', 'admin', name='Admin')


@pytest.fixture
def tech_user(db):
    return make_user('tech@lab.test', 'Lab Technician', permissions=full_access(), name='Tech One')


@pytest.fixture
def viewer_user(db):
    return make_user('viewer@lab.test', 'Receptionist', permissions=[])


@pytest.fixture
def patient_user(db):
    return make_user('patient@lab.test', 'patient', name='Pat Ient', phone='03001234567')


@pytest.fixture
def anon():
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture
def tech_client(tech_user):
    return client_for(tech_user)


@pytest.fixture
def viewer_client(viewer_user):
    return client_for(viewer_user)


@pytest.fixture
def patient_client(patient_user):
    return client_for(patient_user)


@pytest.fixture(autouse=True)
def _no_push(monkeypatch):
    sent = []

    def fake_push(token, title, body, data=None):
        sent.append({'token': token, 'title': title, 'body': body, 'data': data})
        return True

    monkeypatch.setattr('lab.services.notifications.send_expo_push', fake_push)
    return sent
