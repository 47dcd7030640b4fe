import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import ActivityLog, Organization, Patient, User

pytestmark = pytest.mark.django_db


@pytest.fixture
def org():
    return Organization.objects.create(name='Practice A')


def test_no_role_bypass_in_login(org):
    client = APIClient()
    u = User.objects.create_user(username='u1', password='P@ssw0rd1', role='assistant', organization=org)
    r = client.post(reverse('login_view'), {'username': 'u1', 'password': 'P@ssw0rd1', 'role': 'owner'}, format='json')
    assert r.status_code == 200
    assert r.data['role'] == 'assistant'
    u.refresh_from_db()
    assert u.role == 'assistant'


def test_login_returns_jwt_and_legacy_token(org):
    client = APIClient()
    User.objects.create_user(username='u_jwt', password='P@ssw0rd1', role='dentist', organization=org)
    r = client.post(reverse('login_view'), {'username': 'u_jwt', 'password': 'P@ssw0rd1'}, format='json')
    assert r.status_code == 200
    assert r.data['jwt_access'] and r.data['jwt_refresh'] and r.data['token']
    assert r.data['user']['organization']['name'] == 'Practice A'

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
    profile = client.get(reverse('user_profile'))
    assert profile.status_code == 200
    assert profile.data['data']['username'] == 'u_jwt'

    client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
    assert client.get('/api/patients').status_code == 200


def test_failed_login_is_rejected_and_logged(org):
    client = APIClient()
    User.objects.create_user(username='u2', password='P@ssw0rd1', role='dentist', organization=org)
    r = client.post(reverse('login_view'), {'username': 'u2', 'password': 'wrong'}, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'invalid_credentials'
    log = ActivityLog.objects.get(action='LOGIN')
    assert log.severity == 'WARN'
    assert log.organization_id == org.id


def test_disabled_user_cannot_login(org):
    client = APIClient()
    User.objects.create_user(username='u3', password='P@ssw0rd1', role='dentist', organization=org, is_disabled=True)
    r = client.post(reverse('login_view'), {'username': 'u3', 'password': 'P@ssw0rd1'}, format='json')
    assert r.status_code == 401


def test_anonymous_requests_are_unauthorized():
    client = APIClient()
    r = client.get('/api/patients')
    assert r.status_code == 401
    assert r.data['ok'] is False


def test_user_without_organization_is_refused():
    client = APIClient()
    u = User.objects.create_user(username='loner', password='P@ssw0rd1', role='dentist')
    client.force_authenticate(u)
    assert client.get('/api/patients').status_code == 403


def test_register_owner_creates_organization():
    client = APIClient()
    r = client.post(reverse('register_view'), {
        'username': 'newowner', 'password': 'Str0ng-Passw0rd', 'role': 'owner',
        'organization': {'name': 'Fresh Smiles'},
    }, format='json')
    assert r.status_code == 201
    assert r.data['user']['organization']['name'] == 'Fresh Smiles'


def test_register_staff_requires_existing_organization(org):
    client = APIClient()
    r = client.post(reverse('register_view'), {
        'username': 'staff1', 'password': 'Str0ng-Passw0rd', 'role': 'hygienist', 'organizationId': org.id + 100,
    }, format='json')
    assert r.status_code == 404
    r = client.post(reverse('register_view'), {
        'username': 'staff1', 'password': 'Str0ng-Passw0rd', 'role': 'hygienist',
    }, format='json')
    assert r.status_code == 400


def test_patient_input_is_sanitized(org):
    client = APIClient()
    u = User.objects.create_user(username='rec', password='P@ssw0rd1', role='receptionist', organization=org)
    client.force_authenticate(u)
    r = client.post('/api/patients', {
        'firstName': '<b>Jan</b>', 'lastName': 'Jansen', 'dateOfBirth': '1990-01-01', 'gender': 'MALE',
        'bsn': '999999999', 'address': {'display_name': 'Delft'},
    }, format='json')
    assert r.status_code == 201
    assert Patient.objects.get(id=r.data['data']['id']).first_name == 'Jan'


def test_healthz():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


@pytest.mark.parametrize('role,clinical,manager', [
    ('dentist', True, False),
    ('hygienist', True, False),
    ('owner', False, True),
    ('receptionist', False, False),
])
def test_role_permissions(org, role, clinical, manager):
    from types import SimpleNamespace
    from clinic.permissions import IsClinicalRole, IsManagerRole

    user = User.objects.create_user(username=f'role_{role}', password='P@ssw0rd1', role=role, organization=org)
    request = SimpleNamespace(user=user)
    assert IsClinicalRole().has_permission(request, None) is clinical
    assert IsManagerRole().has_permission(request, None) is manager
