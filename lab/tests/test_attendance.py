import pytest

from lab.models import Attendance, FinanceRecord, Staff
from lab.services.attendance import date_key, today_key

pytestmark = pytest.mark.django_db


@pytest.fixture
def staff(tech_client):
    r = tech_client.post('/api/lab/staff', {'name': 'Nadia Malik', 'position': 'Phlebotomist', 'salary': 40000},
                         format='json')
    assert r.status_code == 201
    return Staff.objects.get(pk=r.data['id'])


def test_staff_codes_are_sequential(tech_client, staff):
    assert staff.staff_code == 'LS1'
    r = tech_client.post('/api/lab/staff', {'name': 'Omar', 'position': 'Technician'}, format='json')
    assert r.data['staffCode'] == 'LS2'


def test_staff_code_skips_past_highest(tech_client):
    Staff.objects.create(staff_code='LS7', name='Old Hand', position='Technician')
    r = tech_client.post('/api/lab/staff', {'name': 'New', 'position': 'Technician'}, format='json')
    assert r.data['staffCode'] == 'LS8'


def test_staff_requires_position(tech_client):
    r = tech_client.post('/api/lab/staff', {'name': 'Nadia'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'position is required'


def test_staff_update_and_delete(tech_client, staff):
    r = tech_client.put(f'/api/lab/staff/{staff.id}', {'position': 'Senior Phlebotomist'}, format='json')
    assert r.data['position'] == 'Senior Phlebotomist'
    assert r.data['name'] == 'Nadia Malik'
    assert tech_client.delete(f'/api/lab/staff/{staff.id}').data == {'success': True}
    r = tech_client.get(f'/api/lab/staff/{staff.id}')
    assert r.status_code == 404
    assert r.data['message'] == 'Staff not found'


def test_check_in_once_per_day(tech_client, staff):
    r = tech_client.post('/api/lab/attendance/attendance/check-in', {'staffId': staff.id}, format='json')
    assert r.status_code == 201
    assert r.data['status'] == 'present'
    assert r.data['date'] == today_key()
    assert r.data['checkIn']

    r = tech_client.post('/api/lab/attendance/attendance/check-in', {'staffId': staff.id}, format='json')
    assert r.status_code == 409
    assert r.data['message'] == 'Already checked in today'
    assert Attendance.objects.count() == 1


def test_check_out_needs_check_in(tech_client, staff):
    r = tech_client.post('/api/lab/attendance/attendance/check-out', {'staffId': staff.id}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Cannot check out without checking in first'

    tech_client.post('/api/lab/attendance/attendance/check-in', {'staffId': staff.id}, format='json')
    r = tech_client.post('/api/lab/attendance/attendance/check-out', {'staffId': staff.id}, format='json')
    assert r.status_code == 200
    assert r.data['checkOut']


def test_check_in_keeps_leave_status(tech_client, staff):
    Attendance.objects.create(staff=staff, date=today_key(), status='leave')
    r = tech_client.post('/api/lab/attendance/attendance/check-in', {'staffId': staff.id}, format='json')
    assert r.data['status'] == 'leave'


def test_roster_shows_today(tech_client, staff):
    tech_client.post('/api/lab/attendance/attendance/check-in', {'staffId': staff.id}, format='json')
    Attendance.objects.create(staff=staff, date='2020-01-01', status='absent')
    rows = tech_client.get('/api/lab/staff').data
    assert len(rows[0]['attendance']) == 1
    assert rows[0]['attendance'][0]['date'] == today_key()


def test_manual_attendance_upsert(tech_client, staff):
    body = {'staffId': staff.id, 'date': '2025-03-04', 'status': 'late', 'checkIn': '09:40'}
    assert tech_client.post('/api/lab/attendance/attendance', body, format='json').status_code == 201
    body['status'] = 'present'
    tech_client.post('/api/lab/attendance/attendance', body, format='json')
    row = Attendance.objects.get()
    assert (row.date, row.status, row.check_in) == ('2025-03-04', 'present', '09:40')

    rows = tech_client.get('/api/lab/attendance/attendance?date=2025-03-04').data
    assert rows[0]['staffName'] == 'Nadia Malik'


def test_manual_attendance_rejects_bad_time(tech_client, staff):
    r = tech_client.post('/api/lab/attendance/attendance',
                         {'staffId': staff.id, 'date': '2025-03-04', 'checkIn': '9:40am'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Invalid checkIn time. Expected HH:MM (24-hour).'


def test_monthly_counts(tech_client, staff):
    for day, status in [('01', 'present'), ('02', 'present'), ('03', 'late'), ('04', 'absent'), ('05', 'leave'),
                        ('06', 'half_day')]:
        Attendance.objects.create(staff=staff, date=f'2025-03-{day}', status=status)
    Attendance.objects.create(staff=staff, date='2025-04-01', status='absent')

    r = tech_client.get(f'/api/lab/attendance/attendance/monthly?staffId={staff.id}&month=2025-03')
    assert r.status_code == 200
    assert (r.data['present'], r.data['late'], r.data['absent'], r.data['leave']) == (2, 1, 1, 1)
    assert len(r.data['days']) == 6

    days = tech_client.get(f'/api/lab/attendance/attendance?staffId={staff.id}&month=2025-04').data
    assert [d['date'] for d in days] == ['2025-04-01']


def test_monthly_validation(tech_client, staff):
    r = tech_client.get('/api/lab/attendance/attendance/monthly?month=2025-03')
    assert r.data['message'] == 'staffId is required'
    r = tech_client.get(f'/api/lab/attendance/attendance/monthly?staffId={staff.id}&month=March')
    assert r.status_code == 400
    assert r.data['message'] == 'month must be YYYY-MM'


def test_salary_once_per_month_with_expense(tech_client, staff):
    url = f'/api/lab/staff/{staff.id}/salaries'
    r = tech_client.post(url, {'month': '2025-03', 'amount': 40000, 'bonus': 5000}, format='json')
    assert r.status_code == 201
    record = FinanceRecord.objects.get()
    assert (record.category, record.type, record.amount) == ('Salaries', 'Expense', 45000)
    assert record.description == 'Salary for LS1 - Nadia Malik (2025-03)'

    r = tech_client.post(url, {'month': '2025-03', 'amount': 40000}, format='json')
    assert r.status_code == 409
    assert r.data['message'] == 'Salary for 2025-03 already recorded'
    assert FinanceRecord.objects.count() == 1
    assert len(tech_client.get(url).data) == 1


def test_salary_month_format(tech_client, staff):
    r = tech_client.post(f'/api/lab/staff/{staff.id}/salaries', {'month': '2025-13', 'amount': 1}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'month must be YYYY-MM'


def test_server_time(tech_client):
    r = tech_client.get('/api/lab/attendance/server-time')
    assert r.data['date'] == today_key()
    assert len(r.data['time']) == 5


def test_date_key():
    assert date_key('2025-03-04T10:00:00Z') == '2025-03-04'
    assert date_key('yesterday') == today_key()
