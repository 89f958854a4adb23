import datetime as dt

import pytest
from django.utils import timezone

from lab.models import Appointment, Notification
from lab.services.appointments import derived_payment_status, slot_datetime

pytestmark = pytest.mark.django_db


def future_day(days=5):
    return (timezone.localdate() + dt.timedelta(days=days)).isoformat()


def booking(**overrides):
    body = {
        'selectedTest': 'Lipid Profile',
        'fullName': 'Pat Ient',
        'email': 'patient@lab.test',
        'cnic': '35202-7654321-1',
        'gender': 'Male',
        'age': 40,
        'date': future_day(),
        'time': '10:30 AM',
        'paymentMethod': 'EasyPaisa',
    }
    body.update(overrides)
    return body


def book(client, **overrides):
    return client.post('/api/appointments', booking(**overrides), format='json')


def test_slot_datetime():
    when = slot_datetime('2025-03-04', '12:15 AM')
    assert (when.hour, when.minute) == (0, 15)
    assert slot_datetime('2025-03-04', '1:05 PM').hour == 13
    assert slot_datetime('2025-03-04', '25:00') is None
    assert slot_datetime('not-a-date', '10:00 AM') is None


def test_payment_status_from_method():
    assert derived_payment_status(' JazzCash ') == 'Paid'
    assert derived_payment_status('Pay on home sampling') == 'Not paid'
    assert derived_payment_status('cash') is None


def test_patient_books_and_admin_is_notified(patient_client, admin_user):
    r = book(patient_client)
    assert r.status_code == 201
    appointment = r.data['appointment']
    assert appointment['appointmentCode'] == 'AP1'
    assert appointment['status'] == 'Pending'
    assert appointment['paymentStatus'] == 'Paid'
    n = Notification.objects.get(user=admin_user)
    assert n.type == 'appointment_booked'
    assert n.audience == 'admin'

    second = book(patient_client, time='11:00 AM')
    assert second.data['appointment']['appointmentCode'] == 'AP2'


def test_staff_cannot_use_patient_booking(tech_client):
    r = book(tech_client)
    assert r.status_code == 403
    assert r.data['message'] == 'Patient access required'


def test_slot_taken(patient_client):
    book(patient_client)
    r = book(patient_client)
    assert r.status_code == 400
    assert r.data['code'] == 'TIME_SLOT_TAKEN'


def test_cancelled_slot_is_free_again(patient_client):
    Appointment.objects.create(
        patient_name='Someone', contact='x', cnic='12345', gender='Male', age=30, test_name='CBC',
        date=future_day(), time='10:30 AM', status='Cancelled', appointment_sequence=1, appointment_code='AP1',
    )
    r = book(patient_client)
    assert r.status_code == 201
    assert r.data['appointment']['appointmentCode'] == 'AP2'


def test_past_dates_rejected(patient_client):
    r = book(patient_client, date=future_day(-1))
    assert r.status_code == 400
    assert r.data['code'] == 'PAST_DATE_NOT_ALLOWED'


def test_booking_validation(patient_client):
    r = book(patient_client, age=0)
    assert r.status_code == 400
    assert r.data['message'].startswith('age')


def test_my_appointments_only_mine(patient_client, patient_user):
    book(patient_client)
    Appointment.objects.create(
        patient_name='Other', contact='x', cnic='12345', gender='Male', age=30, test_name='CBC',
        date=future_day(), time='09:00 AM', appointment_sequence=99, appointment_code='AP99',
    )
    rows = patient_client.get('/api/appointments/mine').data['appointments']
    assert [a['patient'] for a in rows] == [patient_user.id]


def test_patient_cancel(patient_client, admin_user):
    pk = book(patient_client).data['appointment']['id']
    r = patient_client.patch(f'/api/appointments/mine/{pk}/cancel', {}, format='json')
    assert r.status_code == 200
    assert r.data['appointment']['status'] == 'Cancelled'
    assert r.data['appointment']['cancelledBy'] == 'patient'
    assert Notification.objects.filter(user=admin_user, type='appointment_cancelled').count() == 1


def test_patient_reschedule_is_announced_once(patient_client, admin_user):
    pk = book(patient_client).data['appointment']['id']
    patient_client.patch(f'/api/appointments/mine/{pk}/cancel',
                         {'isReschedule': True, 'newDate': future_day(6), 'newTime': '09:00 AM'}, format='json')
    book(patient_client, date=future_day(6), time='09:00 AM', isReschedule=True)
    types = list(Notification.objects.filter(user=admin_user).values_list('type', flat=True))
    assert types.count('appointment_rescheduled') == 1
    assert types.count('appointment_booked') == 1


def test_late_cancellation_refused(patient_client, patient_user):
    appointment = Appointment.objects.create(
        patient=patient_user, patient_name='Pat', contact='x', cnic='12345', gender='Male', age=30,
        test_name='CBC', date=timezone.localdate().isoformat(), time='12:00 AM',
        appointment_sequence=1, appointment_code='AP1',
    )
    r = patient_client.patch(f'/api/appointments/mine/{appointment.id}/cancel', {}, format='json')
    assert r.status_code == 400
    assert r.data['code'] == 'TOO_LATE_TO_CANCEL'


def test_cannot_cancel_someone_elses(patient_client):
    other = Appointment.objects.create(
        patient_name='Other', contact='x', cnic='12345', gender='Male', age=30, test_name='CBC',
        date=future_day(), time='09:00 AM', appointment_sequence=1, appointment_code='AP1',
    )
    r = patient_client.patch(f'/api/appointments/mine/{other.id}/cancel', {}, format='json')
    assert r.status_code == 404
    assert r.data['message'] == 'Appointment not found'


def test_admin_confirm_notifies_and_pushes(patient_client, patient_user, admin_client, _no_push):
    patient_user.expo_push_token = 'ExponentPushToken[abc]'
    patient_user.save()
    pk = book(patient_client).data['appointment']['id']
    r = admin_client.patch(f'/api/appointments/admin/{pk}/status', {'status': 'Confirmed'}, format='json')
    assert r.status_code == 200
    assert r.data['appointment']['status'] == 'Confirmed'
    n = Notification.objects.get(user=patient_user)
    assert n.type == 'appointment_confirmed'
    assert _no_push == [{
        'token': 'ExponentPushToken[abc]',
        'title': 'Appointment Confirmed',
        'body': n.message,
        'data': {'appointmentId': str(pk), 'type': 'appointment_confirmed'},
    }]


def test_admin_status_validation(patient_client, admin_client):
    pk = book(patient_client).data['appointment']['id']
    r = admin_client.patch(f'/api/appointments/admin/{pk}/status', {'status': 'Done'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'status must be one of [Pending, Confirmed, Cancelled]'


def test_admin_update_checks_slot(patient_client, admin_client):
    first = book(patient_client).data['appointment']['id']
    book(patient_client, time='11:00 AM')
    r = admin_client.patch(f'/api/appointments/admin/{first}', {'time': '11:00 AM'}, format='json')
    assert r.status_code == 400
    assert r.data['code'] == 'TIME_SLOT_TAKEN'
    r = admin_client.patch(f'/api/appointments/admin/{first}',
                           {'time': '02:00 PM', 'paymentMethod': 'Pay on home sampling'}, format='json')
    assert r.data['appointment']['time'] == '02:00 PM'
    assert r.data['appointment']['paymentStatus'] == 'Not paid'


def test_admin_update_needs_a_field(patient_client, admin_client):
    pk = book(patient_client).data['appointment']['id']
    r = admin_client.patch(f'/api/appointments/admin/{pk}', {}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'value must have at least 1 key'


def test_admin_desk_is_admin_only(tech_client):
    r = tech_client.get('/api/appointments/admin')
    assert r.status_code == 403


# ---------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------
def test_notification_inbox(patient_client, patient_user, admin_client):
    r = admin_client.post('/api/notifications', {
        'userId': patient_user.id, 'audience': 'patient', 'title': 'Report ready', 'message': 'Collect it',
    }, format='json')
    assert r.status_code == 201
    admin_client.post('/api/notifications', {
        'userId': patient_user.id, 'audience': 'patient', 'title': 'Second', 'message': 'Hi',
    }, format='json')

    inbox = patient_client.get('/api/notifications/mine').data['notifications']
    assert [n['title'] for n in inbox] == ['Second', 'Report ready']
    assert not any(n['read'] for n in inbox)

    r = patient_client.patch(f"/api/notifications/mine/{inbox[0]['id']}/read")
    assert r.data['notification']['read'] is True
    patient_client.patch('/api/notifications/mine/read-all')
    assert Notification.objects.filter(user=patient_user, read=False).count() == 0


def test_notification_missing_fields(admin_client):
    r = admin_client.post('/api/notifications', {'audience': 'patient'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Missing required fields'


def test_cannot_read_someone_elses_notification(patient_client, admin_user):
    n = Notification.objects.create(user=admin_user, audience='admin', title='t', message='m')
    r = patient_client.patch(f'/api/notifications/mine/{n.id}/read')
    assert r.status_code == 404
