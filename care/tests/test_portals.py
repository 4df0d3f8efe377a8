import datetime as dt

import pytest
from django.urls import reverse
from django.utils import timezone

from care import rbac
from care.models import Appointment, AuditEvent, Child, User
from care.services import stats
from care.services.patients import format_age

pytestmark = pytest.mark.django_db


def future(days=2):
    return (timezone.now() + dt.timedelta(days=days)).isoformat()


# ---------------------------------------------------------------------
# Caregiver portal
# ---------------------------------------------------------------------
def test_caregiver_adds_and_edits_children(client_for, caregiver_user):
    client = client_for(caregiver_user)
    r = client.post(reverse('caregiver_children'), {
        'full_name': 'Imani <b>Otieno</b>', 'dob': '2022-01-10', 'gender': 'female',
    }, format='json')
    assert r.status_code == 201
    child_id = r.data['data']['id']
    assert r.data['data']['fullName'] == 'Imani Otieno'

    r = client.patch(reverse('caregiver_child_update', args=[child_id]), {'medicalNotes': 'Peanut allergy'},
                     format='json')
    assert r.status_code == 200
    assert Child.objects.get(pk=child_id).medical_notes == 'Peanut allergy'

    r = client.post(reverse('caregiver_children'), {'fullName': 'Future Kid', 'dob': '2999-01-01'}, format='json')
    assert r.status_code == 400


def test_caregiver_books_and_cancels(client_for, caregiver_user, child, doctor_user):
    client = client_for(caregiver_user)
    r = client.post(reverse('caregiver_appointments'), {
        'childId': child.pk, 'doctorId': doctor_user.pk, 'scheduledFor': future(), 'notes': 'Vaccination',
    }, format='json')
    assert r.status_code == 201
    appt = r.data['data']
    assert appt['status'] == 'pending'
    assert appt['checkInCode'].startswith('GCH-')
    assert appt['doctor']['fullName'] == 'Grace Wanjiru'

    dash = client.get(reverse('caregiver_dashboard')).data
    assert dash['childrenCount'] == 1
    assert dash['upcomingCount'] == 1
    assert dash['nextAppointment']['id'] == appt['id']

    r = client.post(reverse('caregiver_cancel_appointment', args=[appt['id']]))
    assert r.status_code == 200
    assert r.data['data']['status'] == 'cancelled'
    assert client.get(reverse('caregiver_upcoming')).data['data'] == []

    r = client.post(reverse('caregiver_cancel_appointment', args=[appt['id']]))
    assert r.status_code == 400


def test_caregiver_cannot_book_in_the_past(client_for, caregiver_user, child):
    r = client_for(caregiver_user).post(reverse('caregiver_appointments'), {
        'childId': child.pk, 'scheduledFor': (timezone.now() - dt.timedelta(hours=1)).isoformat(),
    }, format='json')
    assert r.status_code == 400
    assert 'scheduledFor' in r.data['error']['message']


def test_caregiver_cannot_touch_other_families(make_user, client_for, child, make_appointment):
    stranger = make_user('caregiver')
    client = client_for(stranger)
    r = client.post(reverse('caregiver_appointments'), {'childId': child.pk, 'scheduledFor': future()},
                    format='json')
    assert r.status_code == 403
    assert client.get(reverse('caregiver_child_records', args=[child.pk])).status_code == 403
    appt = make_appointment()
    assert client.post(reverse('caregiver_cancel_appointment', args=[str(appt.pk)])).status_code == 403
    assert client.get(reverse('caregiver_appointments')).data['data'] == []


def test_doctor_directory_is_shared(client_for, caregiver_user, doctor_user, make_user):
    make_user('doctor', is_active=False)
    r = client_for(caregiver_user).get(reverse('doctors'))
    assert r.status_code == 200
    assert [d['id'] for d in r.data['data']] == [doctor_user.pk]


def test_doctor_schedule_window(client_for, doctor_user, make_appointment):
    inside = make_appointment(when=timezone.now() + dt.timedelta(days=3))
    make_appointment(when=timezone.now() + dt.timedelta(days=10))
    client = client_for(doctor_user)
    r = client.get(reverse('doctor_schedule'))
    assert [a['id'] for a in r.data['data']] == [str(inside.pk)]
    assert client.get(reverse('doctor_schedule'), {'from': 'yesterday'}).status_code == 400


# ---------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------
@pytest.fixture
def admin_user(make_user):
    return make_user('admin', full_name='Site Admin')


def test_admin_stats(client_for, admin_user, make_appointment):
    make_appointment(status=Appointment.STATUS_COMPLETED, when=timezone.now() - dt.timedelta(days=1))
    make_appointment(when=timezone.now() - dt.timedelta(days=2))
    make_appointment(when=timezone.now() - dt.timedelta(days=9))
    r = client_for(admin_user).get(reverse('admin_stats'))
    assert r.status_code == 200
    assert r.data['totalAppointments'] == 3
    assert r.data['totalChildren'] == 1
    assert r.data['totalDoctors'] == 1
    assert r.data['appointmentGrowth'] == '+100%'
    assert r.data['completionRate'] == '50%'


def test_percent_rounds_half_up():
    assert stats.percent(1, 8) == 13
    assert stats.percent(1, 3) == 33
    assert stats.percent(2, 3) == 67
    assert stats.percent(5, 0) == 0
    assert stats.percent(-1, 2) == -50


def test_analytics_cover_last_seven_days(client_for, admin_user, make_appointment):
    make_appointment(when=timezone.now())
    data = client_for(admin_user).get(reverse('admin_appointment_analytics')).data['data']
    assert len(data) == 7
    assert data[-1]['day'] == timezone.localdate().strftime('%a')
    assert sum(d['total'] for d in data) == 1


def test_demographics_buckets(caregiver_user):
    today = dt.date(2024, 6, 1)
    for dob in (dt.date(2023, 1, 1), dt.date(2019, 6, 2), dt.date(2010, 1, 1), None):
        Child.objects.create(caregiver=caregiver_user.caregiver, full_name='Kid', dob=dob)
    data = {row['name']: row['value'] for row in stats.demographics(today)}
    assert data == {'0-2 years': 1, '3-5 years': 1, '6-10 years': 0, '11-15 years': 1, '16-18 years': 0}


@pytest.mark.parametrize('dob,expected', [
    (dt.date(2024, 1, 15), '4 months'),
    (dt.date(2021, 6, 1), '3 years old'),
    (dt.date(2021, 6, 2), '2 years old'),
    (None, ''),
])
def test_format_age(dob, expected):
    assert format_age(dob, dt.date(2024, 6, 1)) == expected


def test_recent_activity(client_for, admin_user, make_appointment):
    for _ in range(7):
        make_appointment()
    data = client_for(admin_user).get(reverse('admin_recent_activity')).data['data']
    assert len(data) == 5
    assert data[0]['childName'] == 'Baraka Otieno'


def test_admin_manages_appointments(client_for, admin_user, child, doctor_user):
    client = client_for(admin_user)
    r = client.post(reverse('admin_appointments'), {
        'childId': child.pk, 'doctorId': doctor_user.pk, 'scheduledFor': future(), 'status': 'confirmed',
    }, format='json')
    assert r.status_code == 201
    appt_id = r.data['data']['id']
    url = reverse('admin_appointment_detail', args=[appt_id])

    r = client.patch(url, {'status': 'completed', 'notes': 'Seen early'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'completed'
    assert AuditEvent.objects.filter(action='appointment_update', object_id=appt_id).exists()

    assert client.delete(url).status_code == 200
    assert client.get(url).status_code == 404
    assert client.get(reverse('admin_appointment_detail', args=['junk'])).status_code == 404


def test_admin_staff_accounts(client_for, admin_user):
    client = client_for(admin_user)
    r = client.post(reverse('admin_staff'), {
        'email': 'Dr.New@GCH.test', 'password': 'Kiwi-Lantern-42', 'fullName': 'New Doctor',
        'role': 'doctor', 'specialty': 'Neonatology',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['specialty'] == 'Neonatology'
    staff_id = r.data['data']['id']
    assert User.objects.get(pk=staff_id).username == 'dr.new@gch.test'

    r = client.post(reverse('admin_staff'), {
        'email': 'x@gch.test', 'password': 'Kiwi-Lantern-42', 'fullName': 'X', 'role': 'caregiver',
    }, format='json')
    assert r.status_code == 400

    r = client.patch(reverse('admin_staff_detail', args=[staff_id]), {'fullName': 'Dr Renamed', 'phone': '0700'},
                     format='json')
    assert r.status_code == 200
    assert r.data['data']['fullName'] == 'Dr Renamed'

    assert [u['id'] for u in client.get(reverse('admin_staff')).data['data']] == [staff_id]

    assert client.delete(reverse('admin_staff_detail', args=[staff_id])).status_code == 200
    assert User.objects.get(pk=staff_id).is_active is False


def test_admin_user_role_change_creates_role_record(client_for, admin_user, make_user):
    user = make_user('receptionist')
    r = client_for(admin_user).patch(reverse('admin_user_detail', args=[user.pk]), {'role': 'supplier'},
                                     format='json')
    assert r.status_code == 200
    user.refresh_from_db()
    assert user.role == 'supplier'
    assert hasattr(user, 'supplier')


def test_admin_user_email_must_stay_unique(client_for, admin_user, make_user):
    make_user('doctor', email='taken@gch.test')
    user = make_user('doctor')
    r = client_for(admin_user).patch(reverse('admin_user_detail', args=[user.pk]), {'email': 'taken@gch.test'},
                                     format='json')
    assert r.status_code == 400


def test_admin_cannot_delete_self(client_for, admin_user, make_user):
    client = client_for(admin_user)
    assert client.delete(reverse('admin_user_detail', args=[admin_user.pk])).status_code == 400
    victim = make_user('lab_tech')
    assert client.delete(reverse('admin_user_detail', args=[victim.pk])).status_code == 200
    assert not User.objects.filter(pk=victim.pk).exists()


def test_admin_directory_lists(client_for, admin_user, caregiver_user, child):
    client = client_for(admin_user)
    caregivers = client.get(reverse('admin_caregivers')).data['data']
    assert [c['id'] for c in caregivers] == [caregiver_user.pk]
    r = client.get(reverse('admin_children'), {'caregiverId': caregiver_user.pk})
    assert [c['id'] for c in r.data['data']] == [child.pk]
    assert len(client.get(reverse('admin_users')).data['data']) == 2


# ---------------------------------------------------------------------
# Role table
# ---------------------------------------------------------------------
@pytest.mark.parametrize('role,area,allowed', [
    ('admin', 'pharmacy', True),
    ('admin', 'caregiver', True),
    ('doctor', 'doctor', True),
    ('doctor', 'lab', False),
    ('caregiver', 'caregiver', True),
    ('caregiver', 'admin', False),
    (None, 'doctor', False),
    ('caregiver', 'profile', True),
])
def test_can_access_area(role, area, allowed):
    assert rbac.can_access_area(role, area) is allowed


def test_role_tables():
    assert rbac.has_permission('receptionist', 'manage_check_ins')
    assert not rbac.has_permission('caregiver', 'manage_check_ins')
    assert not rbac.has_permission(None, 'view_reports')
    assert rbac.dashboard_for_role('lab_tech') == '/lab'
    assert rbac.dashboard_for_role('caregiver') == '/dashboard'
    assert rbac.dashboard_for_role('unknown') == '/login'


def test_admin_children_rejects_non_numeric_caregiver(client_for, admin_user):
    r = client_for(admin_user).get(reverse('admin_children'), {'caregiverId': 'abc'})
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid'
