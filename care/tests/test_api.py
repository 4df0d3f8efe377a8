"""
Integration tests for the reception desk and doctor workflow.

These tests exercise the check-in queue end to end: queue numbering,
duplicate protection, status transitions with their history, and the
hand-over to the doctor's consultation.  The tests use Django REST
Framework's APIClient within the APITestCase base class.
"""
import datetime as dt

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from care.models import (
    Appointment,
    AuditEvent,
    CheckIn,
    CheckInTransition,
    Child,
    Consultation,
    DailyQueueCounter,
    User,
)
from care.services.accounts import ensure_role_record
from care.services.appointments import day_bounds
from care.services.checkins import next_queue_number, wait_time_label
from care.services.qr import ensure_check_in_code


class CheckInWorkflowTests(APITestCase):
    def setUp(self) -> None:
        """Set up a receptionist, two doctors, a family and today's appointments."""
        self.receptionist = self.make_user('desk@gch.test', 'receptionist', 'Mary Desk')
        self.doctor_user = self.make_user('dr.grace@gch.test', 'doctor', 'Grace Wanjiru')
        self.other_doctor_user = self.make_user('dr.otieno@gch.test', 'doctor', 'Peter Otieno')
        self.caregiver_user = self.make_user('amina@gch.test', 'caregiver', 'Amina Otieno')
        self.caregiver_user.phone = '0712345678'
        self.caregiver_user.save(update_fields=['phone'])

        caregiver = self.caregiver_user.caregiver
        self.child1 = Child.objects.create(caregiver=caregiver, full_name='Baraka Otieno', dob=dt.date(2021, 3, 1))
        self.child2 = Child.objects.create(caregiver=caregiver, full_name='Zawadi Otieno', dob=dt.date(2023, 6, 15))

        soon = day_bounds()[0] + dt.timedelta(hours=12)
        self.appt1 = self.make_appointment(self.child1, self.doctor_user, soon)
        self.appt2 = self.make_appointment(self.child2, self.doctor_user, soon + dt.timedelta(minutes=15))

    def make_user(self, email: str, role: str, full_name: str) -> User:
        user = User.objects.create_user(
            username=email, email=email, password='Kiwi-Lantern-42', role=role, full_name=full_name,
        )
        ensure_role_record(user)
        return user

    def make_appointment(self, child: Child, doctor_user: User, when) -> Appointment:
        appt = Appointment.objects.create(
            child=child, caregiver=child.caregiver, doctor=doctor_user.doctor, scheduled_for=when,
        )
        ensure_check_in_code(appt)
        return appt

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def check_in(self, client: APIClient, **body):
        return client.post(reverse('receptionist_queue'), body, format='json')

    def test_queue_numbers_are_sequential(self):
        client = self.authenticate(self.receptionist)
        r1 = self.check_in(client, appointmentId=str(self.appt1.pk))
        r2 = self.check_in(client, appointmentId=str(self.appt2.pk), reason='Fever', vitals={'temp': 38.5})
        self.assertEqual(r1.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r2.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r1.data['queueNumber'], 1)
        self.assertEqual(r2.data['queueNumber'], 2)
        self.assertEqual(r1.data['checkIn']['reason'], 'General checkup')
        self.assertEqual(r2.data['checkIn']['vitals'], {'temp': 38.5})
        self.assertEqual(r2.data['checkIn']['child']['fullName'], 'Zawadi Otieno')
        self.assertEqual(r2.data['checkIn']['doctor']['fullName'], 'Grace Wanjiru')

    def test_check_in_confirms_appointment_and_records_history(self):
        client = self.authenticate(self.receptionist)
        r = self.check_in(client, appointmentId=str(self.appt1.pk))
        self.appt1.refresh_from_db()
        self.assertEqual(self.appt1.status, Appointment.STATUS_CONFIRMED)
        transitions = CheckInTransition.objects.filter(check_in_id=r.data['checkIn']['id'])
        self.assertEqual(transitions.count(), 1)
        self.assertIsNone(transitions.first().from_status)
        self.assertEqual(transitions.first().to_status, CheckIn.STATUS_WAITING)
        self.assertTrue(AuditEvent.objects.filter(action='check_in').exists())

    def test_duplicate_check_in_conflicts(self):
        client = self.authenticate(self.receptionist)
        self.check_in(client, appointmentId=str(self.appt1.pk))
        r = self.check_in(client, appointmentId=str(self.appt1.pk))
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data['error']['code'], 'conflict')
        self.assertEqual(CheckIn.objects.filter(appointment=self.appt1).count(), 1)

    def test_cancelled_checkin_allows_new_one(self):
        client = self.authenticate(self.receptionist)
        first = self.check_in(client, appointmentId=str(self.appt1.pk)).data['checkIn']
        client.patch(reverse('receptionist_queue_item', args=[first['id']]), {'status': 'cancelled'}, format='json')
        r = self.check_in(client, appointmentId=str(self.appt1.pk))
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data['queueNumber'], 2)

    def test_closed_appointments_cannot_check_in(self):
        client = self.authenticate(self.receptionist)
        for closed in (Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED):
            Appointment.objects.filter(pk=self.appt1.pk).update(status=closed)
            r = self.check_in(client, appointmentId=str(self.appt1.pk))
            self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(CheckIn.objects.exists())

    def test_check_in_requires_a_target(self):
        client = self.authenticate(self.receptionist)
        r = self.check_in(client, reason='Walk in')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        r = self.check_in(client, appointmentId='not-a-uuid')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        r = self.check_in(client, childId=99999)
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_check_in_child_must_match_appointment(self):
        client = self.authenticate(self.receptionist)
        r = self.check_in(client, appointmentId=str(self.appt1.pk), childId=self.child2.pk)
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(CheckIn.objects.exists())
        r = self.check_in(client, appointmentId=str(self.appt1.pk), childId=self.child1.pk)
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)

    def test_walk_in_by_child(self):
        client = self.authenticate(self.receptionist)
        r = self.check_in(client, childId=self.child2.pk, reason='Cough')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(r.data['checkIn']['appointmentId'])
        self.assertEqual(r.data['checkIn']['caregiver']['fullName'], 'Amina Otieno')

    def test_status_transitions(self):
        client = self.authenticate(self.receptionist)
        ci = self.check_in(client, appointmentId=str(self.appt1.pk)).data['checkIn']
        url = reverse('receptionist_queue_item', args=[ci['id']])

        r = client.patch(url, {'status': 'completed'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        r = client.patch(url, {'status': 'sleeping'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        r = client.patch(url, {'status': 'in_consultation', 'reason': 'called in'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        r = client.patch(url, {'status': 'completed', 'notes': 'All good'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['checkIn']['status'], 'completed')
        self.assertIsNotNone(r.data['checkIn']['completedAt'])
        self.assertEqual(r.data['checkIn']['notes'], 'All good')
        self.appt1.refresh_from_db()
        self.assertEqual(self.appt1.status, Appointment.STATUS_COMPLETED)

        r = client.patch(url, {'status': 'waiting'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        detail = client.get(url).data['data']
        history = [(t['from'], t['to']) for t in detail['transitionHistory']]
        self.assertEqual(history, [
            (None, 'waiting'), ('waiting', 'in_consultation'), ('in_consultation', 'completed'),
        ])
        self.assertEqual(detail['transitionHistory'][1]['operator'], 'Mary Desk')
        self.assertEqual(detail['appointment']['id'], str(self.appt1.pk))

    def test_queue_listing_and_stats(self):
        client = self.authenticate(self.receptionist)
        first = self.check_in(client, appointmentId=str(self.appt1.pk)).data['checkIn']
        self.check_in(client, appointmentId=str(self.appt2.pk))
        client.patch(reverse('receptionist_queue_item', args=[first['id']]), {'status': 'in_consultation'},
                     format='json')
        r = client.get(reverse('receptionist_queue'))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([c['queueNumber'] for c in r.data['checkIns']], [1, 2])
        self.assertEqual(r.data['stats'], {'total': 2, 'waiting': 1, 'inConsultation': 1, 'completed': 0})

    def test_todays_appointments_and_search(self):
        client = self.authenticate(self.receptionist)
        Appointment.objects.filter(pk=self.appt2.pk).update(status=Appointment.STATUS_CANCELLED)
        r = client.get(reverse('receptionist_appointments'))
        self.assertEqual([a['id'] for a in r.data['data']], [str(self.appt1.pk)])

        r = client.get(reverse('receptionist_search'), {'q': 'zawadi'})
        self.assertEqual([x['child']['fullName'] for x in r.data['results']], ['Zawadi Otieno'])
        r = client.get(reverse('receptionist_search'), {'q': '0712'})
        self.assertEqual(len(r.data['results']), 2)
        r = client.get(reverse('receptionist_search'), {'q': 'z'})
        self.assertEqual(r.data['results'], [])

    def test_receptionist_creates_appointment_with_code(self):
        client = self.authenticate(self.receptionist)
        when = timezone.now() + dt.timedelta(days=1)
        r = client.post(reverse('receptionist_create_appointment'), {
            'childId': self.child1.pk,
            'doctorId': self.doctor_user.pk,
            'scheduledFor': when.isoformat(),
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertRegex(r.data['data']['checkInCode'], r'^GCH-[A-HJ-NP-Z2-9]{5}$')
        self.assertEqual(r.data['data']['caregiver']['id'], self.caregiver_user.pk)

    def test_doctor_consultation_flow(self):
        desk = self.authenticate(self.receptionist)
        ci = self.check_in(desk, appointmentId=str(self.appt1.pk)).data['checkIn']
        doctor = self.authenticate(self.doctor_user)

        r = doctor.get(reverse('doctor_queue'))
        self.assertEqual([c['id'] for c in r.data['data']], [ci['id']])

        r = doctor.post(reverse('doctor_start_consultation', args=[ci['id']]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['checkIn']['status'], 'in_consultation')

        r = doctor.post(reverse('doctor_complete_consultation', args=[ci['id']]), {
            'diagnosis': 'Common cold <script>alert(1)</script>',
            'symptoms': 'Runny nose',
            'notes': 'Fluids and rest',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('<script>', r.data['data']['diagnosis'])
        self.assertEqual(r.data['data']['childId'], self.child1.pk)

        check_in = CheckIn.objects.get(pk=ci['id'])
        self.assertEqual(check_in.status, CheckIn.STATUS_COMPLETED)
        self.assertIsNotNone(check_in.completed_at)
        self.appt1.refresh_from_db()
        self.assertEqual(self.appt1.status, Appointment.STATUS_COMPLETED)
        self.assertEqual(Consultation.objects.filter(doctor=self.doctor_user.doctor).count(), 1)

        r = doctor.post(reverse('doctor_complete_consultation', args=[ci['id']]), {}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        r = doctor.get(reverse('doctor_consultations'))
        self.assertEqual(len(r.data['data']), 1)
        self.assertEqual(doctor.get(reverse('doctor_queue')).data['data'], [])

    def test_doctor_cannot_take_another_doctors_patient(self):
        desk = self.authenticate(self.receptionist)
        ci = self.check_in(desk, appointmentId=str(self.appt1.pk)).data['checkIn']
        other = self.authenticate(self.other_doctor_user)
        self.assertEqual(other.get(reverse('doctor_queue')).data['data'], [])
        r = other.post(reverse('doctor_start_consultation', args=[ci['id']]))
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        r = other.post(reverse('doctor_complete_consultation', args=[ci['id']]), {}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_walk_ins_are_visible_to_every_doctor(self):
        desk = self.authenticate(self.receptionist)
        ci = self.check_in(desk, childId=self.child1.pk).data['checkIn']
        other = self.authenticate(self.other_doctor_user)
        self.assertEqual([c['id'] for c in other.get(reverse('doctor_queue')).data['data']], [ci['id']])

    def test_complete_missing_check_in(self):
        doctor = self.authenticate(self.doctor_user)
        r = doctor.post(reverse('doctor_complete_consultation', args=[424242]), {}, format='json')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)


class QueueNumberTests(APITestCase):
    def test_numbers_restart_each_day(self):
        today = timezone.localdate()
        self.assertEqual(next_queue_number(today), 1)
        self.assertEqual(next_queue_number(today), 2)
        self.assertEqual(next_queue_number(today + dt.timedelta(days=1)), 1)

    def test_counter_never_reuses_existing_numbers(self):
        today = timezone.localdate()
        CheckIn.objects.create(queue_date=today, queue_number=7)
        self.assertEqual(next_queue_number(today), 8)
        self.assertEqual(DailyQueueCounter.objects.get(date=today).last_number, 8)

    def test_wait_time_label(self):
        now = timezone.now()
        self.assertEqual(wait_time_label(now, now), 'Just now')
        self.assertEqual(wait_time_label(now - dt.timedelta(minutes=1), now), '1 min')
        self.assertEqual(wait_time_label(now - dt.timedelta(minutes=25), now), '25 mins')
        self.assertEqual(wait_time_label(now - dt.timedelta(minutes=95), now), '1h 35m')
