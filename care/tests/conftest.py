import datetime as dt

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from care.models import Appointment, Child, LabTest, Medication, User
from care.services.accounts import ensure_role_record
from care.services.qr import ensure_check_in_code

PASSWORD = 'Kiwi-Lantern-42'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make(role, email=None, full_name=None, **extra):
        counter['n'] += 1
        email = email or f'{role}{counter["n"]}@gch.test'
        user = User.objects.create_user(
            username=email,
            email=email,
            password=PASSWORD,
            role=role,
            full_name=full_name or f'{role.title()} {counter["n"]}',
            **extra,
        )
        ensure_role_record(user, specialty=extra.get('specialty', 'Paediatrics'))
        return user

    return _make


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture
def caregiver_user(make_user):
    return make_user('caregiver', full_name='Amina Otieno', phone='0712345678')


@pytest.fixture
def doctor_user(make_user):
    return make_user('doctor', full_name='Grace Wanjiru')


@pytest.fixture
def child(caregiver_user):
    return Child.objects.create(
        caregiver=caregiver_user.caregiver,
        full_name='Baraka Otieno',
        dob=timezone.localdate() - dt.timedelta(days=3 * 365 + 30),
        gender='male',
    )


@pytest.fixture
def make_appointment(child, doctor_user):
    def _make(status=Appointment.STATUS_PENDING, when=None, doctor=None, for_child=None):
        target = for_child or child
        appt = Appointment.objects.create(
            child=target,
            caregiver=target.caregiver,
            doctor=doctor if doctor is not None else doctor_user.doctor,
            scheduled_for=when or timezone.now() + dt.timedelta(hours=1),
            status=status,
        )
        ensure_check_in_code(appt)
        return appt

    return _make


@pytest.fixture
def lab_tests(db):
    return [
        LabTest.objects.create(name='Complete Blood Count', category='Hematology'),
        LabTest.objects.create(name='Malaria Smear', category='Parasitology'),
    ]


@pytest.fixture
def medication(db):
    return Medication.objects.create(name='Amoxicillin 250mg', stock=50, unit='tablets')
