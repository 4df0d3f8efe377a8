"""
Doctor portal: patient queue, consultations, schedule and orders.
"""
from __future__ import annotations

from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Consultation, LabTest
from care.permissions import IsDoctorRole
from care.serializers.clinical import (
    ConsultationCompleteSerializer,
    LabOrderCreateSerializer,
    PrescriptionCreateSerializer,
)
from care.services import appointments as appt_svc
from care.services import checkins as checkin_svc
from care.services import consultations as consult_svc
from care.services import lab as lab_svc
from care.services import prescriptions as rx_svc


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def queue(request):
    doctor = consult_svc.doctor_for(request.user)
    now = timezone.now()
    items = [checkin_svc.check_in_dict(c, now) for c in checkin_svc.doctor_queue(doctor)]
    return Response({'ok': True, 'data': items})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def start_consultation(request, check_in_id: int):
    doctor = consult_svc.doctor_for(request.user)
    ci = consult_svc.start_consultation(check_in_id, doctor)
    return Response({'ok': True, 'checkIn': checkin_svc.check_in_dict(ci)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def complete_consultation(request, check_in_id: int):
    doctor = consult_svc.doctor_for(request.user)
    s = ConsultationCompleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    consultation = consult_svc.complete_consultation(check_in_id, doctor, **s.validated_data)
    return Response({'ok': True, 'data': consult_svc.consultation_dict(consultation)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def consultations(request):
    doctor = consult_svc.doctor_for(request.user)
    return Response({'ok': True, 'data': [consult_svc.consultation_dict(c) for c in consult_svc.doctor_consultations(doctor)]})


def _date_param(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None
    day = parse_date(raw)
    if day is None:
        raise ValidationError({name: 'Expected a date in YYYY-MM-DD format'})
    return timezone.make_aware(datetime.combine(day, time.min), timezone.get_current_timezone())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def schedule(request):
    """Own appointments between ``from`` and ``to`` (default: next seven days)."""
    doctor = consult_svc.doctor_for(request.user)
    qs = appt_svc.doctor_schedule(doctor, _date_param(request, 'from'), _date_param(request, 'to'))
    return Response({'ok': True, 'data': [appt_svc.appointment_dict(a) for a in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def create_prescription(request):
    doctor = consult_svc.doctor_for(request.user)
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    consultation = None
    if v.get('consultationId'):
        consultation = Consultation.objects.filter(pk=v['consultationId'], doctor=doctor).first()
        if consultation is None:
            raise ValidationError({'consultationId': 'Consultation not found'})
    p = rx_svc.create_prescription(
        doctor,
        child=v['childId'],
        medication=v.get('medicationId'),
        medication_name=v.get('medicationName', ''),
        dosage=v.get('dosage', ''),
        frequency=v.get('frequency', ''),
        duration=v.get('duration', ''),
        instructions=v.get('instructions', ''),
        quantity=v.get('quantity'),
        refills=v.get('refills', 0),
        consultation=consultation,
    )
    return Response({'ok': True, 'data': rx_svc.prescription_dict(p)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def lab_tests(request):
    data = [{'id': t.id, 'name': t.name, 'category': t.category, 'description': t.description}
            for t in LabTest.objects.order_by('category', 'name')]
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def create_lab_orders(request):
    doctor = consult_svc.doctor_for(request.user)
    s = LabOrderCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    orders = lab_svc.create_orders(
        doctor,
        child=v['childId'],
        test_ids=v['testIds'],
        priority=v['priority'],
        clinical_notes=v.get('clinicalNotes', ''),
        special_instructions=v.get('specialInstructions', ''),
    )
    return Response({'ok': True, 'data': [lab_svc.lab_order_dict(o) for o in orders]}, status=status.HTTP_201_CREATED)
