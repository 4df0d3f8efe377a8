"""
Caregiver portal: children, appointment booking and visit records.

All endpoints operate on the requesting caregiver's own data only.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Child
from care.permissions import IsCaregiverRole
from care.serializers.appointments import BookAppointmentSerializer, ChildSerializer
from care.services import appointments as appt_svc
from care.services.lab import child_lab_orders, lab_order_dict
from care.services.patients import caregiver_for, child_dict, own_child
from care.services.prescriptions import child_prescriptions, prescription_dict


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def children(request):
    caregiver = caregiver_for(request.user)
    if request.method == 'GET':
        qs = Child.objects.filter(caregiver=caregiver).order_by('-created_at')
        return Response({'ok': True, 'data': [child_dict(c) for c in qs]})

    s = ChildSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    child = Child.objects.create(
        caregiver=caregiver,
        full_name=v['fullName'],
        dob=v.get('dob'),
        gender=v.get('gender', ''),
        medical_notes=v.get('medicalNotes', ''),
    )
    return Response({'ok': True, 'data': child_dict(child)}, status=status.HTTP_201_CREATED)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def child_update(request, child_id: int):
    child = own_child(caregiver_for(request.user), child_id)
    s = ChildSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    mapping = {'fullName': 'full_name', 'dob': 'dob', 'gender': 'gender', 'medicalNotes': 'medical_notes'}
    fields = []
    for key, value in s.validated_data.items():
        setattr(child, mapping[key], value)
        fields.append(mapping[key])
    if fields:
        child.save(update_fields=fields)
    return Response({'ok': True, 'data': child_dict(child)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def child_records(request, child_id: int):
    """Prescriptions and lab results of one of the caregiver's children."""
    child = own_child(caregiver_for(request.user), child_id)
    return Response({
        'ok': True,
        'child': child_dict(child),
        'prescriptions': [prescription_dict(p) for p in child_prescriptions(child)],
        'labOrders': [lab_order_dict(o) for o in child_lab_orders(child)],
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def appointments(request):
    caregiver = caregiver_for(request.user)
    if request.method == 'GET':
        qs = appt_svc.caregiver_appointments(caregiver)
        return Response({'ok': True, 'data': [appt_svc.appointment_dict(a) for a in qs]})

    s = BookAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    appt = appt_svc.book_appointment(
        caregiver,
        child_id=v['childId'],
        scheduled_for=v['scheduledFor'],
        doctor=v.get('doctorId'),
        notes=v.get('notes', ''),
    )
    return Response({'ok': True, 'data': appt_svc.appointment_dict(appt)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def upcoming_appointments(request):
    qs = appt_svc.upcoming_appointments(caregiver_for(request.user))
    return Response({'ok': True, 'data': [appt_svc.appointment_dict(a) for a in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def cancel_appointment(request, appointment_id):
    appt = appt_svc.cancel_appointment(caregiver_for(request.user), appointment_id)
    return Response({'ok': True, 'data': appt_svc.appointment_dict(appt)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCaregiverRole])
def dashboard(request):
    caregiver = caregiver_for(request.user)
    upcoming = list(appt_svc.upcoming_appointments(caregiver))
    return Response({
        'ok': True,
        'childrenCount': Child.objects.filter(caregiver=caregiver).count(),
        'upcomingCount': len(upcoming),
        'completedCount': appt_svc.completed_count(caregiver),
        'nextAppointment': appt_svc.appointment_dict(upcoming[0]) if upcoming else None,
    })
