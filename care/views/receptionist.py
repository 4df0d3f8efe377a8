"""
Reception desk endpoints.

Receptionists look up today's appointments, find patients by name or
phone, scan QR codes (or type check-in codes) and put patients into the
day's queue.  Queue entries move through ``waiting``,
``in_consultation`` and ``completed``; every move is recorded with the
operator and a reason.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.permissions import IsReceptionistRole
from care.serializers.appointments import AppointmentCreateSerializer, ScanLookupSerializer
from care.serializers.clinical import CheckInCreateSerializer, StatusUpdateSerializer
from care.services import appointments as appt_svc
from care.services import checkins as checkin_svc
from care.services.patients import search_patients
from care.services.qr import resolve_scan


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def todays_appointments(request):
    qs = appt_svc.todays_appointments()
    return Response({'ok': True, 'data': [appt_svc.appointment_dict(a) for a in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def create_appointment(request):
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    appt = appt_svc.create_appointment(
        child=v['childId'],
        caregiver=v['caregiverId'],
        doctor=v.get('doctorId'),
        scheduled_for=v['scheduledFor'],
        status=v['status'],
        notes=v.get('notes', ''),
        by=request.user,
    )
    return Response({'ok': True, 'data': appt_svc.appointment_dict(appt)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def scan_lookup(request):
    """Resolve scanned QR text or a typed ``GCH-XXXXX`` code to its appointment."""
    s = ScanLookupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = resolve_scan(s.validated_data['scan'])
    return Response({'ok': True, 'data': appt_svc.appointment_dict(appt)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def search(request):
    q = request.query_params.get('q') or request.query_params.get('query') or ''
    return Response({'ok': True, 'results': search_patients(q)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def queue(request):
    if request.method == 'GET':
        items, stats = checkin_svc.todays_queue()
        return Response({'ok': True, 'checkIns': [checkin_svc.check_in_dict(c) for c in items], 'stats': stats})

    s = CheckInCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    ci = checkin_svc.check_in(
        appointment_id=v.get('appointmentId') or None,
        child_id=v.get('childId'),
        reason=v.get('reason'),
        vitals=v.get('vitals'),
        notes=v.get('notes', ''),
        by=request.user,
    )
    return Response({
        'ok': True,
        'success': True,
        'checkIn': checkin_svc.check_in_dict(ci),
        'queueNumber': ci.queue_number,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def queue_item(request, check_in_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': checkin_svc.check_in_detail(check_in_id)})

    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    ci = checkin_svc.update_status(
        check_in_id, v['status'], by=request.user, reason=v.get('reason', ''), notes=v.get('notes'),
    )
    return Response({'ok': True, 'success': True, 'checkIn': checkin_svc.check_in_dict(ci)})
