"""
Administrator endpoints: dashboard statistics, analytics, appointment
management, staff and user accounts.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Caregiver, Child, Doctor
from care.permissions import IsAdminRole
from care.serializers.appointments import AppointmentCreateSerializer, AppointmentUpdateSerializer
from care.serializers.staff import StaffCreateSerializer, UserUpdateSerializer
from care.services import accounts as account_svc
from care.services import appointments as appt_svc
from care.services import stats as stats_svc
from care.services.patients import caregiver_dict, child_dict


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def stats(request):
    return Response(dict(ok=True, **stats_svc.admin_stats()))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def appointment_analytics(request):
    return Response({'ok': True, 'data': stats_svc.appointment_analytics()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def demographics(request):
    return Response({'ok': True, 'data': stats_svc.demographics()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def recent_activity(request):
    return Response({'ok': True, 'data': stats_svc.recent_activity()})


# ---------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def appointments(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': [appt_svc.appointment_dict(a) for a in appt_svc.list_appointments()]})

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


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def appointment_detail(request, appointment_id):
    appt = appt_svc.get_appointment(appointment_id)
    if request.method == 'GET':
        return Response({'ok': True, 'data': appt_svc.appointment_dict(appt)})
    if request.method == 'DELETE':
        appt_svc.delete_appointment(appt, by=request.user)
        return Response({'ok': True})

    s = AppointmentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    appt = appt_svc.update_appointment(appt, s.model_changes(), by=request.user)
    return Response({'ok': True, 'data': appt_svc.appointment_dict(appt)})


# ---------------------------------------------------------------------
# Directory lists for the appointment form
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def caregivers(request):
    qs = Caregiver.objects.select_related('user').order_by('user__full_name')
    return Response({'ok': True, 'data': [caregiver_dict(c) for c in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def children(request):
    qs = Child.objects.select_related('caregiver__user').order_by('full_name')
    caregiver_id = request.query_params.get('caregiverId')
    if caregiver_id:
        try:
            caregiver_id = int(caregiver_id)
        except ValueError:
            raise ValidationError({'caregiverId': 'Expected a numeric caregiver id'})
        qs = qs.filter(caregiver_id=caregiver_id)
    return Response({'ok': True, 'data': [child_dict(c) for c in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctors(request):
    """Doctor directory.  Also used by caregivers when booking."""
    qs = Doctor.objects.select_related('user').filter(user__is_active=True).order_by('user__full_name')
    return Response({'ok': True, 'data': [appt_svc.doctor_dict(d) for d in qs]})


# ---------------------------------------------------------------------
# Staff and users
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def staff(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': [account_svc.user_dict(u) for u in account_svc.list_staff()]})

    s = StaffCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    user = account_svc.create_account(
        email=v['email'],
        password=v['password'],
        full_name=v['fullName'],
        role=v['role'],
        phone=v.get('phone', ''),
        specialty=v.get('specialty', ''),
        company_name=v.get('companyName', ''),
        by=request.user,
    )
    return Response({'ok': True, 'data': account_svc.user_dict(user)}, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def staff_detail(request, user_id: int):
    """Update a staff member; DELETE deactivates the account instead of removing it."""
    user = account_svc.get_user(user_id)
    if request.method == 'DELETE':
        account_svc.deactivate_user(user, by=request.user)
        return Response({'ok': True})
    s = UserUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = account_svc.update_user(user, s.model_changes(), by=request.user)
    return Response({'ok': True, 'data': account_svc.user_dict(user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users(request):
    return Response({'ok': True, 'data': [account_svc.user_dict(u) for u in account_svc.list_users()]})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, user_id: int):
    user = account_svc.get_user(user_id)
    if request.method == 'DELETE':
        account_svc.delete_user(user, by=request.user)
        return Response({'ok': True})
    s = UserUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = account_svc.update_user(user, s.model_changes(), by=request.user)
    return Response({'ok': True, 'data': account_svc.user_dict(user)})
