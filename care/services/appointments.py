from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from care.models import Appointment, Caregiver, Child, Doctor, User
from care.services.audit import log_action
from care.services.patients import caregiver_dict, child_dict, own_child
from care.services.qr import ensure_check_in_code
from care.services.realtime import notify_change

logger = logging.getLogger(__name__)

ADMIN_LIST_LIMIT = 100
UPCOMING_LIMIT = 10
EDITABLE_FIELDS = ('child', 'caregiver', 'doctor', 'scheduled_for', 'status', 'notes')


def day_bounds(day=None) -> tuple[datetime, datetime]:
    """Start and end of a local calendar day as aware datetimes."""
    day = day or timezone.localdate()
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    return start, start + timedelta(days=1)


def doctor_dict(doctor: Optional[Doctor]) -> Optional[dict]:
    if doctor is None:
        return None
    return {
        'id': doctor.pk,
        'fullName': doctor.user.display_name,
        'specialty': doctor.specialty,
    }


def appointment_dict(appt: Appointment) -> dict:
    return {
        'id': str(appt.id),
        'scheduledFor': appt.scheduled_for.isoformat() if appt.scheduled_for else None,
        'status': appt.status,
        'notes': appt.notes,
        'checkInCode': appt.check_in_code,
        'createdAt': appt.created_at.isoformat() if appt.created_at else None,
        'child': child_dict(appt.child) if appt.child else None,
        'caregiver': caregiver_dict(appt.caregiver),
        'doctor': doctor_dict(appt.doctor),
    }


def _with_relations(qs):
    return qs.select_related('child', 'caregiver__user', 'doctor__user')


def get_appointment(appointment_id) -> Appointment:
    try:
        appt = _with_relations(Appointment.objects).filter(pk=appointment_id).first()
    except (ValueError, DjangoValidationError):
        appt = None
    if appt is None:
        raise NotFound('Appointment not found')
    return appt


def list_appointments(limit: int = ADMIN_LIST_LIMIT):
    return _with_relations(Appointment.objects).order_by('-scheduled_for')[:limit]


@transaction.atomic
def create_appointment(*, child: Child, caregiver: Optional[Caregiver], scheduled_for: datetime,
                       doctor: Optional[Doctor] = None, status: str = Appointment.STATUS_PENDING,
                       notes: str = '', by: Optional[User] = None) -> Appointment:
    appt = Appointment.objects.create(
        child=child,
        caregiver=caregiver or child.caregiver,
        doctor=doctor,
        scheduled_for=scheduled_for,
        status=status,
        notes=notes,
    )
    ensure_check_in_code(appt)
    log_action(user=by, action='appointment_create', object_type='appointment', object_id=appt.pk,
               detail={'child': child.pk, 'scheduledFor': scheduled_for.isoformat()})
    notify_change('appointments', 'insert', appt.pk)
    return appt


@transaction.atomic
def update_appointment(appt: Appointment, changes: dict, *, by: Optional[User] = None) -> Appointment:
    fields = [f for f in EDITABLE_FIELDS if f in changes]
    for f in fields:
        setattr(appt, f, changes[f])
    if fields:
        appt.save(update_fields=fields)
        log_action(user=by, action='appointment_update', object_type='appointment', object_id=appt.pk,
                   detail={'fields': fields})
        notify_change('appointments', 'update', appt.pk)
    return appt


@transaction.atomic
def delete_appointment(appt: Appointment, *, by: Optional[User] = None) -> None:
    pk = appt.pk
    appt.delete()
    log_action(user=by, action='appointment_delete', object_type='appointment', object_id=pk)
    notify_change('appointments', 'delete', pk)


def caregiver_appointments(caregiver: Caregiver):
    return _with_relations(Appointment.objects).filter(caregiver=caregiver).order_by('-scheduled_for')


def upcoming_appointments(caregiver: Caregiver, now: Optional[datetime] = None):
    now = now or timezone.now()
    return (
        _with_relations(Appointment.objects)
        .filter(caregiver=caregiver, scheduled_for__gte=now, status__in=Appointment.ACTIVE_STATUSES)
        .order_by('scheduled_for')[:UPCOMING_LIMIT]
    )


def completed_count(caregiver: Caregiver) -> int:
    return Appointment.objects.filter(caregiver=caregiver, status=Appointment.STATUS_COMPLETED).count()


def book_appointment(caregiver: Caregiver, *, child_id, scheduled_for: datetime,
                     doctor: Optional[Doctor] = None, notes: str = '') -> Appointment:
    child = own_child(caregiver, child_id)
    if scheduled_for <= timezone.now():
        raise ValidationError({'scheduledFor': 'Appointment must be scheduled in the future'})
    return create_appointment(child=child, caregiver=caregiver, scheduled_for=scheduled_for,
                              doctor=doctor, notes=notes, by=caregiver.user)


def cancel_appointment(caregiver: Caregiver, appointment_id) -> Appointment:
    appt = get_appointment(appointment_id)
    if appt.caregiver_id != caregiver.pk:
        raise PermissionDenied('This appointment does not belong to you')
    if appt.status not in Appointment.ACTIVE_STATUSES:
        raise ValidationError(f'Cannot cancel an appointment that is {appt.status}')
    return update_appointment(appt, {'status': Appointment.STATUS_CANCELLED}, by=caregiver.user)


def todays_appointments(day=None):
    start, end = day_bounds(day)
    return (
        _with_relations(Appointment.objects)
        .filter(scheduled_for__gte=start, scheduled_for__lt=end, status__in=Appointment.ACTIVE_STATUSES)
        .order_by('scheduled_for')
    )


def doctor_schedule(doctor: Doctor, start: Optional[datetime] = None, end: Optional[datetime] = None):
    """Own appointments in ``[start, end)``; defaults to the coming seven days."""
    start = start or timezone.now()
    end = end or start + timedelta(days=7)
    return (
        _with_relations(Appointment.objects)
        .filter(doctor=doctor, scheduled_for__gte=start, scheduled_for__lt=end)
        .order_by('scheduled_for')
    )
