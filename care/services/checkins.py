"""
Check-in desk and the daily patient queue.

A check-in puts a child in today's queue with the next free queue
number.  Numbers restart at 1 every local day and are handed out under
a row lock on the day's :class:`~care.models.DailyQueueCounter`, so two
receptionists checking patients in at the same moment still get
distinct numbers.  Every status change is written to the check-in's
transition history.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from django.db import transaction
from django.db.models import Max, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from care.exceptions import Conflict
from care.models import Appointment, CheckIn, CheckInTransition, Child, DailyQueueCounter, Doctor, User
from care.services.appointments import appointment_dict, doctor_dict, get_appointment
from care.services.audit import log_action
from care.services.patients import caregiver_dict, child_dict
from care.services.realtime import notify_change

logger = logging.getLogger(__name__)

VALID_STATUSES = {s for s, _ in CheckIn.STATUS_CHOICES}


def _can_transition(current: str, new: str) -> bool:
    """Return True if a check-in may move from ``current`` to ``new``."""
    transitions = {
        CheckIn.STATUS_WAITING: [CheckIn.STATUS_IN_CONSULTATION, CheckIn.STATUS_CANCELLED],
        CheckIn.STATUS_IN_CONSULTATION: [CheckIn.STATUS_COMPLETED, CheckIn.STATUS_CANCELLED, CheckIn.STATUS_WAITING],
        CheckIn.STATUS_COMPLETED: [],
        CheckIn.STATUS_CANCELLED: [],
    }
    return new in transitions.get(current, [])


def wait_time_label(checked_in_at: datetime, now: Optional[datetime] = None) -> str:
    now = now or timezone.now()
    minutes = max(int((now - checked_in_at).total_seconds() // 60), 0)
    if minutes < 1:
        return 'Just now'
    if minutes == 1:
        return '1 min'
    if minutes < 60:
        return f'{minutes} mins'
    return f'{minutes // 60}h {minutes % 60}m'


def next_queue_number(day: date) -> int:
    """Reserve the next queue number for ``day``.  Call inside a transaction."""
    counter, _ = DailyQueueCounter.objects.select_for_update().get_or_create(date=day)
    highest = CheckIn.objects.filter(queue_date=day).aggregate(m=Max('queue_number'))['m'] or 0
    counter.last_number = max(counter.last_number, highest) + 1
    counter.save(update_fields=['last_number'])
    return counter.last_number


def check_in_dict(ci: CheckIn, now: Optional[datetime] = None) -> dict:
    appt = ci.appointment
    child = ci.child or (appt.child if appt else None)
    caregiver = child.caregiver if child else (appt.caregiver if appt else None)
    return {
        'id': ci.id,
        'queueNumber': ci.queue_number,
        'queueDate': ci.queue_date.isoformat(),
        'status': ci.status,
        'reason': ci.reason,
        'vitals': ci.vitals,
        'notes': ci.notes,
        'checkedInAt': ci.checked_in_at.isoformat(),
        'completedAt': ci.completed_at.isoformat() if ci.completed_at else None,
        'waitTime': wait_time_label(ci.checked_in_at, now),
        'appointmentId': str(appt.id) if appt else None,
        'scheduledFor': appt.scheduled_for.isoformat() if appt else None,
        'child': child_dict(child) if child else None,
        'caregiver': caregiver_dict(caregiver),
        'doctor': doctor_dict(appt.doctor) if appt else None,
    }


def _queryset():
    return CheckIn.objects.select_related(
        'appointment__child__caregiver__user',
        'appointment__caregiver__user',
        'appointment__doctor__user',
        'child__caregiver__user',
    )


def get_check_in(check_in_id) -> CheckIn:
    ci = _queryset().filter(pk=check_in_id).first()
    if ci is None:
        raise NotFound('Check-in not found')
    return ci


def check_in(*, appointment_id=None, child_id=None, reason: Optional[str] = None,
             vitals: Optional[dict] = None, notes: str = '', by: Optional[User] = None) -> CheckIn:
    """Add a patient to today's queue and return the new check-in."""
    if not appointment_id and not child_id:
        raise ValidationError('Either appointment_id or child_id is required')

    appt: Optional[Appointment] = None
    child: Optional[Child] = None
    if appointment_id:
        appt = get_appointment(appointment_id)
        if appt.status in (Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED):
            raise ValidationError(f'Appointment is {appt.status} and cannot be checked in')
    if child_id:
        child = Child.objects.filter(pk=child_id).first()
        if child is None:
            raise NotFound('Child not found')
        if appt is not None and appt.child_id != child.pk:
            raise ValidationError('Child does not match the appointment')
    if child is None and appt is not None:
        child = appt.child

    today = timezone.localdate()
    with transaction.atomic():
        if appt is not None:
            # serialise check-ins of the same appointment
            Appointment.objects.select_for_update().filter(pk=appt.pk).first()
            duplicate = CheckIn.objects.filter(
                appointment=appt, queue_date=today, status__in=CheckIn.ACTIVE_STATUSES
            ).exists()
            if duplicate:
                raise Conflict('This appointment is already checked in today')
        number = next_queue_number(today)
        ci = CheckIn.objects.create(
            appointment=appt,
            child=child,
            checked_in_by=by,
            queue_date=today,
            queue_number=number,
            status=CheckIn.STATUS_WAITING,
            reason=(reason or '').strip() or CheckIn.DEFAULT_REASON,
            vitals=vitals or None,
            notes=notes or '',
        )
        CheckInTransition.objects.create(
            check_in=ci, from_status=None, to_status=CheckIn.STATUS_WAITING, operator=by, reason='checked in'
        )
        if appt is not None and appt.status != Appointment.STATUS_CONFIRMED:
            appt.status = Appointment.STATUS_CONFIRMED
            appt.save(update_fields=['status'])
            notify_change('appointments', 'update', appt.pk)
        log_action(user=by, action='check_in', object_type='check_in', object_id=ci.pk,
                   detail={'queueNumber': number, 'appointment': str(appt.pk) if appt else None})
        notify_change('check_ins', 'insert', ci.pk)
    logger.info("checked in child %s as #%s on %s", getattr(child, 'pk', None), number, today)
    return get_check_in(ci.pk)


def update_status(check_in_id, new_status: str, *, by: Optional[User] = None,
                  reason: str = '', notes: Optional[str] = None) -> CheckIn:
    if new_status not in VALID_STATUSES:
        raise ValidationError('Invalid status')
    with transaction.atomic():
        ci = CheckIn.objects.select_for_update().filter(pk=check_in_id).first()
        if ci is None:
            raise NotFound('Check-in not found')
        old_status = ci.status
        if not _can_transition(old_status, new_status):
            raise ValidationError(f'Cannot change status from {old_status} to {new_status}')
        ci.status = new_status
        fields = ['status']
        if new_status == CheckIn.STATUS_COMPLETED:
            ci.completed_at = timezone.now()
            fields.append('completed_at')
        if notes:
            ci.notes = notes
            fields.append('notes')
        ci.save(update_fields=fields)
        CheckInTransition.objects.create(
            check_in=ci, from_status=old_status, to_status=new_status, operator=by, reason=reason or 'status update'
        )
        if ci.appointment_id:
            appt_status = {
                CheckIn.STATUS_IN_CONSULTATION: Appointment.STATUS_CONFIRMED,
                CheckIn.STATUS_COMPLETED: Appointment.STATUS_COMPLETED,
            }.get(new_status)
            if appt_status:
                Appointment.objects.filter(pk=ci.appointment_id).update(status=appt_status)
                notify_change('appointments', 'update', ci.appointment_id)
        notify_change('check_ins', 'update', ci.pk)
    return get_check_in(ci.pk)


def todays_queue(day: Optional[date] = None) -> tuple[list[CheckIn], dict]:
    day = day or timezone.localdate()
    items = list(_queryset().filter(queue_date=day).order_by('queue_number'))
    stats = {
        'total': len(items),
        'waiting': sum(1 for c in items if c.status == CheckIn.STATUS_WAITING),
        'inConsultation': sum(1 for c in items if c.status == CheckIn.STATUS_IN_CONSULTATION),
        'completed': sum(1 for c in items if c.status == CheckIn.STATUS_COMPLETED),
    }
    return items, stats


def doctor_queue(doctor: Doctor, day: Optional[date] = None):
    """Today's open check-ins for ``doctor``: own appointments and walk-ins."""
    day = day or timezone.localdate()
    return (
        _queryset()
        .filter(queue_date=day, status__in=CheckIn.ACTIVE_STATUSES)
        .filter(Q(appointment__doctor=doctor) | Q(appointment__doctor__isnull=True))
        .order_by('queue_number')
    )


def check_in_detail(check_in_id) -> dict:
    ci = get_check_in(check_in_id)
    data = check_in_dict(ci)
    data['appointment'] = appointment_dict(ci.appointment) if ci.appointment else None
    data['transitionHistory'] = [
        {
            'from': t.from_status,
            'to': t.to_status,
            'operator': t.operator.display_name if t.operator else '',
            'timestamp': t.timestamp.isoformat(),
            'reason': t.reason,
        }
        for t in ci.transitions.select_related('operator').order_by('timestamp', 'id')
    ]
    return data
