from typing import Optional
import logging

import bleach
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from care.models import Appointment, CheckIn, CheckInTransition, Consultation, Doctor, User
from care.services.audit import log_action
from care.services.checkins import get_check_in, update_status
from care.services.realtime import notify_change

logger = logging.getLogger(__name__)


def doctor_for(user: User) -> Doctor:
    doctor = Doctor.objects.filter(user=user).first()
    if doctor is None:
        raise PermissionDenied('Doctor profile not found')
    return doctor


def _clean(text: Optional[str]) -> str:
    return bleach.clean((text or '').strip(), strip=True)


def _check_assignment(ci: CheckIn, doctor: Doctor) -> None:
    appt = ci.appointment
    if appt is not None and appt.doctor_id and appt.doctor_id != doctor.pk:
        raise PermissionDenied('This patient is assigned to another doctor')


def start_consultation(check_in_id, doctor: Doctor) -> CheckIn:
    ci = get_check_in(check_in_id)
    _check_assignment(ci, doctor)
    return update_status(ci.pk, CheckIn.STATUS_IN_CONSULTATION, by=doctor.user, reason='consultation started')


def complete_consultation(check_in_id, doctor: Doctor, *, diagnosis: str = '', notes: str = '',
                          symptoms: str = '') -> Consultation:
    """Record the consultation and close the visit in a single transaction."""
    with transaction.atomic():
        ci = CheckIn.objects.select_for_update().select_related('appointment').filter(pk=check_in_id).first()
        if ci is None:
            raise NotFound('Check-in not found')
        _check_assignment(ci, doctor)
        if ci.status not in CheckIn.ACTIVE_STATUSES:
            raise ValidationError(f'Cannot complete a consultation for a check-in that is {ci.status}')
        now = timezone.now()
        appt = ci.appointment
        consultation = Consultation.objects.create(
            appointment=appt,
            check_in=ci,
            doctor=doctor,
            child_id=ci.child_id or (appt.child_id if appt else None),
            diagnosis=_clean(diagnosis),
            symptoms=_clean(symptoms),
            notes=_clean(notes),
            completed_at=now,
        )
        old_status = ci.status
        ci.status = CheckIn.STATUS_COMPLETED
        ci.completed_at = now
        ci.save(update_fields=['status', 'completed_at'])
        CheckInTransition.objects.create(
            check_in=ci, from_status=old_status, to_status=CheckIn.STATUS_COMPLETED,
            operator=doctor.user, reason='consultation completed',
        )
        if appt is not None:
            Appointment.objects.filter(pk=appt.pk).update(status=Appointment.STATUS_COMPLETED)
            notify_change('appointments', 'update', appt.pk)
        log_action(user=doctor.user, action='consultation_complete', object_type='consultation',
                   object_id=consultation.pk, detail={'checkIn': ci.pk})
        notify_change('check_ins', 'update', ci.pk)
    logger.info("doctor %s completed consultation %s", doctor.pk, consultation.pk)
    return consultation


def doctor_consultations(doctor: Doctor):
    """Completed consultations first (latest first), then by creation time."""
    return (
        Consultation.objects.select_related('child', 'appointment')
        .prefetch_related('prescriptions')
        .filter(doctor=doctor)
        .order_by(F('completed_at').desc(nulls_last=True), '-created_at')
    )


def consultation_dict(c: Consultation) -> dict:
    return {
        'id': c.id,
        'appointmentId': str(c.appointment_id) if c.appointment_id else None,
        'checkInId': c.check_in_id,
        'childId': c.child_id,
        'childName': c.child.full_name if c.child else None,
        'diagnosis': c.diagnosis,
        'symptoms': c.symptoms,
        'notes': c.notes,
        'createdAt': c.created_at.isoformat(),
        'completedAt': c.completed_at.isoformat() if c.completed_at else None,
        'prescriptions': [
            {
                'id': p.id,
                'medicationName': p.medication_name,
                'dosage': p.dosage,
                'frequency': p.frequency,
                'duration': p.duration,
                'status': p.status,
            }
            for p in c.prescriptions.all()
        ],
    }
