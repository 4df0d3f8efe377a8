from __future__ import annotations

import logging
from typing import Optional

import bleach
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from care.models import Child, Consultation, Doctor, Medication, Prescription, User
from care.services.audit import log_action
from care.services.realtime import notify_change

logger = logging.getLogger(__name__)

VALID_STATUSES = {s for s, _ in Prescription.STATUS_CHOICES}
QUEUE_STATUSES = (Prescription.STATUS_PENDING, Prescription.STATUS_PREPARING)


def prescription_dict(p: Prescription) -> dict:
    return {
        'id': p.id,
        'childId': p.child_id,
        'childName': p.child.full_name if p.child else None,
        'doctorName': p.doctor.user.display_name if p.doctor else None,
        'consultationId': p.consultation_id,
        'medicationId': p.medication_id,
        'medicationName': p.medication_name,
        'dosage': p.dosage,
        'frequency': p.frequency,
        'duration': p.duration,
        'instructions': p.instructions,
        'quantity': p.quantity,
        'refills': p.refills,
        'status': p.status,
        'prescribedAt': p.prescribed_at.isoformat(),
        'dispensedAt': p.dispensed_at.isoformat() if p.dispensed_at else None,
        'pharmacist': p.pharmacist.display_name if p.pharmacist else None,
    }


def _queryset():
    return Prescription.objects.select_related('child', 'doctor__user', 'pharmacist', 'medication')


def create_prescription(doctor: Doctor, *, child: Child, medication: Optional[Medication] = None,
                        medication_name: str = '', dosage: str = '', frequency: str = '',
                        duration: str = '', instructions: str = '', quantity: Optional[int] = None,
                        refills: int = 0, consultation: Optional[Consultation] = None) -> Prescription:
    name = (medication_name or '').strip() or (medication.name if medication else '')
    if not name:
        raise ValidationError({'medicationName': 'A medication or medication name is required'})
    with transaction.atomic():
        p = Prescription.objects.create(
            child=child,
            doctor=doctor,
            consultation=consultation,
            medication=medication,
            medication_name=name,
            dosage=dosage,
            frequency=frequency,
            duration=duration,
            instructions=bleach.clean(instructions or '', strip=True),
            quantity=quantity,
            refills=refills or 0,
        )
        log_action(user=doctor.user, action='prescription_create', object_type='prescription', object_id=p.pk,
                   detail={'child': child.pk, 'medication': name})
        notify_change('prescriptions', 'insert', p.pk)
    return p


def pharmacy_queue():
    return _queryset().filter(status__in=QUEUE_STATUSES).order_by('prescribed_at')


def dispensed_history():
    return _queryset().filter(status=Prescription.STATUS_DISPENSED).order_by('-dispensed_at')


def update_status(prescription_id, new_status: str, *, by: Optional[User] = None) -> Prescription:
    """Move a prescription along; dispensing takes the quantity out of stock."""
    if new_status not in VALID_STATUSES:
        raise ValidationError('Invalid status')
    with transaction.atomic():
        p = Prescription.objects.select_for_update().filter(pk=prescription_id).first()
        if p is None:
            raise NotFound('Prescription not found')
        if p.status in (Prescription.STATUS_DISPENSED, Prescription.STATUS_CANCELLED):
            raise ValidationError(f'Prescription is already {p.status}')
        fields = ['status']
        if new_status == Prescription.STATUS_DISPENSED:
            if p.medication_id and p.quantity:
                med = Medication.objects.select_for_update().get(pk=p.medication_id)
                if med.stock < p.quantity:
                    raise ValidationError(f'Insufficient stock for {med.name}: {med.stock} {med.unit} available')
                med.stock -= p.quantity
                med.save(update_fields=['stock'])
            p.dispensed_at = timezone.now()
            p.pharmacist = by
            fields += ['dispensed_at', 'pharmacist']
        p.status = new_status
        p.save(update_fields=fields)
        if new_status == Prescription.STATUS_DISPENSED:
            log_action(user=by, action='prescription_dispense', object_type='prescription', object_id=p.pk,
                       detail={'quantity': p.quantity, 'medication': p.medication_name})
        notify_change('prescriptions', 'update', p.pk)
    return _queryset().get(pk=p.pk)


def child_prescriptions(child: Child):
    return _queryset().filter(child=child).order_by('-prescribed_at')
