"""
Lab orders from request to result.

Doctors order one or more tests for a child; each test becomes its own
order.  The lab moves an order through sample collection and
processing, and saving the results completes it.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

import bleach
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from care.models import Child, Doctor, LabOrder, LabTest, User
from care.services.audit import log_action
from care.services.realtime import notify_change

logger = logging.getLogger(__name__)

WORKLIST_STATUSES = (LabOrder.STATUS_PENDING, LabOrder.STATUS_COLLECTED, LabOrder.STATUS_IN_PROGRESS)
RESULTS_STATUSES = (LabOrder.STATUS_COLLECTED, LabOrder.STATUS_IN_PROGRESS)
VALID_STATUSES = {s for s, _ in LabOrder.STATUS_CHOICES}
VALID_PRIORITIES = {p for p, _ in LabOrder.PRIORITY_CHOICES}
# status -> field stamped on entry
STATUS_TIMESTAMPS = {
    LabOrder.STATUS_COLLECTED: 'collected_at',
    LabOrder.STATUS_IN_PROGRESS: 'processing_started_at',
    LabOrder.STATUS_COMPLETED: 'completed_at',
}


def _can_transition(current: str, new: str) -> bool:
    transitions = {
        LabOrder.STATUS_PENDING: [LabOrder.STATUS_COLLECTED, LabOrder.STATUS_CANCELLED],
        LabOrder.STATUS_COLLECTED: [LabOrder.STATUS_IN_PROGRESS, LabOrder.STATUS_CANCELLED],
        LabOrder.STATUS_IN_PROGRESS: [LabOrder.STATUS_COMPLETED],
        LabOrder.STATUS_COMPLETED: [],
        LabOrder.STATUS_CANCELLED: [],
    }
    return new in transitions.get(current, [])


def lab_order_dict(o: LabOrder) -> dict:
    def ts(value):
        return value.isoformat() if value else None

    return {
        'id': o.id,
        'childId': o.child_id,
        'childName': o.child.full_name if o.child else None,
        'doctorName': o.doctor.user.display_name if o.doctor else None,
        'testId': o.test_id,
        'testName': o.test_name,
        'priority': o.priority,
        'status': o.status,
        'clinicalNotes': o.clinical_notes,
        'specialInstructions': o.special_instructions,
        'orderedAt': ts(o.ordered_at),
        'collectedAt': ts(o.collected_at),
        'processingStartedAt': ts(o.processing_started_at),
        'completedAt': ts(o.completed_at),
        'results': o.results,
        'resultNotes': o.result_notes,
        'abnormalFindings': o.abnormal_findings,
        'technician': o.technician.display_name if o.technician else None,
    }


def _queryset():
    return LabOrder.objects.select_related('child', 'doctor__user', 'technician', 'test')


def create_orders(doctor: Doctor, *, child: Child, test_ids: Iterable[int], priority: str = 'routine',
                  clinical_notes: str = '', special_instructions: str = '') -> list[LabOrder]:
    test_ids = list(dict.fromkeys(test_ids or []))
    if not test_ids:
        raise ValidationError({'testIds': 'Select at least one test'})
    if priority not in VALID_PRIORITIES:
        raise ValidationError({'priority': 'Invalid priority'})
    tests = {t.pk: t for t in LabTest.objects.filter(pk__in=test_ids)}
    missing = [t for t in test_ids if t not in tests]
    if missing:
        raise ValidationError({'testIds': f'Unknown lab tests: {missing}'})
    orders = []
    with transaction.atomic():
        for test_id in test_ids:
            test = tests[test_id]
            order = LabOrder.objects.create(
                child=child,
                doctor=doctor,
                test=test,
                test_name=test.name,
                priority=priority,
                clinical_notes=bleach.clean(clinical_notes or '', strip=True),
                special_instructions=bleach.clean(special_instructions or '', strip=True),
            )
            notify_change('lab_orders', 'insert', order.pk)
            orders.append(order)
        log_action(user=doctor.user, action='lab_order_create', object_type='child', object_id=child.pk,
                   detail={'orders': [o.pk for o in orders], 'priority': priority})
    return orders


def worklist():
    return _queryset().filter(status__in=WORKLIST_STATUSES).order_by('-ordered_at')


def results_queue():
    return _queryset().filter(status__in=RESULTS_STATUSES).order_by('collected_at')


def completed_orders():
    return _queryset().filter(status=LabOrder.STATUS_COMPLETED).order_by('-completed_at')


def update_status(order_id, new_status: str, *, by: Optional[User] = None) -> LabOrder:
    if new_status not in VALID_STATUSES:
        raise ValidationError('Invalid status')
    with transaction.atomic():
        order = LabOrder.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFound('Lab order not found')
        if not _can_transition(order.status, new_status):
            raise ValidationError(f'Cannot change status from {order.status} to {new_status}')
        order.status = new_status
        fields = ['status']
        stamp = STATUS_TIMESTAMPS.get(new_status)
        if stamp:
            setattr(order, stamp, timezone.now())
            fields.append(stamp)
        if by is not None:
            order.technician = by
            fields.append('technician')
        order.save(update_fields=fields)
        notify_change('lab_orders', 'update', order.pk)
    return _queryset().get(pk=order.pk)


def save_results(order_id, *, results: str, result_notes: str = '', abnormal_findings: str = '',
                 by: Optional[User] = None) -> LabOrder:
    results = bleach.clean((results or '').strip(), strip=True)
    if not results:
        raise ValidationError({'results': 'Results are required'})
    with transaction.atomic():
        order = LabOrder.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFound('Lab order not found')
        if order.status not in RESULTS_STATUSES:
            raise ValidationError(f'Cannot record results for an order that is {order.status}')
        now = timezone.now()
        order.results = results
        order.result_notes = bleach.clean(result_notes or '', strip=True)
        order.abnormal_findings = bleach.clean(abnormal_findings or '', strip=True)
        order.status = LabOrder.STATUS_COMPLETED
        order.completed_at = now
        if order.processing_started_at is None:
            order.processing_started_at = now
        order.technician = by
        order.save()
        log_action(user=by, action='lab_results', object_type='lab_order', object_id=order.pk,
                   detail={'abnormal': bool(order.abnormal_findings)})
        notify_change('lab_orders', 'update', order.pk)
    return _queryset().get(pk=order.pk)


def child_lab_orders(child: Child):
    return _queryset().filter(child=child).order_by('-ordered_at')
