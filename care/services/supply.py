"""
Pharmacy inventory and supplier orders.

Pharmacists request restocks as supply orders against a medication;
the medication's supplier approves or rejects them and ships the
approved ones.  Stock moves twice: approving reserves the ordered
quantity from the medication's stock, and receiving the delivery (by
either side) books it back in.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from care.models import Medication, Supplier, SupplyOrder, User
from care.services.audit import log_action
from care.services.realtime import notify_change
from care.services.stats import percent

logger = logging.getLogger(__name__)

INVENTORY_HEALTH_LIMIT = 5


def low_stock_threshold() -> int:
    return getattr(settings, 'LOW_STOCK_THRESHOLD', 20)


def medication_dict(m: Medication) -> dict:
    return {
        'id': m.id,
        'name': m.name,
        'description': m.description,
        'stock': m.stock,
        'unit': m.unit,
        'supplierId': m.supplier_id,
        'supplierName': str(m.supplier) if m.supplier_id else None,
        'lowStock': m.stock < low_stock_threshold(),
    }


def supply_order_dict(o: SupplyOrder) -> dict:
    return {
        'id': o.id,
        'medicationId': o.medication_id,
        'medicationName': o.medication.name,
        'medicationStock': o.medication.stock,
        'supplierId': o.supplier_id,
        'quantity': o.quantity,
        'status': o.status,
        'requestedAt': o.requested_at.isoformat(),
        'deliveredAt': o.delivered_at.isoformat() if o.delivered_at else None,
    }


def supplier_for(user: User) -> Supplier:
    supplier = Supplier.objects.filter(user=user).first()
    if supplier is None:
        raise PermissionDenied('Supplier profile not found')
    return supplier


def inventory():
    return Medication.objects.select_related('supplier__user').order_by('name')


def add_medication(*, name: str, stock: int = 0, unit: str = 'units', description: str = '',
                   supplier: Optional[Supplier] = None, by: Optional[User] = None) -> Medication:
    name = (name or '').strip()
    if not name:
        raise ValidationError({'name': 'Medication name is required'})
    if stock is None or stock < 0:
        raise ValidationError({'stock': 'Stock cannot be negative'})
    med = Medication.objects.create(name=name, stock=stock, unit=unit or 'units',
                                    description=description or '', supplier=supplier)
    log_action(user=by, action='medication_add', object_type='medication', object_id=med.pk,
               detail={'name': name, 'stock': stock})
    return med


def request_restock(medication_id, quantity: int, *, by: Optional[User] = None) -> SupplyOrder:
    if not quantity or quantity <= 0:
        raise ValidationError({'quantity': 'Quantity must be greater than zero'})
    med = Medication.objects.filter(pk=medication_id).first()
    if med is None:
        raise NotFound('Medication not found')
    with transaction.atomic():
        order = SupplyOrder.objects.create(medication=med, supplier=med.supplier, pharmacist=by, quantity=quantity)
        log_action(user=by, action='restock_request', object_type='supply_order', object_id=order.pk,
                   detail={'medication': med.pk, 'quantity': quantity})
        notify_change('supply_orders', 'insert', order.pk)
    return order


def _locked_order(order_id, supplier: Optional[Supplier] = None) -> SupplyOrder:
    order = SupplyOrder.objects.select_for_update().select_related('medication').filter(pk=order_id).first()
    if order is None:
        raise NotFound('Order not found')
    if supplier is not None and order.supplier_id != supplier.pk:
        raise PermissionDenied('This order belongs to another supplier')
    return order


def _receive(order: SupplyOrder, by: Optional[User]) -> SupplyOrder:
    med = Medication.objects.select_for_update().get(pk=order.medication_id)
    med.stock += order.quantity
    med.save(update_fields=['stock'])
    order.status = SupplyOrder.STATUS_DELIVERED
    order.delivered_at = timezone.now()
    order.save(update_fields=['status', 'delivered_at'])
    log_action(user=by, action='supply_delivered', object_type='supply_order', object_id=order.pk,
               detail={'quantity': order.quantity, 'stock': med.stock})
    notify_change('supply_orders', 'update', order.pk)
    return order


def mark_received(order_id, *, by: Optional[User] = None) -> SupplyOrder:
    """Pharmacist books an order in as delivered."""
    with transaction.atomic():
        order = _locked_order(order_id)
        if order.status not in (SupplyOrder.STATUS_PENDING, SupplyOrder.STATUS_APPROVED):
            raise ValidationError(f'Order is already {order.status}')
        _receive(order, by)
    return SupplyOrder.objects.select_related('medication').get(pk=order.pk)


def supplier_medications(supplier: Supplier):
    return Medication.objects.filter(supplier=supplier).order_by('name')


def supplier_orders(supplier: Supplier):
    return SupplyOrder.objects.select_related('medication').filter(supplier=supplier).order_by('-requested_at')


def set_order_status(supplier: Supplier, order_id, new_status: str) -> SupplyOrder:
    """Supplier side of the order: approve, reject or deliver."""
    with transaction.atomic():
        order = _locked_order(order_id, supplier)
        if new_status == SupplyOrder.STATUS_APPROVED:
            if order.status != SupplyOrder.STATUS_PENDING:
                raise ValidationError('Only pending orders can be approved')
            med = Medication.objects.select_for_update().get(pk=order.medication_id)
            if med.stock < order.quantity:
                raise ValidationError('Insufficient stock to approve this order')
            med.stock -= order.quantity
            med.save(update_fields=['stock'])
        elif new_status == SupplyOrder.STATUS_REJECTED:
            if order.status != SupplyOrder.STATUS_PENDING:
                raise ValidationError('Only pending orders can be rejected')
        elif new_status == SupplyOrder.STATUS_DELIVERED:
            if order.status != SupplyOrder.STATUS_APPROVED:
                raise ValidationError('Only approved orders can be delivered')
            _receive(order, supplier.user)
            return SupplyOrder.objects.select_related('medication').get(pk=order.pk)
        else:
            raise ValidationError('Invalid status')
        order.status = new_status
        order.save(update_fields=['status'])
        log_action(user=supplier.user, action=f'supply_{new_status}', object_type='supply_order',
                   object_id=order.pk, detail={'quantity': order.quantity})
        notify_change('supply_orders', 'update', order.pk)
    return SupplyOrder.objects.select_related('medication').get(pk=order.pk)


def supplier_analytics(supplier: Supplier) -> dict:
    threshold = low_stock_threshold()
    statuses = list(SupplyOrder.objects.filter(supplier=supplier).values_list('status', flat=True))
    meds = list(Medication.objects.filter(supplier=supplier).values('name', 'stock'))
    status_counts = dict(Counter(statuses))
    total = len(statuses)
    delivery_rate = percent(status_counts.get(SupplyOrder.STATUS_DELIVERED, 0), total)
    health = sorted(
        ({'name': m['name'], 'stock': m['stock'], 'status': 'Critical' if m['stock'] < threshold else 'Healthy'}
         for m in meds),
        key=lambda m: m['stock'],
    )[:INVENTORY_HEALTH_LIMIT]
    return {
        'summary': {
            'totalOrders': total,
            'deliveryRate': delivery_rate,
            'lowStockCount': sum(1 for m in meds if m['stock'] < threshold),
            'activeInventory': len(meds),
        },
        'statusCounts': status_counts,
        'inventoryHealth': health,
    }
