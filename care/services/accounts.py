from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from care import rbac
from care.models import Caregiver, Doctor, Supplier, User
from care.services.audit import log_action

logger = logging.getLogger(__name__)

REGISTRATION_ROLES = (
    rbac.CAREGIVER, rbac.DOCTOR, rbac.LAB_TECH, rbac.PHARMACIST, rbac.SUPPLIER, rbac.RECEPTIONIST,
)
STAFF_LIST_ROLES = (rbac.DOCTOR, rbac.RECEPTIONIST, rbac.LAB_TECH, rbac.PHARMACIST, rbac.SUPPLIER)
USER_EDITABLE = ('full_name', 'email', 'phone', 'role')


def email_taken(email: str, exclude_pk=None) -> bool:
    qs = User.objects.filter(email__iexact=email) | User.objects.filter(username__iexact=email)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


def ensure_role_record(user: User, *, specialty: str = '', company_name: str = '') -> None:
    """Create the per-role record (caregiver, doctor, supplier) if missing."""
    if user.role == rbac.CAREGIVER:
        Caregiver.objects.get_or_create(user=user)
    elif user.role == rbac.DOCTOR:
        Doctor.objects.get_or_create(user=user, defaults={'specialty': specialty or ''})
    elif user.role == rbac.SUPPLIER:
        Supplier.objects.get_or_create(user=user, defaults={'company_name': company_name or user.full_name})


def create_account(*, email: str, password: str, full_name: str, role: str = rbac.CAREGIVER,
                   phone: str = '', specialty: str = '', company_name: str = '',
                   by: Optional[User] = None) -> User:
    email = (email or '').strip().lower()
    if email_taken(email):
        raise ValidationError({'email': 'An account with this email already exists'})
    try:
        validate_password(password)
    except DjangoValidationError as e:
        raise ValidationError({'password': list(e.messages)})
    with transaction.atomic():
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
            role=role,
            full_name=full_name.strip(),
            phone=phone or '',
            is_staff=role == rbac.ADMIN,
        )
        ensure_role_record(user, specialty=specialty, company_name=company_name)
        log_action(user=by or user, action='account_create', object_type='user', object_id=user.pk,
                   detail={'role': role})
    logger.info("created %s account %s", role, user.pk)
    return user


def user_dict(user: User) -> dict:
    data = {
        'id': user.pk,
        'email': user.email,
        'fullName': user.display_name,
        'phone': user.phone,
        'role': user.role,
        'isActive': user.is_active,
        'dateJoined': user.date_joined.isoformat() if user.date_joined else None,
    }
    doctor = getattr(user, 'doctor', None) if user.role == rbac.DOCTOR else None
    if doctor is not None:
        data['specialty'] = doctor.specialty
    return data


def get_user(user_id) -> User:
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound('User not found')
    return user


def list_staff():
    return User.objects.select_related('doctor').filter(role__in=STAFF_LIST_ROLES).order_by('-date_joined')


def list_users():
    return User.objects.order_by('-date_joined')


@transaction.atomic
def update_user(user: User, changes: dict, *, by: Optional[User] = None) -> User:
    fields = [f for f in USER_EDITABLE if f in changes]
    if 'email' in fields:
        email = changes['email'].strip().lower()
        if email_taken(email, exclude_pk=user.pk):
            raise ValidationError({'email': 'An account with this email already exists'})
        changes = dict(changes, email=email)
        user.username = email
        fields.append('username')
    for f in fields:
        if f != 'username':
            setattr(user, f, changes[f])
    if 'role' in fields:
        user.is_staff = user.role == rbac.ADMIN
        fields.append('is_staff')
    if 'specialty' in changes and user.role == rbac.DOCTOR:
        Doctor.objects.update_or_create(user=user, defaults={'specialty': changes['specialty']})
    if fields:
        user.save(update_fields=fields)
        ensure_role_record(user)
        log_action(user=by, action='user_update', object_type='user', object_id=user.pk,
                   detail={'fields': fields})
    return user


def deactivate_user(user: User, *, by: Optional[User] = None) -> User:
    user.is_active = False
    user.save(update_fields=['is_active'])
    log_action(user=by, action='user_deactivate', object_type='user', object_id=user.pk)
    return user


def delete_user(user: User, *, by: Optional[User] = None) -> None:
    pk = user.pk
    if by is not None and by.pk == pk:
        raise ValidationError('You cannot delete your own account')
    user.delete()
    log_action(user=by, action='user_delete', object_type='user', object_id=pk)
