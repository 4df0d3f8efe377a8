from __future__ import annotations

from datetime import date
from typing import Optional

from django.db.models import Q
from rest_framework.exceptions import NotFound, PermissionDenied

from care.models import Caregiver, Child, User

SEARCH_MIN_LENGTH = 2
SEARCH_CHILD_LIMIT = 10
SEARCH_CAREGIVER_LIMIT = 10
SEARCH_RESULT_LIMIT = 15


def age_in_years(dob: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if not dob:
        return None
    today = today or date.today()
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return max(years, 0)


def age_in_months(dob: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    months = (today.year - dob.year) * 12 + (today.month - dob.month)
    if today.day < dob.day:
        months -= 1
    return max(months, 0)


def format_age(dob: Optional[date], today: Optional[date] = None) -> str:
    """``"8 months"`` for infants, ``"3 years old"`` otherwise."""
    if not dob:
        return ''
    years = age_in_years(dob, today)
    if years < 1:
        return f"{age_in_months(dob, today)} months"
    return f"{years} years old"


def child_dict(child: Child, today: Optional[date] = None) -> dict:
    return {
        'id': child.id,
        'fullName': child.full_name,
        'dob': child.dob.isoformat() if child.dob else None,
        'age': format_age(child.dob, today),
        'gender': child.gender,
        'medicalNotes': child.medical_notes,
        'caregiverId': child.caregiver_id,
        'createdAt': child.created_at.isoformat() if child.created_at else None,
    }


def caregiver_dict(caregiver: Optional[Caregiver]) -> Optional[dict]:
    if caregiver is None:
        return None
    user = caregiver.user
    return {
        'id': caregiver.pk,
        'fullName': user.display_name,
        'phone': user.phone,
        'email': user.email,
        'address': caregiver.address,
    }


def caregiver_for(user: User) -> Caregiver:
    caregiver = Caregiver.objects.filter(user=user).first()
    if caregiver is None:
        raise PermissionDenied('Caregiver profile not found')
    return caregiver


def own_child(caregiver: Caregiver, child_id) -> Child:
    child = Child.objects.filter(pk=child_id).first()
    if child is None:
        raise NotFound('Child not found')
    if child.caregiver_id != caregiver.pk:
        raise PermissionDenied('This child is not registered to you')
    return child


def search_patients(query: Optional[str]) -> list[dict]:
    """Receptionist lookup by child name or caregiver name/phone.

    Queries shorter than two characters return nothing.  Matches on the
    child come first, then children of matching caregivers; a child is
    listed once and the result is capped at fifteen entries.
    """
    q = (query or '').strip()
    if len(q) < SEARCH_MIN_LENGTH:
        return []

    children = list(
        Child.objects.select_related('caregiver__user')
        .filter(full_name__icontains=q)
        .order_by('full_name')[:SEARCH_CHILD_LIMIT]
    )
    caregiver_ids = list(
        Caregiver.objects.filter(Q(user__full_name__icontains=q) | Q(user__phone__icontains=q))
        .values_list('pk', flat=True)[:SEARCH_CAREGIVER_LIMIT]
    )
    if caregiver_ids:
        children += list(
            Child.objects.select_related('caregiver__user')
            .filter(caregiver_id__in=caregiver_ids)
            .order_by('full_name')
        )

    seen: set[int] = set()
    results: list[dict] = []
    for child in children:
        if child.id in seen:
            continue
        seen.add(child.id)
        results.append({
            'type': 'child',
            'child': child_dict(child),
            'caregiver': caregiver_dict(child.caregiver),
        })
        if len(results) >= SEARCH_RESULT_LIMIT:
            break
    return results
