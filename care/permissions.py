"""
Role based permission classes for the portal areas.

Every view declares the area it belongs to through one of the classes
below; the role table itself lives in :mod:`care.rbac`.
"""
from rest_framework.permissions import BasePermission

from . import rbac


class AreaPermission(BasePermission):
    """Allow access when the user's role may enter ``area``."""
    area = ''

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        return rbac.can_access_area(getattr(user, "role", None), self.area)


class IsAdminRole(AreaPermission):
    area = 'admin'


class IsDoctorRole(AreaPermission):
    area = 'doctor'


class IsReceptionistRole(AreaPermission):
    area = 'receptionist'


class IsLabRole(AreaPermission):
    area = 'lab'


class IsPharmacyRole(AreaPermission):
    area = 'pharmacy'


class IsSupplierRole(AreaPermission):
    area = 'supplier'


class IsCaregiverRole(AreaPermission):
    """Caregiver portal.  Administrators pass through ``can_access_area``."""
    area = 'caregiver'
