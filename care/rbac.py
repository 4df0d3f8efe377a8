"""
Role tables shared by the permission classes and the login response.

Each portal area of the API is reserved for a set of roles.  The
administrator may reach every area; areas that are not listed here are
open to any authenticated user.
"""
from __future__ import annotations

ADMIN = 'admin'
DOCTOR = 'doctor'
RECEPTIONIST = 'receptionist'
LAB_TECH = 'lab_tech'
PHARMACIST = 'pharmacist'
SUPPLIER = 'supplier'
CAREGIVER = 'caregiver'
STAFF = 'staff'  # legacy

ALL_ROLES = (ADMIN, DOCTOR, RECEPTIONIST, LAB_TECH, PHARMACIST, SUPPLIER, CAREGIVER, STAFF)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    ADMIN: (
        'manage_users',
        'manage_staff',
        'view_all_appointments',
        'manage_admissions',
        'view_reports',
        'manage_settings',
        'view_all_patients',
        'manage_inventory',
    ),
    DOCTOR: (
        'view_appointments',
        'manage_consultations',
        'create_prescriptions',
        'order_lab_tests',
        'view_lab_results',
        'update_patient_records',
        'view_patient_history',
    ),
    RECEPTIONIST: (
        'view_appointments',
        'create_appointments',
        'manage_check_ins',
        'search_patients',
        'view_queue',
        'register_patients',
    ),
    LAB_TECH: (
        'view_lab_orders',
        'collect_samples',
        'process_tests',
        'enter_results',
        'view_test_history',
    ),
    PHARMACIST: (
        'view_prescriptions',
        'dispense_medications',
        'check_inventory',
        'manage_pharmacy_inventory',
        'view_drug_interactions',
    ),
    SUPPLIER: (
        'view_orders',
        'manage_inventory',
        'create_deliveries',
        'view_invoices',
    ),
    CAREGIVER: (
        'book_appointments',
        'view_own_appointments',
        'view_children',
        'view_prescriptions',
        'view_lab_results',
    ),
    STAFF: (
        'view_appointments',
        'manage_admissions',
        'update_patient_records',
    ),
}

ROLE_DASHBOARDS: dict[str, str] = {
    ADMIN: '/admin',
    DOCTOR: '/doctor',
    RECEPTIONIST: '/receptionist',
    LAB_TECH: '/lab',
    PHARMACIST: '/pharmacy',
    SUPPLIER: '/supplier',
    CAREGIVER: '/dashboard',
    STAFF: '/staff-appointments',
}

PROTECTED_AREAS: dict[str, tuple[str, ...]] = {
    'admin': (ADMIN,),
    'doctor': (DOCTOR, ADMIN),
    'receptionist': (RECEPTIONIST, ADMIN),
    'lab': (LAB_TECH, ADMIN),
    'pharmacy': (PHARMACIST, ADMIN),
    'supplier': (SUPPLIER, ADMIN),
    'caregiver': (CAREGIVER,),
    'staff': (STAFF, ADMIN),
}


def has_permission(role: str | None, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role or '', ())


def dashboard_for_role(role: str | None) -> str:
    return ROLE_DASHBOARDS.get(role or '', '/login')


def can_access_area(role: str | None, area: str) -> bool:
    if role == ADMIN:
        return True
    allowed = PROTECTED_AREAS.get(area)
    if allowed is None:
        return True
    return role in allowed
