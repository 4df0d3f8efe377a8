"""
Database models for the GCH Healthcare backend.

These models capture the clinic workflow: accounts and their role
records, children (the patients) and their caregivers, appointments with
their printable check-in codes, the daily check-in queue, consultations,
prescriptions, lab orders and the medication supply chain.  Field names
follow the JSON the portals already consume so that serialisation stays
a flat mapping.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Account with a single portal role.

    The role decides which API areas the user may reach (see
    :mod:`care.rbac`).  ``full_name`` and ``phone`` hold the profile data
    shown across the portals; the username is the login e-mail.
    """
    ROLE_ADMIN = 'admin'
    ROLE_CAREGIVER = 'caregiver'
    ROLE_DOCTOR = 'doctor'
    ROLE_LAB_TECH = 'lab_tech'
    ROLE_PHARMACIST = 'pharmacist'
    ROLE_SUPPLIER = 'supplier'
    ROLE_RECEPTIONIST = 'receptionist'
    ROLE_STAFF = 'staff'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_CAREGIVER, 'Caregiver'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_LAB_TECH, 'Lab Technician'),
        (ROLE_PHARMACIST, 'Pharmacist'),
        (ROLE_SUPPLIER, 'Supplier'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
        (ROLE_STAFF, 'Staff'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CAREGIVER, db_index=True)
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Caregiver(models.Model):
    """Parent or guardian who books appointments for children."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='caregiver')
    address = models.TextField(blank=True)

    def __str__(self) -> str:
        return f"Caregiver {self.user.display_name}"


class Doctor(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='doctor')
    specialty = models.CharField(max_length=255, blank=True)
    bio = models.TextField(blank=True)
    photo_url = models.URLField(max_length=512, blank=True)

    def __str__(self) -> str:
        return f"Dr {self.user.display_name}"


class Supplier(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='supplier')
    company_name = models.CharField(max_length=255, blank=True)
    contact_info = models.TextField(blank=True)

    def __str__(self) -> str:
        return self.company_name or self.user.display_name


class Child(models.Model):
    """A patient.  Every clinical record hangs off a child."""
    caregiver = models.ForeignKey(
        Caregiver, null=True, blank=True, on_delete=models.CASCADE, related_name='children'
    )
    full_name = models.CharField(max_length=255, db_index=True)
    dob = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    medical_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.full_name


class Appointment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    caregiver = models.ForeignKey(
        Caregiver, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    scheduled_for = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    # Short code printed next to the QR image, e.g. GCH-7KQ2M
    check_in_code = models.CharField(max_length=9, unique=True, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'scheduled_for'], name='care_appoin_status_5d5d0e_idx'),
        ]

    def __str__(self) -> str:
        return f"Appointment {self.id} ({self.status})"


class DailyQueueCounter(models.Model):
    """Last queue number handed out on a given local day."""
    date = models.DateField(primary_key=True)
    last_number = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.date:%F}: {self.last_number}"


class CheckIn(models.Model):
    STATUS_WAITING = 'waiting'
    STATUS_IN_CONSULTATION = 'in_consultation'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_WAITING, 'Waiting'),
        (STATUS_IN_CONSULTATION, 'In consultation'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    ACTIVE_STATUSES = (STATUS_WAITING, STATUS_IN_CONSULTATION)
    DEFAULT_REASON = 'General checkup'

    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='check_ins'
    )
    child = models.ForeignKey(Child, null=True, blank=True, on_delete=models.SET_NULL, related_name='check_ins')
    checked_in_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='check_ins_recorded'
    )
    queue_date = models.DateField(db_index=True)
    queue_number = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_WAITING, db_index=True)
    reason = models.CharField(max_length=255, default=DEFAULT_REASON)
    vitals = models.JSONField(null=True, blank=True)
    notes = models.TextField(blank=True)
    checked_in_at = models.DateTimeField(default=timezone.now, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['queue_date', 'queue_number'], name='uniq_checkin_queue_number'),
        ]

    def __str__(self) -> str:
        return f"#{self.queue_number} on {self.queue_date:%F} ({self.status})"


class CheckInTransition(models.Model):
    """Records a status transition for a check-in."""
    check_in = models.ForeignKey(CheckIn, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='check_in_transitions'
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.check_in_id}: {self.from_status} → {self.to_status}"


class Consultation(models.Model):
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='consultations'
    )
    check_in = models.ForeignKey(
        CheckIn, null=True, blank=True, on_delete=models.SET_NULL, related_name='consultations'
    )
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='consultations')
    child = models.ForeignKey(Child, null=True, blank=True, on_delete=models.SET_NULL, related_name='consultations')
    symptoms = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [models.Index(fields=['doctor', 'completed_at'], name='care_consul_doctor__3f8a1c_idx')]

    def __str__(self) -> str:
        return f"consult d={self.doctor_id} c={self.child_id}"


class Medication(models.Model):
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    unit = models.CharField(max_length=32, default='units')
    stock = models.PositiveIntegerField(default=0)
    supplier = models.ForeignKey(
        Supplier, null=True, blank=True, on_delete=models.SET_NULL, related_name='medications'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.stock})"


class Prescription(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_PREPARING = 'preparing'
    STATUS_READY = 'ready'
    STATUS_DISPENSED = 'dispensed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PREPARING, 'Preparing'),
        (STATUS_READY, 'Ready'),
        (STATUS_DISPENSED, 'Dispensed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    child = models.ForeignKey(Child, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions')
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions')
    consultation = models.ForeignKey(
        Consultation, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    medication = models.ForeignKey(
        Medication, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    medication_name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=128, blank=True)
    frequency = models.CharField(max_length=128, blank=True)
    duration = models.CharField(max_length=128, blank=True)
    instructions = models.TextField(blank=True)
    quantity = models.PositiveIntegerField(null=True, blank=True)
    refills = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    prescribed_at = models.DateTimeField(default=timezone.now)
    dispensed_at = models.DateTimeField(null=True, blank=True)
    pharmacist = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions_dispensed'
    )

    def __str__(self) -> str:
        return f"{self.medication_name} for {self.child_id} ({self.status})"


class LabTest(models.Model):
    name = models.CharField(max_length=255, unique=True)
    category = models.CharField(max_length=128, blank=True)
    description = models.TextField(blank=True)

    def __str__(self) -> str:
        return self.name


class LabOrder(models.Model):
    PRIORITY_CHOICES = [
        ('routine', 'Routine'),
        ('urgent', 'Urgent'),
        ('stat', 'STAT'),
    ]
    STATUS_PENDING = 'pending'
    STATUS_COLLECTED = 'collected'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COLLECTED, 'Collected'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    child = models.ForeignKey(Child, null=True, blank=True, on_delete=models.SET_NULL, related_name='lab_orders')
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='lab_orders')
    test = models.ForeignKey(LabTest, null=True, blank=True, on_delete=models.SET_NULL, related_name='orders')
    test_name = models.CharField(max_length=255)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='routine', db_index=True)
    clinical_notes = models.TextField(blank=True)
    special_instructions = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    ordered_at = models.DateTimeField(default=timezone.now)
    collected_at = models.DateTimeField(null=True, blank=True)
    processing_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    results = models.TextField(blank=True)
    result_notes = models.TextField(blank=True)
    abnormal_findings = models.TextField(blank=True)
    technician = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='lab_orders_processed'
    )

    def __str__(self) -> str:
        return f"{self.test_name} for {self.child_id} ({self.status})"


class SupplyOrder(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_DELIVERED = 'delivered'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    medication = models.ForeignKey(Medication, on_delete=models.CASCADE, related_name='supply_orders')
    supplier = models.ForeignKey(Supplier, null=True, blank=True, on_delete=models.SET_NULL, related_name='orders')
    pharmacist = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='supply_orders_requested'
    )
    quantity = models.PositiveIntegerField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    requested_at = models.DateTimeField(default=timezone.now)
    delivered_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.quantity} x {self.medication_id} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='care_audite_action_8b2e4d_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='care_audite_object__c71a9e_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
