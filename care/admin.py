"""
Django admin registrations for the clinic models.

Available under ``/django-admin/`` for superusers, mainly to inspect
records and fix data by hand.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    Caregiver,
    CheckIn,
    CheckInTransition,
    Child,
    Consultation,
    DailyQueueCounter,
    Doctor,
    LabOrder,
    LabTest,
    Medication,
    Prescription,
    Supplier,
    SupplyOrder,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'full_name', 'role', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'email', 'full_name', 'phone')


@admin.register(Caregiver)
class CaregiverAdmin(admin.ModelAdmin):
    list_display = ('user', 'address')
    search_fields = ('user__full_name', 'user__phone')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialty')
    search_fields = ('user__full_name', 'specialty')


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ('user', 'company_name')


@admin.register(Child)
class ChildAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'dob', 'gender', 'caregiver')
    search_fields = ('full_name',)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'child', 'doctor', 'scheduled_for', 'status', 'check_in_code')
    list_filter = ('status',)
    search_fields = ('check_in_code', 'child__full_name')


class CheckInTransitionInline(admin.TabularInline):
    model = CheckInTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'timestamp', 'reason')


@admin.register(CheckIn)
class CheckInAdmin(admin.ModelAdmin):
    list_display = ('queue_date', 'queue_number', 'child', 'status', 'checked_in_at')
    list_filter = ('status', 'queue_date')
    inlines = [CheckInTransitionInline]


@admin.register(DailyQueueCounter)
class DailyQueueCounterAdmin(admin.ModelAdmin):
    list_display = ('date', 'last_number')


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'child', 'created_at', 'completed_at')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('medication_name', 'child', 'doctor', 'status', 'prescribed_at')
    list_filter = ('status',)


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ('name', 'category')


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = ('test_name', 'child', 'priority', 'status', 'ordered_at')
    list_filter = ('status', 'priority')


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = ('name', 'stock', 'unit', 'supplier')
    search_fields = ('name',)


@admin.register(SupplyOrder)
class SupplyOrderAdmin(admin.ModelAdmin):
    list_display = ('medication', 'quantity', 'status', 'requested_at', 'delivered_at')
    list_filter = ('status',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
