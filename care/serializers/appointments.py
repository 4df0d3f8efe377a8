from django.utils import timezone
from rest_framework import serializers

from care.models import Appointment, Caregiver, Child, Doctor
from .base import AliasedSerializer, clean_text


class ChildSerializer(AliasedSerializer):
    aliases = {'full_name': 'fullName', 'medical_notes': 'medicalNotes', 'date_of_birth': 'dob'}

    fullName = serializers.CharField(max_length=255)
    dob = serializers.DateField(required=False, allow_null=True)
    gender = serializers.CharField(max_length=16, required=False, allow_blank=True)
    medicalNotes = serializers.CharField(required=False, allow_blank=True)

    def validate_fullName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Full name is required')
        return v

    def validate_dob(self, v):
        if v and v > timezone.localdate():
            raise serializers.ValidationError('Date of birth cannot be in the future')
        return v

    def validate_medicalNotes(self, v):
        return clean_text(v)


class BookAppointmentSerializer(AliasedSerializer):
    aliases = {'child_id': 'childId', 'doctor_id': 'doctorId', 'scheduled_for': 'scheduledFor'}

    childId = serializers.IntegerField(min_value=1)
    doctorId = serializers.PrimaryKeyRelatedField(queryset=Doctor.objects.all(), required=False, allow_null=True)
    scheduledFor = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_notes(self, v):
        return clean_text(v)


class AppointmentCreateSerializer(AliasedSerializer):
    """Staff-side appointment creation (admin and reception desk)."""
    aliases = {
        'child_id': 'childId', 'caregiver_id': 'caregiverId', 'doctor_id': 'doctorId',
        'scheduled_for': 'scheduledFor',
    }

    childId = serializers.PrimaryKeyRelatedField(queryset=Child.objects.all())
    caregiverId = serializers.PrimaryKeyRelatedField(queryset=Caregiver.objects.all(), required=False, allow_null=True)
    doctorId = serializers.PrimaryKeyRelatedField(queryset=Doctor.objects.all(), required=False, allow_null=True)
    scheduledFor = serializers.DateTimeField()
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, default=Appointment.STATUS_PENDING)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_notes(self, v):
        return clean_text(v)

    def validate(self, attrs):
        caregiver = attrs.get('caregiverId') or attrs['childId'].caregiver
        if caregiver is None:
            raise serializers.ValidationError({'caregiverId': 'A caregiver is required'})
        attrs['caregiverId'] = caregiver
        return attrs


class AppointmentUpdateSerializer(AliasedSerializer):
    aliases = {
        'child_id': 'childId', 'caregiver_id': 'caregiverId', 'doctor_id': 'doctorId',
        'scheduled_for': 'scheduledFor',
    }

    childId = serializers.PrimaryKeyRelatedField(queryset=Child.objects.all(), required=False)
    caregiverId = serializers.PrimaryKeyRelatedField(queryset=Caregiver.objects.all(), required=False, allow_null=True)
    doctorId = serializers.PrimaryKeyRelatedField(queryset=Doctor.objects.all(), required=False, allow_null=True)
    scheduledFor = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    FIELD_MAP = {
        'childId': 'child',
        'caregiverId': 'caregiver',
        'doctorId': 'doctor',
        'scheduledFor': 'scheduled_for',
        'status': 'status',
        'notes': 'notes',
    }

    def validate_notes(self, v):
        return clean_text(v)

    def model_changes(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class ScanLookupSerializer(AliasedSerializer):
    aliases = {'data': 'scan', 'qrData': 'scan', 'qr_data': 'scan', 'code': 'scan'}

    scan = serializers.CharField(max_length=2048)
