from rest_framework import serializers

from care.models import CheckIn, Child, LabOrder, Medication
from .base import AliasedSerializer, clean_text


class CheckInCreateSerializer(AliasedSerializer):
    aliases = {'appointment_id': 'appointmentId', 'child_id': 'childId'}

    appointmentId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    childId = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    vitals = serializers.DictField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_reason(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_notes(self, v):
        return clean_text(v)


class ConsultationCompleteSerializer(serializers.Serializer):
    diagnosis = serializers.CharField(required=False, allow_blank=True, default='')
    symptoms = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PrescriptionCreateSerializer(AliasedSerializer):
    aliases = {
        'child_id': 'childId', 'medication_id': 'medicationId', 'medication_name': 'medicationName',
        'consultation_id': 'consultationId',
    }

    childId = serializers.PrimaryKeyRelatedField(queryset=Child.objects.all())
    medicationId = serializers.PrimaryKeyRelatedField(queryset=Medication.objects.all(), required=False, allow_null=True)
    medicationName = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    consultationId = serializers.IntegerField(required=False, allow_null=True)
    dosage = serializers.CharField(max_length=128, required=False, allow_blank=True, default='')
    frequency = serializers.CharField(max_length=128, required=False, allow_blank=True, default='')
    duration = serializers.CharField(max_length=128, required=False, allow_blank=True, default='')
    instructions = serializers.CharField(required=False, allow_blank=True, default='')
    quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    refills = serializers.IntegerField(min_value=0, required=False, default=0)

    def validate_medicationName(self, v):
        return clean_text(v)


class LabOrderCreateSerializer(AliasedSerializer):
    aliases = {
        'child_id': 'childId', 'test_ids': 'testIds', 'clinical_notes': 'clinicalNotes',
        'special_instructions': 'specialInstructions',
    }

    childId = serializers.PrimaryKeyRelatedField(queryset=Child.objects.all())
    testIds = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    priority = serializers.ChoiceField(choices=LabOrder.PRIORITY_CHOICES, default='routine')
    clinicalNotes = serializers.CharField(required=False, allow_blank=True, default='')
    specialInstructions = serializers.CharField(required=False, allow_blank=True, default='')


class LabResultsSerializer(AliasedSerializer):
    aliases = {'result_notes': 'resultNotes', 'abnormal_findings': 'abnormalFindings'}

    results = serializers.CharField(allow_blank=True)
    resultNotes = serializers.CharField(required=False, allow_blank=True, default='')
    abnormalFindings = serializers.CharField(required=False, allow_blank=True, default='')
