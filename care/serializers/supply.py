import bleach
from rest_framework import serializers

from care.models import SupplyOrder
from .base import AliasedSerializer


class MedicationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    stock = serializers.IntegerField(min_value=0, default=0)
    unit = serializers.CharField(max_length=32, required=False, allow_blank=True, default='units')
    description = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Medication name is required')
        return v


class RestockSerializer(AliasedSerializer):
    aliases = {'medication_id': 'medicationId'}

    medicationId = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class SupplyOrderStatusSerializer(AliasedSerializer):
    aliases = {'order_id': 'orderId'}

    orderId = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[
        SupplyOrder.STATUS_APPROVED, SupplyOrder.STATUS_REJECTED, SupplyOrder.STATUS_DELIVERED,
    ])
