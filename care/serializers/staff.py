import bleach
from rest_framework import serializers

from care import rbac
from .base import AliasedSerializer

STAFF_CREATE_ROLES = (rbac.ADMIN, rbac.DOCTOR, rbac.RECEPTIONIST, rbac.LAB_TECH, rbac.PHARMACIST, rbac.SUPPLIER)


class StaffCreateSerializer(AliasedSerializer):
    aliases = {'full_name': 'fullName', 'specialization': 'specialty', 'company_name': 'companyName'}

    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, trim_whitespace=False, write_only=True)
    fullName = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=STAFF_CREATE_ROLES)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    specialty = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    companyName = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')

    def validate_fullName(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Full name is required')
        return v


class UserUpdateSerializer(AliasedSerializer):
    aliases = {'full_name': 'fullName', 'specialization': 'specialty'}

    fullName = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(required=False)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=rbac.ALL_ROLES, required=False)
    specialty = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_fullName(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def model_changes(self) -> dict:
        data = dict(self.validated_data)
        if 'fullName' in data:
            data['full_name'] = data.pop('fullName')
        return data
