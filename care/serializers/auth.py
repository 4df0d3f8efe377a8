import bleach
from rest_framework import serializers

from care.services.accounts import REGISTRATION_ROLES
from .base import AliasedSerializer


class LoginSerializer(AliasedSerializer):
    aliases = {'email': 'username', 'account': 'username', 'pwd': 'password'}

    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Email is required')
        return v


class RegisterSerializer(AliasedSerializer):
    aliases = {'full_name': 'fullName'}

    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, trim_whitespace=False, write_only=True)
    fullName = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=REGISTRATION_ROLES, default='caregiver')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')

    def validate_fullName(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Full name is required')
        return v
