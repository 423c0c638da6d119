"""Serializers for the accounts app.

Includes:
- Account registration
- Customer delivery profile (with phone validation)
- Admin credential payloads
"""

import re

import phonenumbers
from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import CustomerProfile


User = get_user_model()


def normalize_phone_number(phone, field_name='phone_number'):
    """Validate an international phone number and return it in E.164 form."""
    if not phone:
        raise serializers.ValidationError({field_name: "Phone number is required."})

    phone_input = str(phone).strip()
    clean_phone = re.sub(r'(?<!^)\+|[^\d+]', '', phone_input)
    if clean_phone.startswith('00'):
        clean_phone = '+' + clean_phone[2:]
    if not clean_phone.startswith('+'):
        clean_phone = '+' + clean_phone

    try:
        parsed_phone = phonenumbers.parse(clean_phone, None)
        if not phonenumbers.is_valid_number(parsed_phone):
            raise ValueError
    except (phonenumbers.NumberParseException, ValueError):
        raise serializers.ValidationError({
            field_name: f"Phone number {phone_input} is not valid. Include the country code (e.g. +91)."
        })
    return phonenumbers.format_number(parsed_phone, phonenumbers.PhoneNumberFormat.E164)


class RegisterSerializer(serializers.ModelSerializer):
    """Create a new customer account."""

    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ('id', 'username', 'password', 'email')
        read_only_fields = ('id',)

    def validate_username(self, value):
        if not re.match(r'^[a-zA-Z0-9._]+$', value):
            raise serializers.ValidationError("Username may only contain letters, digits, dots and underscores.")
        if len(value) < 4:
            raise serializers.ValidationError("Username must be at least 4 characters.")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data['username'],
            email=validated_data.get('email', ''),
            password=validated_data['password'],
            user_type=User.CUSTOMER,
        )


class CustomerProfileSerializer(serializers.ModelSerializer):
    """Delivery profile shown on orders and kitchen tickets."""

    username = serializers.ReadOnlyField(source='user.username')

    class Meta:
        model = CustomerProfile
        fields = ['username', 'name', 'phone_number', 'pickup_address', 'updated_at']
        read_only_fields = ['updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_pickup_address(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Pickup address is required.")
        return value

    def validate(self, attrs):
        if 'phone_number' in attrs:
            attrs['phone_number'] = normalize_phone_number(attrs['phone_number'])
        return attrs


class AdminCredentialsSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, allow_blank=True)
    password = serializers.CharField(max_length=128, allow_blank=True, write_only=True, trim_whitespace=False)


class UserRoleSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
