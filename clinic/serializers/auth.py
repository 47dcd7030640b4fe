from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from clinic.models import User


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField()

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class OrganizationInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=50)
    address = serializers.CharField(required=False, allow_blank=True, max_length=255)
    website = serializers.CharField(required=False, allow_blank=True, max_length=255)


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=8)
    email = serializers.EmailField(required=False, allow_blank=True)
    firstName = serializers.CharField(required=False, allow_blank=True, max_length=150)
    lastName = serializers.CharField(required=False, allow_blank=True, max_length=150)
    role = serializers.ChoiceField(choices=[r for r, _ in User.ROLE_CHOICES], default='practitioner')
    organizationId = serializers.IntegerField(required=False, allow_null=True)
    organization = OrganizationInputSerializer(required=False)

    def validate_username(self, v):
        v = v.strip()
        if User.objects.filter(username=v).exists():
            raise serializers.ValidationError('Username already taken')
        return v

    def validate(self, attrs):
        try:
            validate_password(attrs['password'])
        except DjangoValidationError as e:
            raise serializers.ValidationError({'password': e.messages})
        if attrs.get('role') == 'owner':
            if not attrs.get('organization'):
                raise serializers.ValidationError({'organization': 'Owners must register an organization'})
        elif not attrs.get('organizationId'):
            raise serializers.ValidationError({'organizationId': 'organizationId is required'})
        return attrs
