import bleach
from rest_framework import serializers

DATE_INPUT_FORMATS = ['iso-8601', '%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ', '%Y-%m-%dT%H:%M:%S']


class AddressSerializer(serializers.Serializer):
    display_name = serializers.CharField()
    lat = serializers.CharField(required=False, allow_blank=True)
    lon = serializers.CharField(required=False, allow_blank=True)


class HealthInsuranceSerializer(serializers.Serializer):
    provider = serializers.CharField()
    policyNumber = serializers.CharField()
    coverageDetails = serializers.CharField(required=False, allow_blank=True)
    validUntil = serializers.CharField()


class PatientCreateSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100)
    dateOfBirth = serializers.DateField(input_formats=DATE_INPUT_FORMATS)
    gender = serializers.ChoiceField(choices=['MALE', 'FEMALE', 'OTHER'])
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=50)
    address = AddressSerializer()
    bsn = serializers.CharField(max_length=20)
    country = serializers.CharField(required=False, default='Netherlands', max_length=100)
    healthInsurance = HealthInsuranceSerializer(required=False, allow_null=True)
    medicalHistory = serializers.JSONField(required=False, allow_null=True)
    dentalHistory = serializers.JSONField(required=False, allow_null=True)
    isLongTermCareAct = serializers.BooleanField(required=False, default=False)
    allowEarlySpotContact = serializers.BooleanField(required=False, default=False)
    familyHeadCode = serializers.CharField(required=False, allow_blank=True, max_length=32)
    familyPosition = serializers.IntegerField(required=False, allow_null=True, min_value=0)

    def validate_firstName(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_lastName(self, v):
        return bleach.clean(v.strip(), strip=True)


class PatientUpdateSerializer(serializers.Serializer):
    firstName = serializers.CharField(required=False, max_length=100)
    lastName = serializers.CharField(required=False, max_length=100)
    dateOfBirth = serializers.DateField(required=False, input_formats=DATE_INPUT_FORMATS)
    gender = serializers.ChoiceField(required=False, choices=['MALE', 'FEMALE', 'OTHER'])
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=50)
    address = AddressSerializer(required=False)
    bsn = serializers.CharField(required=False, max_length=20)
    country = serializers.CharField(required=False, max_length=100)
    healthInsurance = HealthInsuranceSerializer(required=False, allow_null=True)
    medicalHistory = serializers.JSONField(required=False, allow_null=True)
    dentalHistory = serializers.JSONField(required=False, allow_null=True)
    statusPraesens = serializers.JSONField(required=False, allow_null=True)
    isLongTermCareAct = serializers.BooleanField(required=False)
    allowEarlySpotContact = serializers.BooleanField(required=False)
    familyHeadCode = serializers.CharField(required=False, allow_blank=True, max_length=32)
    familyPosition = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    includeDisabled = serializers.BooleanField(required=False, default=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)


class PatientStatusSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['DISABLE', 'ENABLE'])
    reason = serializers.CharField(required=False, allow_blank=True)

    def validate_reason(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class FamilyCreateSerializer(serializers.Serializer):
    patientCodes = serializers.ListField(child=serializers.CharField(max_length=32), min_length=2)


class FamilyMemberSerializer(serializers.Serializer):
    patientCode = serializers.CharField(max_length=32)
