import bleach
from rest_framework import serializers

from clinic.models import DentalCode
from clinic.serializers.patient import DATE_INPUT_FORMATS

PROCEDURE_STATUSES = ['PENDING', 'PLANNED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED']


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class ProcedureCreateSerializer(serializers.Serializer):
    codeId = serializers.IntegerField()
    date = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS)
    toothNumber = serializers.IntegerField(required=False, allow_null=True, min_value=11, max_value=48)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=PROCEDURE_STATUSES, required=False, default='PENDING')
    quantity = serializers.IntegerField(required=False, min_value=1, default=1)
    cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    practitionerId = serializers.IntegerField(required=False, allow_null=True)
    subSurfaces = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    fillingMaterial = serializers.CharField(required=False, allow_blank=True, max_length=30)
    source = serializers.CharField(required=False, allow_blank=True, max_length=50)

    def validate_notes(self, v):
        return _clean(v)


class ProcedureUpdateSerializer(serializers.Serializer):
    date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=PROCEDURE_STATUSES, required=False)
    quantity = serializers.IntegerField(required=False, min_value=1)
    cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    subSurfaces = serializers.ListField(child=serializers.CharField(), required=False)
    fillingMaterial = serializers.CharField(required=False, max_length=30)

    def validate_notes(self, v):
        return _clean(v)


class DentalDataSerializer(serializers.Serializer):
    dentalChart = serializers.JSONField(required=False, allow_null=True)
    periodontalChart = serializers.JSONField(required=False, allow_null=True)

    def validate(self, attrs):
        for key in ('dentalChart', 'periodontalChart'):
            value = attrs.get(key)
            if value is not None and not isinstance(value, dict):
                raise serializers.ValidationError({key: 'Must be an object'})
        return attrs


class ScalingTreatmentSerializer(serializers.Serializer):
    toothNumber = serializers.IntegerField(min_value=11, max_value=48)
    code = serializers.RegexField(r'^[tT]02[12]$')


class ScalingSerializer(serializers.Serializer):
    treatments = ScalingTreatmentSerializer(many=True, allow_empty=False)
    anesthesiaCount = serializers.IntegerField(required=False, min_value=0, max_value=32, default=0)
    status = serializers.ChoiceField(choices=PROCEDURE_STATUSES, required=False, default='PENDING')


class SealingSerializer(serializers.Serializer):
    toothNumbers = serializers.ListField(
        child=serializers.IntegerField(min_value=11, max_value=48), allow_empty=False, max_length=32,
    )
    status = serializers.ChoiceField(choices=PROCEDURE_STATUSES, required=False, default='PENDING')


class PaymentSerializer(serializers.Serializer):
    procedureIds = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    paymentMethod = serializers.ChoiceField(choices=['CASH', 'CARD'])
    sendEmail = serializers.BooleanField(required=False, default=False)
    printInvoice = serializers.BooleanField(required=False, default=False)


class DentalCodeCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)
    description = serializers.CharField()
    category = serializers.CharField(max_length=100)
    section = serializers.CharField(max_length=100)
    subSection = serializers.CharField(max_length=100)
    patientType = serializers.CharField(max_length=50)
    points = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, allow_null=True)
    rate = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    requirements = serializers.JSONField(required=False)

    def validate_code(self, v):
        v = v.strip()
        if DentalCode.objects.filter(code=v).exists():
            raise serializers.ValidationError('Dental code already exists')
        return v


class PeriodontalAnalyzeSerializer(serializers.Serializer):
    teeth = serializers.DictField(child=serializers.JSONField())
