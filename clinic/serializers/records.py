import bleach
from rest_framework import serializers

from clinic.serializers.patient import DATE_INPUT_FORMATS


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class AsaRecordSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=1, max_value=6)
    notes = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)

    def validate_notes(self, v):
        return _clean(v)


class PpsRecordSerializer(serializers.Serializer):
    quadrant1 = serializers.IntegerField(min_value=0, max_value=3)
    quadrant2 = serializers.IntegerField(min_value=0, max_value=3)
    quadrant3 = serializers.IntegerField(min_value=0, max_value=3)
    quadrant4 = serializers.IntegerField(min_value=0, max_value=3)
    treatment = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)

    def validate_notes(self, v):
        return _clean(v)


class RecallRecordSerializer(serializers.Serializer):
    screeningMonths = serializers.IntegerField(min_value=1, max_value=60)
    notes = serializers.CharField(required=False, allow_blank=True)
    useCustomText = serializers.BooleanField(required=False, default=False)
    customText = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)

    def validate_notes(self, v):
        return _clean(v)

    def validate_customText(self, v):
        return _clean(v)


class CleaningRecallSerializer(serializers.Serializer):
    procedures = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    intervalMonths = serializers.IntegerField(min_value=1, max_value=60)
    notes = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)

    def validate_notes(self, v):
        return _clean(v)


class CarePlanSerializer(serializers.Serializer):
    careRequest = serializers.CharField(required=False, allow_blank=True)
    careGoal = serializers.CharField(required=False, allow_blank=True)
    policy = serializers.CharField(required=False, allow_blank=True)
    riskProfile = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        return {k: _clean(v) for k, v in attrs.items()}


class CheckupSerializer(serializers.Serializer):
    """Periodic check-up (C002) form."""
    codeId = serializers.IntegerField(required=False)
    hasComplaints = serializers.BooleanField(required=False, default=False)
    complaints = serializers.CharField(required=False, allow_blank=True)
    healthChanges = serializers.BooleanField(required=False, default=False)
    healthChangesDetails = serializers.CharField(required=False, allow_blank=True)
    asaScore = serializers.IntegerField(required=False, min_value=1, max_value=6)
    asaNotes = serializers.CharField(required=False, allow_blank=True)
    cariesFindings = serializers.CharField(required=False, allow_blank=True)
    hygieneLevel = serializers.ChoiceField(choices=['GOOD', 'MODERATE', 'POOR'], required=False, default='GOOD')
    parafunctioning = serializers.BooleanField(required=False, default=False)
    parafunctioningDetails = serializers.CharField(required=False, allow_blank=True)
    mucosalAbnormalities = serializers.BooleanField(required=False, default=False)
    mucosalAbnormalitiesDetails = serializers.CharField(required=False, allow_blank=True)
    teethWear = serializers.BooleanField(required=False, default=False)
    teethWearDetails = serializers.CharField(required=False, allow_blank=True)
    otherFindings = serializers.CharField(required=False, allow_blank=True)
    recallTerm = serializers.IntegerField(required=False, min_value=1, max_value=60)
    additionalAppointments = serializers.CharField(required=False, allow_blank=True)
    carePlanNotes = serializers.CharField(required=False, allow_blank=True)
    otherNotes = serializers.CharField(required=False, allow_blank=True)
    cost = serializers.DecimalField(required=False, max_digits=10, decimal_places=2, min_value=0)
    sessions = serializers.IntegerField(required=False, min_value=1, default=1)

    def validate(self, attrs):
        return {k: _clean(v) if isinstance(v, str) else v for k, v in attrs.items()}
