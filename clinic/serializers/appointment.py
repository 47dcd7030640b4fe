from datetime import timedelta

import bleach
from rest_framework import serializers

from clinic.models import Appointment, _all_weekdays
from clinic.serializers.patient import DATE_INPUT_FORMATS

STATUSES = [c[0] for c in Appointment.STATUS_CHOICES]
APPOINTMENT_TYPES = [c[0] for c in Appointment.APPOINTMENT_TYPE_CHOICES]
HEX_COLOR = r'^#[0-9a-fA-F]{3}([0-9a-fA-F]{3})?$'


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class TreatmentTypeField(serializers.Field):
    """Accepts a plain type name or a ``{"name": ...}`` object."""

    def to_internal_value(self, data):
        if isinstance(data, dict):
            data = data.get('name') or ''
        if not isinstance(data, str):
            raise serializers.ValidationError('Invalid appointment type')
        return data.strip()[:100]

    def to_representation(self, value):
        return value


class AppointmentSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(required=False, allow_null=True)
    practitionerId = serializers.IntegerField()
    startTime = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS)
    endTime = serializers.DateTimeField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    duration = serializers.IntegerField(required=False, allow_null=True, min_value=5, max_value=24 * 60)
    type = TreatmentTypeField(required=False, default='')
    status = serializers.ChoiceField(choices=STATUSES, required=False, default='SCHEDULED')
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    appointmentType = serializers.ChoiceField(choices=APPOINTMENT_TYPES, required=False, default='REGULAR')
    isReservation = serializers.BooleanField(required=False, default=False)
    isFamilyAppointment = serializers.BooleanField(required=False, default=False)
    reservationColor = serializers.CharField(required=False, allow_blank=True, max_length=20, default='')

    def validate_notes(self, v):
        return _clean(v)

    def validate(self, attrs):
        start, end, duration = attrs['startTime'], attrs.get('endTime'), attrs.get('duration')
        if end is None:
            duration = duration or 15
            end = start + timedelta(minutes=duration)
        elif end <= start:
            raise serializers.ValidationError({'endTime': 'End time must be after start time'})
        elif not duration:
            duration = int((end - start).total_seconds() // 60)
        attrs['endTime'], attrs['duration'] = end, duration
        if not attrs.get('patientId') and not attrs.get('isReservation'):
            raise serializers.ValidationError({'patientId': 'Patient is required for a regular appointment'})
        return attrs


class FamilyAppointmentRequestSerializer(serializers.Serializer):
    selectedPatientCodes = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    startTime = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS)
    duration = serializers.IntegerField(min_value=5, max_value=24 * 60)
    practitionerId = serializers.IntegerField()
    type = TreatmentTypeField(required=False, default='')
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')

    def validate_notes(self, v):
        return _clean(v)


class ReservationRequestSerializer(serializers.Serializer):
    startTime = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS)
    duration = serializers.IntegerField(min_value=5, max_value=24 * 60)
    practitionerId = serializers.IntegerField()
    patientId = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    reservationColor = serializers.CharField(required=False, allow_blank=True, max_length=20, default='')

    def validate_notes(self, v):
        return _clean(v)


class AppointmentUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    startTime = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    endTime = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    duration = serializers.IntegerField(required=False, min_value=5, max_value=24 * 60)
    practitionerId = serializers.IntegerField(required=False)
    patientId = serializers.IntegerField(required=False, allow_null=True)
    type = TreatmentTypeField(required=False)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reservationColor = serializers.CharField(required=False, allow_blank=True, max_length=20)

    def validate_notes(self, v):
        return _clean(v)


class StatusMetadataSerializer(serializers.Serializer):
    type = serializers.CharField()
    minutesLate = serializers.IntegerField(required=False, allow_null=True)
    importantNote = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AppointmentStatusSerializer(serializers.Serializer):
    status = StatusMetadataSerializer()
    mergeWithNotes = serializers.BooleanField(required=False, default=False)
    importantNote = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_importantNote(self, v):
        return _clean(v)


class ClearStatusSerializer(serializers.Serializer):
    clearNotes = serializers.BooleanField(required=False, default=False)


class AppointmentListQuerySerializer(serializers.Serializer):
    startDate = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS + ['%Y-%m-%d'])
    endDate = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS + ['%Y-%m-%d'])
    practitionerId = serializers.IntegerField(required=False)


class CalendarQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    view = serializers.ChoiceField(choices=['day', 'week', 'month'], required=False, default='day')
    practitionerIds = serializers.CharField(required=False, allow_blank=True)
    includeReservations = serializers.BooleanField(required=False, default=True)
    includeCancelled = serializers.BooleanField(required=False, default=False)

    def validate_practitionerIds(self, v):
        try:
            return [int(x) for x in v.split(',') if x.strip()]
        except ValueError:
            raise serializers.ValidationError('practitionerIds must be a comma separated list of ids')


class SlotQuerySerializer(serializers.Serializer):
    start = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS)
    duration = serializers.IntegerField(min_value=5, max_value=24 * 60)


class SendConfirmationSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()


class CalendarSettingsSerializer(serializers.Serializer):
    color = serializers.RegexField(HEX_COLOR, required=False)
    visibleDays = serializers.ListField(
        child=serializers.ChoiceField(choices=_all_weekdays()), required=False, allow_empty=False,
    )
