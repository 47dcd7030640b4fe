"""
Appointment views.

``POST /api/appointments`` accepts four shapes: a list (batch), a family
request, a reservation request or a single regular appointment.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from clinic.permissions import IsOrganizationMember
from clinic.serializers.appointment import (
    AppointmentListQuerySerializer,
    AppointmentSerializer,
    AppointmentStatusSerializer,
    AppointmentUpdateSerializer,
    ClearStatusSerializer,
    FamilyAppointmentRequestSerializer,
    ReservationRequestSerializer,
    SendConfirmationSerializer,
    SlotQuerySerializer,
)
from clinic.services import appointments as svc
from clinic.services.patients import get_patient_or_404, organization_id_or_raise


def _truthy(value) -> bool:
    return str(value).lower() in ('1', 'true', 'yes')


def _create(request):
    body = request.data
    user = request.user
    if isinstance(body, list):
        s = AppointmentSerializer(data=body, many=True)
        s.is_valid(raise_exception=True)
        created = svc.create_batch(user, s.validated_data, request=request)
        return Response({'ok': True, 'data': [svc.serialize_appointment(a) for a in created]}, status=201)

    if body.get('isFamilyAppointment') and body.get('familyAppointmentRequest'):
        s = FamilyAppointmentRequestSerializer(data=body['familyAppointmentRequest'])
        s.is_valid(raise_exception=True)
        created = svc.create_family_appointments(user, s.validated_data, request=request)
        return Response({'ok': True, 'data': [svc.serialize_appointment(a) for a in created]}, status=201)

    if body.get('isReservation') and body.get('reservationRequest'):
        s = ReservationRequestSerializer(data=body['reservationRequest'])
        s.is_valid(raise_exception=True)
        appt = svc.create_reservation(user, s.validated_data, request=request)
        return Response({'ok': True, 'data': svc.serialize_appointment(appt)}, status=201)

    s = AppointmentSerializer(data=body)
    s.is_valid(raise_exception=True)
    appt = svc.create_appointment(user, s.validated_data, request=request)
    return Response({'ok': True, 'data': svc.serialize_appointment(appt)}, status=201)


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([IsOrganizationMember])
def appointments(request):
    org_id = organization_id_or_raise(request.user)
    if request.method == 'POST':
        return _create(request)

    if request.method == 'PUT':
        s = AppointmentUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)
        appt = svc.get_appointment_or_404(org_id, data.pop('id'))
        appt = svc.update_appointment(request.user, appt, data, request=request)
        return Response({'ok': True, 'data': svc.serialize_appointment(appt)})

    if request.method == 'DELETE':
        raw_id = request.query_params.get('id')
        if not raw_id or not raw_id.isdigit():
            raise ValidationError({'id': 'Appointment id is required'})
        appt = svc.get_appointment_or_404(org_id, int(raw_id))
        count = svc.delete_appointment(
            request.user, appt,
            delete_family_group=_truthy(request.query_params.get('deleteFamilyGroup')),
            request=request,
        )
        return Response({'ok': True, 'data': {'deleted': count}})

    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    rows = svc.list_appointments(
        org_id, start=v.get('startDate'), end=v.get('endDate'), practitioner_id=v.get('practitionerId'),
    )
    return Response({'ok': True, 'data': rows})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsOrganizationMember])
def appointment_status(request, pk: int):
    appt = svc.get_appointment_or_404(organization_id_or_raise(request.user), pk)
    if request.method == 'DELETE':
        s = ClearStatusSerializer(data=request.data or {})
        s.is_valid(raise_exception=True)
        clear_notes = s.validated_data['clearNotes'] or _truthy(request.query_params.get('clearNotes'))
        appt = svc.clear_status(request.user, appt, clear_notes=clear_notes, request=request)
        return Response({'ok': True, 'data': svc.serialize_appointment(appt)})

    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    appt = svc.set_status(
        request.user, appt, v['status'],
        merge_with_notes=v['mergeWithNotes'],
        important_note=v.get('importantNote') or v['status'].get('importantNote'),
        request=request,
    )
    return Response({'ok': True, 'data': svc.serialize_appointment(appt)})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def appointment_statuses(request):
    return Response({'ok': True, 'data': svc.status_configs()})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def appointment_slots(request):
    q = SlotQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'ok': True, 'data': svc.time_slots(q.validated_data['start'], q.validated_data['duration'])})


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def send_confirmation(request):
    s = SendConfirmationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = get_patient_or_404(request.user, s.validated_data['patientId'])
    return Response({'ok': True, 'data': svc.send_confirmation(request.user, patient, request=request)})
