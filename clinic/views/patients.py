"""
Patient management views.

All endpoints are scoped to the caller's organization: a patient of
another organization is reported as 404.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from clinic.models import PatientStatusRecord
from clinic.permissions import IsOrganizationMember
from clinic.serializers.patient import (
    FamilyCreateSerializer,
    FamilyMemberSerializer,
    PatientCreateSerializer,
    PatientListQuerySerializer,
    PatientStatusSerializer,
    PatientUpdateSerializer,
)
from clinic.services.families import add_family_member, create_family, list_families, remove_from_family
from clinic.services.patients import (
    create_patient,
    family_members,
    get_patient_or_404,
    list_patients,
    organization_id_or_raise,
    serialize_patient,
    serialize_status_record,
    set_patient_status,
    update_patient,
)
from clinic.services.records import patient_histories
from clinic.throttles import PatientWriteThrottle


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
@throttle_classes([UserRateThrottle, PatientWriteThrottle])
def patients(request):
    org_id = organization_id_or_raise(request.user)
    if request.method == 'POST':
        s = PatientCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = create_patient(request.user, s.validated_data, request=request)
        return Response({'ok': True, 'data': serialize_patient(patient)}, status=201)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    page = v.get('page') or 1
    page_size = v.get('pageSize')
    rows, total = list_patients(
        org_id, q=(v.get('q') or '').strip() or None, include_disabled=v['includeDisabled'],
        page=page, page_size=page_size,
    )
    return Response({
        'ok': True,
        'data': [serialize_patient(p) for p in rows],
        'pagination': {'total': total, 'page': page, 'pageSize': page_size or total},
    })


@api_view(['GET', 'PATCH'])
@permission_classes([IsOrganizationMember])
def patient_detail(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'PATCH':
        s = PatientUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        patient = update_patient(request.user, patient, s.validated_data, request=request)
    data = serialize_patient(patient)
    data.update(patient_histories(patient))
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
def patient_status(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'POST':
        s = PatientStatusSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        record = set_patient_status(
            request.user, patient, s.validated_data['action'], s.validated_data.get('reason') or '',
            request=request,
        )
        return Response({
            'ok': True,
            'data': {'patient': serialize_patient(patient), 'record': serialize_status_record(record)},
        }, status=201)
    history = (
        PatientStatusRecord.objects.filter(patient=patient)
        .select_related('created_by')
        .order_by('-created_at', '-id')
    )
    return Response({'ok': True, 'data': [serialize_status_record(r) for r in history]})


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
def families(request):
    org_id = organization_id_or_raise(request.user)
    if request.method == 'POST':
        s = FamilyCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = create_family(request.user, org_id, s.validated_data['patientCodes'], request=request)
        return Response({'ok': True, 'data': data}, status=201)
    return Response({'ok': True, 'data': list_families(org_id)})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsOrganizationMember])
def family(request, code: str):
    """
    GET lists the members, PUT adds ``patientCode`` to the family and
    DELETE removes ``?patientCode=`` (or the whole family when omitted).
    """
    org_id = organization_id_or_raise(request.user)
    if request.method == 'PUT':
        s = FamilyMemberSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = add_family_member(request.user, org_id, code, s.validated_data['patientCode'], request=request)
        return Response({'ok': True, 'data': data})
    if request.method == 'DELETE':
        data = remove_from_family(
            request.user, org_id, code, request.query_params.get('patientCode') or None, request=request,
        )
        return Response({'ok': True, 'data': data})
    return Response({'ok': True, 'data': [serialize_patient(p) for p in family_members(org_id, code)]})
