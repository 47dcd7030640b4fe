"""
Clinical record views (ASA, PPS, recalls, the care plan and check-ups).
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import CarePlan
from clinic.permissions import IsOrganizationMember
from clinic.serializers.records import (
    AsaRecordSerializer,
    CarePlanSerializer,
    CheckupSerializer,
    CleaningRecallSerializer,
    PpsRecordSerializer,
    RecallRecordSerializer,
)
from clinic.services import records
from clinic.services.patients import get_patient_or_404


def _create(request, pk, serializer_class, create, serialize):
    patient = get_patient_or_404(request.user, pk)
    s = serializer_class(data=request.data)
    s.is_valid(raise_exception=True)
    record = create(request.user, patient, s.validated_data, request=request)
    return Response({'ok': True, 'data': serialize(record)}, status=201)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def asa_records(request, pk: int):
    return _create(request, pk, AsaRecordSerializer, records.create_asa, records.serialize_asa)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def pps_records(request, pk: int):
    return _create(request, pk, PpsRecordSerializer, records.create_pps, records.serialize_pps)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def recall_records(request, pk: int):
    return _create(request, pk, RecallRecordSerializer, records.create_recall, records.serialize_recall)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def cleaning_recall_records(request, pk: int):
    return _create(
        request, pk, CleaningRecallSerializer, records.create_cleaning_recall, records.serialize_cleaning_recall,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
def care_plan(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'POST':
        s = CarePlanSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        plan = records.upsert_care_plan(request.user, patient, s.validated_data)
        return Response({'ok': True, 'data': records.serialize_care_plan(plan)})
    plan = CarePlan.objects.filter(patient=patient).first()
    return Response({'ok': True, 'data': records.serialize_care_plan(plan)})


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def checkup(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    s = CheckupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return Response({'ok': True, 'data': records.record_checkup(request.user, patient, s.validated_data, request=request)},
                    status=201)
