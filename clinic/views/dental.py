"""
Dental chart, periodontal chart and procedure views, including undo/redo
of procedure changes, and the scaling and sealing tools.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from clinic.permissions import IsOrganizationMember
from clinic.serializers.dental import (
    DentalDataSerializer,
    PeriodontalAnalyzeSerializer,
    ProcedureCreateSerializer,
    ProcedureUpdateSerializer,
    ScalingSerializer,
    SealingSerializer,
)
from clinic.services import procedures as svc
from clinic.services.patients import get_patient_or_404
from clinic.services.periodontal import (
    analyze_periodontal_data_for_scaling,
    compare_charts,
    periodontal_summary,
)
from clinic.services.undo import redo_last_undo, undo_last_action


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
def dental_data(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'POST':
        s = DentalDataSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = svc.save_dental_data(
            request.user, patient,
            dental_chart=s.validated_data.get('dentalChart'),
            periodontal_chart=s.validated_data.get('periodontalChart'),
            request=request,
        )
        return Response({'ok': True, 'data': data})
    return Response({'ok': True, 'data': svc.get_dental_data(patient)})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def periodontal_charts(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    return Response({'ok': True, 'data': list(patient.periodontal_charts or [])})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def periodontal_compare(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    charts = list(patient.periodontal_charts or [])
    try:
        i = int(request.query_params.get('from', ''))
        j = int(request.query_params.get('to', ''))
    except ValueError:
        raise ValidationError({'detail': 'from and to must be chart indexes'})
    if not (0 <= i < len(charts) and 0 <= j < len(charts)):
        raise NotFound('Periodontal chart not found')
    return Response({
        'ok': True,
        'data': {
            'from': {'index': i, 'date': charts[i].get('date')},
            'to': {'index': j, 'date': charts[j].get('date')},
            'teeth': compare_charts(charts[i], charts[j]),
        },
    })


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
def procedures(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'POST':
        s = ProcedureCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        proc = svc.create_procedure(request.user, patient, s.validated_data, request=request)
        return Response({'ok': True, 'data': svc.serialize_procedure(proc)}, status=201)
    return Response({'ok': True, 'data': svc.list_procedures(patient)})


@api_view(['PUT', 'DELETE'])
@permission_classes([IsOrganizationMember])
def procedure_detail(request, pk: int, pid: int):
    patient = get_patient_or_404(request.user, pk)
    proc = svc.get_procedure_or_404(patient, pid)
    if request.method == 'DELETE':
        svc.delete_procedure(request.user, proc, request=request)
        return Response({'ok': True, 'data': {'id': pid}})
    s = ProcedureUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    proc = svc.update_procedure(request.user, proc, s.validated_data, request=request)
    return Response({'ok': True, 'data': svc.serialize_procedure(proc)})


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def undo(request):
    entity_id = request.META.get('HTTP_X_ENTITY_ID') or None
    return Response({'ok': True, 'data': undo_last_action(request.user, entity_id, request=request)})


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def redo(request):
    return Response({'ok': True, 'data': redo_last_undo(request.user, request=request)})


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def scaling(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    s = ScalingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    created = svc.create_scaling_procedures(
        request.user, patient, v['treatments'],
        anesthesia_count=v['anesthesiaCount'], status=v['status'], request=request,
    )
    return Response({'ok': True, 'data': [svc.serialize_procedure(p) for p in created]}, status=201)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def sealings(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    s = SealingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    created = svc.create_sealing_procedures(
        request.user, patient, s.validated_data['toothNumbers'], status=s.validated_data['status'], request=request,
    )
    return Response({'ok': True, 'data': [svc.serialize_procedure(p) for p in created]}, status=201)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def periodontal_analyze(request):
    s = PeriodontalAnalyzeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    teeth = s.validated_data['teeth']
    return Response({
        'ok': True,
        'data': {
            'suggestions': analyze_periodontal_data_for_scaling(teeth),
            'summary': periodontal_summary(teeth),
        },
    })
