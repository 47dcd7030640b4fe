from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.permissions import IsManagerOrReadOnly, IsOrganizationMember
from clinic.serializers.communication import EmailTemplateSerializer, PatientEmailSerializer
from clinic.services.communication import (
    create_template,
    list_templates,
    send_patient_email,
    serialize_template,
)
from clinic.services.patients import get_patient_or_404, organization_id_or_raise


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember & IsManagerOrReadOnly])
def email_templates(request):
    org_id = organization_id_or_raise(request.user)
    if request.method == 'POST':
        s = EmailTemplateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        tpl = create_template(org_id, s.validated_data)
        return Response({'ok': True, 'data': serialize_template(tpl)}, status=201)
    return Response({'ok': True, 'data': list_templates(org_id, request.query_params.get('search'))})


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def patient_email(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    s = PatientEmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return Response({'ok': True, 'data': send_patient_email(request.user, patient, s.validated_data, request=request)})
