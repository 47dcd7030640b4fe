from decimal import Decimal, InvalidOperation

from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from clinic.permissions import IsOrganizationMember
from clinic.serializers.dental import PaymentSerializer
from clinic.services.billing import pay_procedures, render_treatment_plan, treatment_plan
from clinic.services.patients import get_patient_or_404


def _plan_from_query(request, patient) -> dict:
    raw = request.query_params.get('vatRate')
    vat_rate = None
    if raw not in (None, ''):
        try:
            vat_rate = Decimal(raw)
        except InvalidOperation:
            raise ValidationError({'vatRate': 'Must be a number'})
        if not vat_rate.is_finite():
            raise ValidationError({'vatRate': 'Must be a number'})
        if vat_rate < 0 or vat_rate > 1:
            raise ValidationError({'vatRate': 'Must be between 0 and 1'})
    return treatment_plan(patient, vat_rate=vat_rate, valid_until=request.query_params.get('validUntil') or None)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def pay(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    s = PaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    invoice = pay_procedures(request.user, patient, s.validated_data, request=request)
    return Response({'ok': True, 'data': invoice})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def treatment_plan_view(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    return Response({'ok': True, 'data': _plan_from_query(request, patient)})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def treatment_plan_print(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    html = render_treatment_plan(_plan_from_query(request, patient))
    return HttpResponse(html, content_type='text/html; charset=utf-8')
