from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.permissions import IsManagerOrReadOnly, IsOrganizationMember
from clinic.serializers.dental import DentalCodeCreateSerializer
from clinic.services.activity import Actions, EntityTypes, log_activity
from clinic.services.dental_codes import create_code, search_codes, serialize_code


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember & IsManagerOrReadOnly])
def dental_codes(request):
    if request.method == 'POST':
        s = DentalCodeCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        code = create_code(s.validated_data)
        log_activity(
            user=request.user, action=Actions.CREATE_DENTAL_CODE, entity_type=EntityTypes.DENTAL_CODE,
            entity_id=code.id, request=request, description=f'Created dental code {code.code}',
        )
        return Response({'ok': True, 'data': serialize_code(code)}, status=201)
    return Response({'ok': True, 'data': search_codes(request.query_params.get('search'))})
