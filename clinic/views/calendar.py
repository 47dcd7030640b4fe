from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.permissions import IsOrganizationMember
from clinic.serializers.appointment import CalendarQuerySerializer, CalendarSettingsSerializer
from clinic.services.calendar import (
    calendar_view,
    get_calendar_settings,
    list_practitioners,
    settings_user_or_404,
    upsert_calendar_settings,
)
from clinic.services.patients import organization_id_or_raise


def _flag(request, name: str) -> bool:
    return str(request.query_params.get(name, '')).lower() in ('1', 'true', 'yes')


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def calendar(request):
    org_id = organization_id_or_raise(request.user)
    q = CalendarQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    own = get_calendar_settings(request.user)
    data = calendar_view(
        org_id,
        day=v.get('date'),
        view=v['view'],
        practitioner_ids=v.get('practitionerIds'),
        include_reservations=v['includeReservations'],
        include_cancelled=v['includeCancelled'],
        visible_days=own['visibleDays'],
    )
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def practitioners(request):
    org_id = organization_id_or_raise(request.user)
    data = list_practitioners(
        org_id, include_colors=_flag(request, 'includeColors'), include_disabled=_flag(request, 'includeDisabled'),
    )
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'POST'])
@permission_classes([IsOrganizationMember])
def calendar_settings_personal(request):
    target = settings_user_or_404(
        request.user, request.query_params.get('userId'), write=request.method == 'POST',
    )
    if request.method == 'POST':
        s = CalendarSettingsSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        return Response({'ok': True, 'data': upsert_calendar_settings(target, s.validated_data)})
    return Response({'ok': True, 'data': get_calendar_settings(target)})
