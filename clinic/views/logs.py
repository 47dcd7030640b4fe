from django.http import HttpResponse
from django.utils import timezone
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import ActivityLog
from clinic.permissions import IsManagerRole, IsOrganizationMember
from clinic.serializers.patient import DATE_INPUT_FORMATS
from clinic.services.activity import Actions, EntityTypes, filter_logs, list_logs, log_activity, write_logs_csv
from clinic.services.patients import organization_id_or_raise

LOG_DATE_FORMATS = DATE_INPUT_FORMATS + ['%Y-%m-%d']


class LogQuerySerializer(serializers.Serializer):
    action = serializers.CharField(required=False)
    entityType = serializers.CharField(required=False)
    patientId = serializers.IntegerField(required=False)
    userId = serializers.IntegerField(required=False)
    severity = serializers.ChoiceField(choices=[c[0] for c in ActivityLog.SEVERITY_CHOICES], required=False)
    startDate = serializers.DateTimeField(required=False, input_formats=LOG_DATE_FORMATS)
    endDate = serializers.DateTimeField(required=False, input_formats=LOG_DATE_FORMATS)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)


def _filters(request) -> tuple:
    q = LogQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    return {
        'action': v.get('action'),
        'entity_type': v.get('entityType'),
        'patient_id': v.get('patientId'),
        'user_id': v.get('userId'),
        'severity': v.get('severity'),
        'start': v.get('startDate'),
        'end': v.get('endDate'),
    }, v


@api_view(['GET'])
@permission_classes([IsOrganizationMember, IsManagerRole])
def logs(request):
    org_id = organization_id_or_raise(request.user)
    filters, v = _filters(request)
    rows, total = list_logs(org_id, page=v['page'], page_size=v['pageSize'], **filters)
    return Response({
        'ok': True,
        'data': rows,
        'pagination': {'total': total, 'page': v['page'], 'pageSize': v['pageSize']},
    })


@api_view(['GET'])
@permission_classes([IsOrganizationMember, IsManagerRole])
def logs_download(request):
    """All matching logs as a CSV attachment."""
    org_id = organization_id_or_raise(request.user)
    filters, _ = _filters(request)
    stamp = timezone.localtime().strftime('%Y-%m-%dT%H-%M-%S')
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="activity-logs-{stamp}.csv"'
    response['Cache-Control'] = 'no-cache'
    count = write_logs_csv(filter_logs(org_id, **filters), response)
    log_activity(
        user=request.user, action=Actions.EXPORT_LOGS, entity_type=EntityTypes.ACTIVITY_LOG, request=request,
        description=f'Exported {count} log entries',
        details={k: (str(val) if val is not None else None) for k, val in filters.items()},
    )
    return response
