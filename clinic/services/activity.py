"""
Activity logging: the business audit trail of the practice.

Writing a log entry must never break the operation that triggered it, so
``log_activity`` catches and logs storage failures instead of raising.
"""
import csv
import json
import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from clinic.models import ActivityLog

logger = logging.getLogger(__name__)


class Actions:
    CREATE_APPOINTMENT = 'CREATE_APPOINTMENT'
    UPDATE_APPOINTMENT = 'UPDATE_APPOINTMENT'
    DELETE_APPOINTMENT = 'DELETE_APPOINTMENT'
    RESCHEDULE_APPOINTMENT = 'RESCHEDULE_APPOINTMENT'
    UPDATE_APPOINTMENT_STATUS = 'UPDATE_APPOINTMENT_STATUS'
    CREATE_PATIENT = 'CREATE_PATIENT'
    UPDATE_PATIENT = 'UPDATE_PATIENT'
    DISABLE_PATIENT = 'DISABLE_PATIENT'
    ENABLE_PATIENT = 'ENABLE_PATIENT'
    UPDATE_DENTAL_CHART = 'UPDATE_DENTAL_CHART'
    UPDATE_PERIODONTAL_CHART = 'UPDATE_PERIODONTAL_CHART'
    ADD_PATIENT_NOTE = 'ADD_PATIENT_NOTE'
    UPDATE_PATIENT_NOTE = 'UPDATE_PATIENT_NOTE'
    DELETE_PATIENT_NOTE = 'DELETE_PATIENT_NOTE'
    ADD_CLINICAL_RECORD = 'ADD_CLINICAL_RECORD'
    SEND_EMAIL = 'SEND_EMAIL'
    LOGIN = 'LOGIN'
    LOGOUT = 'LOGOUT'
    ADD_PAYMENT = 'ADD_PAYMENT'
    GENERATE_INVOICE = 'GENERATE_INVOICE'
    EXPORT_LOGS = 'EXPORT_LOGS'
    UPDATE_FAMILY = 'UPDATE_FAMILY'
    CREATE_DENTAL_CODE = 'CREATE_DENTAL_CODE'
    CREATE_DENTAL_PROCEDURE = 'CREATE_DENTAL_PROCEDURE'
    UPDATE_DENTAL_PROCEDURE = 'UPDATE_DENTAL_PROCEDURE'
    DELETE_DENTAL_PROCEDURE = 'DELETE_DENTAL_PROCEDURE'
    UNDO_CREATE_DENTAL_PROCEDURE = 'UNDO_CREATE_DENTAL_PROCEDURE'
    UNDO_CREATE_BRIDGE_PROCEDURES = 'UNDO_CREATE_BRIDGE_PROCEDURES'
    UNDO_UPDATE_DENTAL_PROCEDURE = 'UNDO_UPDATE_DENTAL_PROCEDURE'
    UNDO_DELETE_DENTAL_PROCEDURE = 'UNDO_DELETE_DENTAL_PROCEDURE'


class EntityTypes:
    APPOINTMENT = 'APPOINTMENT'
    PATIENT = 'PATIENT'
    DENTAL_CHART = 'DENTAL_CHART'
    PERIODONTAL_CHART = 'PERIODONTAL_CHART'
    DENTAL_PROCEDURE = 'DENTAL_PROCEDURE'
    DENTAL_CODE = 'DENTAL_CODE'
    NOTE = 'NOTE'
    CLINICAL_RECORD = 'CLINICAL_RECORD'
    EMAIL = 'EMAIL'
    PAYMENT = 'PAYMENT'
    USER = 'USER'
    ACTIVITY_LOG = 'ACTIVITY_LOG'


def _request_meta(request) -> tuple[str, str]:
    if request is None:
        return '', ''
    ip = getattr(request, 'client_ip', None) or request.META.get('REMOTE_ADDR', '') or ''
    agent = getattr(request, 'client_user_agent', None) or request.META.get('HTTP_USER_AGENT', '') or ''
    return ip, agent


def log_activity(*, user, action: str, entity_type: str, entity_id: Optional[Any] = None,
                 description: str = '', details: Optional[Dict[str, Any]] = None, severity: str = 'INFO',
                 organization=None, patient=None, appointment=None, request=None) -> Optional[ActivityLog]:
    user = user if getattr(user, 'pk', None) else None
    if organization is None and user is not None:
        organization = getattr(user, 'organization', None)
    ip, agent = _request_meta(request)
    try:
        # savepoint so a failed insert does not poison an outer transaction
        with transaction.atomic():
            return ActivityLog.objects.create(
                organization=organization,
                user=user,
                action=action,
                entity_type=entity_type,
                entity_id='' if entity_id is None else str(entity_id),
                description=description,
                details=details or {},
                severity=severity,
                ip_address=ip,
                user_agent=agent[:500],
                patient=patient,
                appointment=appointment,
            )
    except Exception:
        logger.exception('failed to write activity log %s for %s %s', action, entity_type, entity_id)
        return None


def serialize_log(log: ActivityLog) -> dict:
    u = log.user
    return {
        'id': log.id,
        'action': log.action,
        'entityType': log.entity_type,
        'entityId': log.entity_id,
        'description': log.description,
        'details': log.details or {},
        'severity': log.severity,
        'ipAddress': log.ip_address or None,
        'userAgent': log.user_agent or None,
        'patientId': log.patient_id,
        'appointmentId': log.appointment_id,
        'user': ({'id': u.id, 'name': u.get_full_name() or u.username} if u else None),
        'createdAt': log.created_at.isoformat() if log.created_at else None,
    }


def filter_logs(organization_id: int, *, action=None, entity_type=None, patient_id=None, user_id=None,
                severity=None, start=None, end=None):
    qs = ActivityLog.objects.filter(organization_id=organization_id).select_related('user', 'patient')
    if action:
        qs = qs.filter(action=action)
    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if user_id:
        qs = qs.filter(user_id=user_id)
    if severity:
        qs = qs.filter(severity=severity)
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    return qs.order_by('-created_at', '-id')


def list_logs(organization_id: int, *, page: int = 1, page_size: int = 50, **filters) -> tuple[list, int]:
    qs = filter_logs(organization_id, **filters)
    total = qs.count()
    start = (page - 1) * page_size
    return [serialize_log(log) for log in qs[start:start + page_size]], total


EXPORT_HEADER = [
    'Date', 'Time', 'User', 'User Role', 'Action', 'Entity Type', 'Entity ID', 'Description',
    'Severity', 'Patient', 'IP Address', 'User Agent', 'Details',
]


def write_logs_csv(qs, out) -> int:
    """Write the logs of ``qs`` as CSV rows to the file-like ``out``."""
    writer = csv.writer(out)
    writer.writerow(EXPORT_HEADER)
    count = 0
    for log in qs.iterator():
        created = timezone.localtime(log.created_at)
        user, patient = log.user, log.patient
        writer.writerow([
            created.date().isoformat(),
            created.strftime('%H:%M:%S'),
            (user.get_full_name() or user.username) if user else '',
            user.role if user else '',
            log.action,
            log.entity_type,
            log.entity_id,
            log.description,
            log.severity,
            f'{patient.full_name} ({patient.patient_code})' if patient else '',
            log.ip_address,
            log.user_agent,
            json.dumps(log.details) if log.details else '',
        ])
        count += 1
    return count
