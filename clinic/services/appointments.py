"""
Appointment booking, status metadata and confirmations.

Every write broadcasts a ``calendar.changed`` event to the organization's
calendar group so open calendars refetch.
"""
import logging
import math
import random
import string
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Appointment, Patient
from clinic.realtime.events import broadcast_calendar_change
from clinic.services.activity import Actions, EntityTypes, log_activity
from clinic.services.communication import deliver

logger = logging.getLogger(__name__)

User = get_user_model()

SLOT_MINUTES = 5
IMPORTANT_PREFIX = '[IMPORTANT]'

STATUS_CONFIGS = {
    'default': {
        'label': 'Default', 'icon': '', 'color': '#6b7280',
        'description': 'No status set', 'requiresInput': False,
    },
    'waiting_room': {
        'label': 'In Waiting Room', 'icon': '🪑', 'color': '#3b82f6',
        'description': 'Patient is waiting in the waiting room', 'requiresInput': False,
    },
    'being_treated': {
        'label': 'Being Treated', 'icon': '⚕️', 'color': '#10b981',
        'description': 'Patient is currently being treated', 'requiresInput': False,
    },
    'finished': {
        'label': 'Finished', 'icon': '✅', 'color': '#059669',
        'description': 'Treatment is completed', 'requiresInput': False,
    },
    'no_show': {
        'label': "Didn't Show Up", 'icon': '❌', 'color': '#dc2626',
        'description': 'Patient did not show up for appointment', 'requiresInput': False,
    },
    'called_off': {
        'label': 'Called Off', 'icon': '📞', 'color': '#f59e0b',
        'description': 'Appointment was cancelled/called off', 'requiresInput': False,
    },
    'running_late': {
        'label': 'Running Late', 'icon': '⏰', 'color': '#f97316',
        'description': 'Patient is running late', 'requiresInput': True, 'inputType': 'minutes',
    },
    'brushing_teeth': {
        'label': 'Brushing Teeth', 'icon': '🦷', 'color': '#8b5cf6',
        'description': 'Patient is brushing teeth before treatment', 'requiresInput': False,
    },
    'important': {
        'label': 'Important', 'icon': '⚠️', 'color': '#dc2626',
        'description': 'Important note or alert', 'requiresInput': True, 'inputType': 'note',
    },
}


def status_configs() -> List[dict]:
    return [{'type': key, **cfg} for key, cfg in STATUS_CONFIGS.items()]


def validate_status(status: Optional[Dict[str, Any]]) -> dict:
    """Return the cleaned status metadata or raise ``ValidationError``."""
    if not status or status.get('type') not in STATUS_CONFIGS:
        raise ValidationError('Invalid status type')
    kind = status['type']
    cleaned = {'type': kind}
    config = STATUS_CONFIGS[kind]
    if config.get('inputType') == 'minutes':
        minutes = status.get('minutesLate')
        if not minutes or int(minutes) <= 0:
            raise ValidationError('Minutes late is required for running late status')
        cleaned['minutesLate'] = int(minutes)
    elif config.get('inputType') == 'note':
        note = (status.get('importantNote') or '').strip()
        if not note:
            raise ValidationError('Important note is required for important status')
        cleaned['importantNote'] = note
    return cleaned


def status_display(status: Optional[Dict[str, Any]]) -> str:
    if not status or status.get('type') in (None, 'default') or status['type'] not in STATUS_CONFIGS:
        return ''
    display = STATUS_CONFIGS[status['type']]['icon']
    if status['type'] == 'running_late' and status.get('minutesLate'):
        display += f" {status['minutesLate']}min"
    return display


def status_tooltip(status: Optional[Dict[str, Any]]) -> str:
    if not status or status.get('type') in (None, 'default') or status['type'] not in STATUS_CONFIGS:
        return ''
    tooltip = STATUS_CONFIGS[status['type']]['description']
    if status['type'] == 'running_late' and status.get('minutesLate'):
        tooltip += f" ({status['minutesLate']} minutes)"
    elif status['type'] == 'important' and status.get('importantNote'):
        tooltip = status['importantNote']
    return tooltip


def serialize_appointment(a: Appointment) -> dict:
    p = a.patient
    pr = a.practitioner
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'practitionerId': a.practitioner_id,
        'startTime': a.start_time.isoformat(),
        'endTime': a.end_time.isoformat(),
        'duration': a.duration,
        'type': a.type,
        'status': a.status,
        'notes': a.notes,
        'appointmentType': a.appointment_type,
        'reservationColor': a.reservation_color or None,
        'isReservation': a.is_reservation,
        'isFamilyAppointment': a.is_family_appointment,
        'familyAppointmentId': a.family_appointment_id or None,
        'appointmentStatus': a.appointment_status,
        'statusDisplay': status_display(a.appointment_status),
        'statusTooltip': status_tooltip(a.appointment_status),
        'patient': ({
            'id': p.id, 'patientCode': p.patient_code, 'firstName': p.first_name,
            'lastName': p.last_name, 'phone': p.phone, 'email': p.email,
        } if p else None),
        'practitioner': ({'id': pr.id, 'firstName': pr.first_name, 'lastName': pr.last_name} if pr else None),
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'updatedAt': a.updated_at.isoformat() if a.updated_at else None,
    }


def _base_queryset(organization_id: int):
    return Appointment.objects.filter(organization_id=organization_id).select_related('patient', 'practitioner')


def get_appointment_or_404(organization_id: int, appointment_id) -> Appointment:
    appt = _base_queryset(organization_id).filter(id=appointment_id).first()
    if not appt:
        raise NotFound('Appointment not found')
    return appt


def list_appointments(organization_id: int, *, start: Optional[datetime] = None, end: Optional[datetime] = None,
                      practitioner_id: Optional[int] = None) -> list:
    qs = _base_queryset(organization_id)
    if start:
        qs = qs.filter(start_time__gte=start)
    if end:
        qs = qs.filter(start_time__lte=end)
    if practitioner_id:
        qs = qs.filter(practitioner_id=practitioner_id)
    return [serialize_appointment(a) for a in qs.order_by('start_time', 'id')]


def _practitioner_or_404(organization_id: int, practitioner_id) -> User:
    u = User.objects.filter(id=practitioner_id, organization_id=organization_id).first()
    if not u:
        raise NotFound('Practitioner not found')
    return u


def _patient_or_404(organization_id: int, patient_id) -> Optional[Patient]:
    if not patient_id:
        return None
    p = Patient.objects.filter(id=patient_id, organization_id=organization_id).first()
    if not p:
        raise NotFound('Patient not found')
    return p


def _log(user, appt: Appointment, action: str, description: str, details=None, request=None):
    log_activity(
        user=user, action=action, entity_type=EntityTypes.APPOINTMENT, entity_id=appt.id,
        description=description, details=details, patient=appt.patient, appointment=appt, request=request,
    )


def _build(organization_id: int, data: Dict[str, Any]) -> Appointment:
    is_reservation = bool(data.get('isReservation'))
    is_family = bool(data.get('isFamilyAppointment'))
    appointment_type = data.get('appointmentType') or 'REGULAR'
    if is_reservation:
        appointment_type = 'RESERVATION'
    return Appointment.objects.create(
        organization_id=organization_id,
        patient=_patient_or_404(organization_id, data.get('patientId')),
        practitioner=_practitioner_or_404(organization_id, data['practitionerId']),
        start_time=data['startTime'],
        end_time=data['endTime'],
        duration=data['duration'],
        type=data.get('type') or '',
        status=data.get('status') or 'SCHEDULED',
        notes=data.get('notes') or '',
        appointment_type=appointment_type,
        is_reservation=is_reservation,
        is_family_appointment=is_family,
        reservation_color=data.get('reservationColor') or '',
    )


def create_appointment(user, data: Dict[str, Any], *, request=None) -> Appointment:
    organization_id = user.organization_id
    appt = _build(organization_id, data)
    _log(user, appt, Actions.CREATE_APPOINTMENT,
         f'Appointment created for {appt.start_time:%Y-%m-%d %H:%M}', request=request)
    broadcast_calendar_change(organization_id, 'created', [appt.id])
    return appt


def create_batch(user, items: List[Dict[str, Any]], *, request=None) -> List[Appointment]:
    organization_id = user.organization_id
    with transaction.atomic():
        created = [_build(organization_id, item) for item in items]
    for appt in created:
        _log(user, appt, Actions.CREATE_APPOINTMENT, 'Appointment created (batch)', request=request)
    broadcast_calendar_change(organization_id, 'created', [a.id for a in created])
    return created


def new_family_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f'family_{int(timezone.now().timestamp() * 1000)}_{suffix}'


def create_family_appointments(user, req: Dict[str, Any], *, request=None) -> List[Appointment]:
    """One appointment per patient code, back to back, in the order given."""
    organization_id = user.organization_id
    codes = req['selectedPatientCodes']
    patients = {
        p.patient_code: p
        for p in Patient.objects.filter(organization_id=organization_id, patient_code__in=codes)
    }
    missing = [c for c in codes if c not in patients]
    if missing:
        raise NotFound(f"Patient codes not found: {', '.join(missing)}")

    practitioner = _practitioner_or_404(organization_id, req['practitionerId'])
    family_id = new_family_id()
    duration = req['duration']
    start = req['startTime']
    created = []
    with transaction.atomic():
        for code in codes:
            end = start + timedelta(minutes=duration)
            created.append(Appointment.objects.create(
                organization_id=organization_id,
                patient=patients[code],
                practitioner=practitioner,
                start_time=start,
                end_time=end,
                duration=duration,
                type=req.get('type') or '',
                status='SCHEDULED',
                notes=req.get('notes') or '',
                appointment_type='FAMILY',
                is_family_appointment=True,
                family_appointment_id=family_id,
            ))
            start = end
    for appt in created:
        _log(user, appt, Actions.CREATE_APPOINTMENT, 'Family appointment created',
             details={'familyAppointmentId': family_id}, request=request)
    broadcast_calendar_change(organization_id, 'created', [a.id for a in created])
    return created


def create_reservation(user, req: Dict[str, Any], *, request=None) -> Appointment:
    organization_id = user.organization_id
    start = req['startTime']
    appt = Appointment.objects.create(
        organization_id=organization_id,
        patient=_patient_or_404(organization_id, req.get('patientId')),
        practitioner=_practitioner_or_404(organization_id, req['practitionerId']),
        start_time=start,
        end_time=start + timedelta(minutes=req['duration']),
        duration=req['duration'],
        type='Reservation',
        status='SCHEDULED',
        notes=req.get('notes') or '',
        appointment_type='RESERVATION',
        is_reservation=True,
        reservation_color=req.get('reservationColor') or '',
    )
    _log(user, appt, Actions.CREATE_APPOINTMENT, 'Reservation created', request=request)
    broadcast_calendar_change(organization_id, 'created', [appt.id])
    return appt


UPDATE_FIELDS = (
    ('startTime', 'start_time'),
    ('endTime', 'end_time'),
    ('duration', 'duration'),
    ('type', 'type'),
    ('status', 'status'),
    ('notes', 'notes'),
    ('reservationColor', 'reservation_color'),
)


def update_appointment(user, appt: Appointment, data: Dict[str, Any], *, request=None) -> Appointment:
    organization_id = user.organization_id
    old_start = appt.start_time
    before = {'startTime': appt.start_time.isoformat(), 'endTime': appt.end_time.isoformat(),
              'practitionerId': appt.practitioner_id}
    for key, attr in UPDATE_FIELDS:
        if key in data:
            setattr(appt, attr, data[key] if data[key] is not None else '')
    if 'practitionerId' in data:
        appt.practitioner = _practitioner_or_404(organization_id, data['practitionerId'])
    if 'patientId' in data:
        appt.patient = _patient_or_404(organization_id, data['patientId'])
    if 'endTime' not in data and ('startTime' in data or 'duration' in data):
        appt.end_time = appt.start_time + timedelta(minutes=appt.duration)
    elif 'duration' not in data and ('startTime' in data or 'endTime' in data):
        appt.duration = max(int((appt.end_time - appt.start_time).total_seconds() // 60), 0)
    if appt.end_time <= appt.start_time:
        raise ValidationError('End time must be after start time')
    appt.save()

    rescheduled = appt.start_time != old_start
    action = Actions.RESCHEDULE_APPOINTMENT if rescheduled else Actions.UPDATE_APPOINTMENT
    description = (
        f'Appointment moved from {old_start:%Y-%m-%d %H:%M} to {appt.start_time:%Y-%m-%d %H:%M}'
        if rescheduled else 'Appointment updated'
    )
    _log(user, appt, action, description, details={
        'before': before,
        'after': {'startTime': appt.start_time.isoformat(), 'endTime': appt.end_time.isoformat(),
                  'practitionerId': appt.practitioner_id},
    }, request=request)
    broadcast_calendar_change(organization_id, 'updated', [appt.id])
    return appt


def delete_appointment(user, appt: Appointment, *, delete_family_group: bool = False, request=None) -> int:
    organization_id = user.organization_id
    qs = Appointment.objects.filter(id=appt.id)
    if delete_family_group and appt.is_family_appointment and appt.family_appointment_id:
        qs = Appointment.objects.filter(
            organization_id=organization_id, family_appointment_id=appt.family_appointment_id,
        )
    ids = list(qs.values_list('id', flat=True))
    log_activity(
        user=user, action=Actions.DELETE_APPOINTMENT, entity_type=EntityTypes.APPOINTMENT, entity_id=appt.id,
        patient=appt.patient, request=request,
        description=f'Deleted {len(ids)} appointment(s)',
        details={'appointmentIds': ids, 'familyAppointmentId': appt.family_appointment_id or None},
    )
    qs.delete()
    broadcast_calendar_change(organization_id, 'deleted', ids)
    return len(ids)


def set_status(user, appt: Appointment, status: Dict[str, Any], *, merge_with_notes: bool = False,
               important_note: Optional[str] = None, request=None) -> Appointment:
    cleaned = validate_status(status)
    cleaned['timestamp'] = timezone.now().isoformat()
    appt.appointment_status = cleaned
    fields = ['appointment_status', 'updated_at']
    if merge_with_notes and important_note and cleaned['type'] == 'important':
        line = f'{IMPORTANT_PREFIX} {important_note}'
        appt.notes = f'{appt.notes}\n\n{line}' if appt.notes else line
        fields.append('notes')
    appt.save(update_fields=fields)
    _log(user, appt, Actions.UPDATE_APPOINTMENT_STATUS,
         f"Status set to {STATUS_CONFIGS[cleaned['type']]['label']}", details={'status': cleaned}, request=request)
    broadcast_calendar_change(user.organization_id, 'status', [appt.id])
    return appt


def strip_important_lines(notes: str) -> str:
    return '\n'.join(
        line for line in (notes or '').split('\n') if not line.strip().startswith(IMPORTANT_PREFIX)
    ).strip()


def clear_status(user, appt: Appointment, *, clear_notes: bool = False, request=None) -> Appointment:
    appt.appointment_status = None
    fields = ['appointment_status', 'updated_at']
    if clear_notes and appt.notes:
        appt.notes = strip_important_lines(appt.notes)
        fields.append('notes')
    appt.save(update_fields=fields)
    _log(user, appt, Actions.UPDATE_APPOINTMENT_STATUS, 'Status cleared', request=request)
    broadcast_calendar_change(user.organization_id, 'status', [appt.id])
    return appt


def time_slots(start: datetime, duration: int) -> List[dict]:
    """The 5-minute slots an appointment of ``duration`` minutes occupies."""
    count = max(math.ceil(duration / SLOT_MINUTES), 1)
    return [
        {
            'start': (start + timedelta(minutes=i * SLOT_MINUTES)).isoformat(),
            'end': (start + timedelta(minutes=(i + 1) * SLOT_MINUTES)).isoformat(),
        }
        for i in range(count)
    ]


def upcoming_for_patient(patient: Patient, now: Optional[datetime] = None) -> list:
    now = now or timezone.now()
    return list(
        Appointment.objects.filter(patient=patient, start_time__gte=now)
        .exclude(status='CANCELLED')
        .select_related('practitioner')
        .order_by('start_time')
    )


def send_confirmation(user, patient: Patient, *, request=None) -> dict:
    if not patient.email:
        raise NotFound('Patient not found or missing email address')
    upcoming = upcoming_for_patient(patient)
    for a in upcoming:
        a.practitioner_name = a.practitioner.get_full_name() if a.practitioner else ''
    body = render_to_string('clinic/appointment_confirmation.txt', {
        'patient': patient,
        'appointments': upcoming,
        'organization': patient.organization,
    })
    subject = 'Appointment Confirmation'
    deliver(patient.email, subject, body)
    log_activity(
        user=user, action=Actions.SEND_EMAIL, entity_type=EntityTypes.EMAIL, entity_id=patient.id,
        patient=patient, request=request, description=f'Appointment confirmation sent to {patient.email}',
        details={'appointmentIds': [a.id for a in upcoming]},
    )
    logger.info('confirmation for %s upcoming appointment(s) sent to patient %s', len(upcoming), patient.id)
    return {'success': True, 'appointmentCount': len(upcoming)}
