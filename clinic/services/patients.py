import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.exceptions import OrganizationMissing
from clinic.models import AsaRecord, Patient, PatientStatusRecord
from clinic.services.activity import Actions, EntityTypes, log_activity

logger = logging.getLogger(__name__)

ASA_4_CONDITIONS = ('heartFailure', 'cancerLeukemia', 'hivAids', 'kidneyDisease', 'liverDisease')
ASA_3_CONDITIONS = (
    'heartAttack', 'diabetes', 'asthma', 'thyroidProblems', 'bloodPressure',
    'bleedingTendency', 'lungProblems', 'epilepsy',
)
ASA_2_CONDITIONS = (
    'chestPain', 'heartMurmur', 'vascularSurgery6Months', 'pacemakerICD', 'heartPalpitations',
    'acuteRheumatism', 'hepatitisA', 'hepatitisB', 'hepatitisC', 'hepatitisD',
    'smoking', 'drinking', 'pregnancy',
)

# Order matters: labels are listed in this order in the ASA notes
CONDITION_LABELS = (
    ('chestPain', 'Chest pain'),
    ('heartAttack', 'Previous heart attack'),
    ('heartMurmur', 'Heart murmur'),
    ('heartFailure', 'Heart failure'),
    ('bloodPressure', 'Hypertension'),
    ('lungProblems', 'Lung problems'),
    ('asthma', 'Asthma'),
    ('diabetes', 'Diabetes'),
    ('cancerLeukemia', 'Cancer/Leukemia'),
    ('epilepsy', 'Epilepsy'),
    ('bleedingTendency', 'Bleeding tendency'),
    ('smoking', 'Smoker'),
    ('drinking', 'Alcohol use'),
    ('pregnancy', 'Pregnant'),
)

UPDATABLE_FIELDS = (
    ('first_name', 'firstName'),
    ('last_name', 'lastName'),
    ('date_of_birth', 'dateOfBirth'),
    ('gender', 'gender'),
    ('email', 'email'),
    ('phone', 'phone'),
    ('address', 'address'),
    ('bsn', 'bsn'),
    ('country', 'country'),
    ('health_insurance', 'healthInsurance'),
    ('medical_history', 'medicalHistory'),
    ('dental_history', 'dentalHistory'),
    ('status_praesens', 'statusPraesens'),
    ('is_long_term_care_act', 'isLongTermCareAct'),
    ('allow_early_spot_contact', 'allowEarlySpotContact'),
    ('family_head_code', 'familyHeadCode'),
    ('family_position', 'familyPosition'),
)


def calculate_asa_score(medical_history: Optional[Dict[str, Any]]) -> int:
    """ASA class derived from the intake questionnaire (1 = healthy)."""
    if not medical_history:
        return 1
    if any(medical_history.get(k) for k in ASA_4_CONDITIONS):
        return 4
    if any(medical_history.get(k) for k in ASA_3_CONDITIONS):
        return 3
    if any(medical_history.get(k) for k in ASA_2_CONDITIONS):
        return 2
    return 1


def generate_asa_notes(medical_history: Optional[Dict[str, Any]]) -> str:
    conditions = [label for key, label in CONDITION_LABELS if (medical_history or {}).get(key)]
    if not conditions:
        return 'Initial assessment - healthy patient'
    return f"Initial assessment - {', '.join(conditions)}"


def organization_id_or_raise(user) -> int:
    org_id = getattr(user, 'organization_id', None)
    if not org_id:
        raise OrganizationMissing()
    return org_id


def get_patient_or_404(user, patient_id) -> Patient:
    """Patients of other organizations are reported as missing."""
    org_id = organization_id_or_raise(user)
    patient = Patient.objects.filter(id=patient_id, organization_id=org_id).first()
    if not patient:
        raise NotFound('Patient not found')
    return patient


def next_patient_code(organization_id: int) -> str:
    code = Patient.objects.filter(organization_id=organization_id).count() + 1
    # codes in use, or held by a family as its head code, are skipped
    taken = Patient.objects.filter(organization_id=organization_id)
    while taken.filter(Q(patient_code=str(code)) | Q(family_head_code=str(code))).exists():
        code += 1
    return str(code)


def create_patient(user, data: Dict[str, Any], *, request=None) -> Patient:
    org_id = organization_id_or_raise(user)
    medical_history = data.get('medicalHistory') or {}
    with transaction.atomic():
        patient = Patient.objects.create(
            organization_id=org_id,
            patient_code=next_patient_code(org_id),
            first_name=data['firstName'],
            last_name=data['lastName'],
            date_of_birth=data['dateOfBirth'],
            gender=data['gender'],
            email=data.get('email') or '',
            phone=data.get('phone') or '',
            address=dict(data['address']),
            bsn=data['bsn'],
            country=data.get('country') or 'Netherlands',
            health_insurance=dict(data.get('healthInsurance') or {}),
            medical_history=medical_history,
            dental_history=data.get('dentalHistory') or {},
            is_long_term_care_act=bool(data.get('isLongTermCareAct')),
            allow_early_spot_contact=bool(data.get('allowEarlySpotContact')),
            family_head_code=data.get('familyHeadCode') or '',
            family_position=data.get('familyPosition'),
        )
        AsaRecord.objects.create(
            patient=patient,
            score=calculate_asa_score(medical_history),
            notes=generate_asa_notes(medical_history),
            date=timezone.now(),
            created_by=user,
        )
    log_activity(
        user=user, action=Actions.CREATE_PATIENT, entity_type=EntityTypes.PATIENT, entity_id=patient.id,
        description=f'Created patient {patient.full_name}', patient=patient, request=request,
        details={'patientCode': patient.patient_code},
    )
    logger.info('patient %s created in organization %s', patient.id, org_id)
    return patient


def update_patient(user, patient: Patient, data: Dict[str, Any], *, request=None) -> Patient:
    changed = []
    for field, key in UPDATABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if field in ('address', 'health_insurance'):
            value = dict(value or {})
        elif field in ('medical_history', 'dental_history', 'status_praesens'):
            value = value or {}
        elif field in ('email', 'phone', 'family_head_code'):
            value = value or ''
        setattr(patient, field, value)
        changed.append(key)
    if changed:
        patient.save()
        log_activity(
            user=user, action=Actions.UPDATE_PATIENT, entity_type=EntityTypes.PATIENT, entity_id=patient.id,
            description=f'Updated patient {patient.full_name}', patient=patient, request=request,
            details={'fields': changed},
        )
    return patient


def set_patient_status(user, patient: Patient, action: str, reason: str = '', *, request=None) -> PatientStatusRecord:
    with transaction.atomic():
        if action == 'DISABLE':
            patient.is_disabled = True
            patient.disabled_reason = reason
            patient.disabled_at = timezone.now()
            patient.disabled_by = user
        else:
            patient.is_disabled = False
            patient.disabled_reason = ''
            patient.disabled_at = None
            patient.disabled_by = None
        patient.save(update_fields=['is_disabled', 'disabled_reason', 'disabled_at', 'disabled_by', 'updated_at'])
        record = PatientStatusRecord.objects.create(patient=patient, action=action, reason=reason, created_by=user)
    log_activity(
        user=user,
        action=Actions.DISABLE_PATIENT if action == 'DISABLE' else Actions.ENABLE_PATIENT,
        entity_type=EntityTypes.PATIENT, entity_id=patient.id, patient=patient, request=request,
        description=reason or action.lower(),
    )
    return record


def list_patients(organization_id: int, *, q: Optional[str] = None, include_disabled: bool = False,
                  page: Optional[int] = None, page_size: Optional[int] = None) -> tuple[list, int]:
    qs = Patient.objects.filter(organization_id=organization_id)
    if not include_disabled:
        qs = qs.filter(is_disabled=False)
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q)
            | Q(patient_code__iexact=q) | Q(email__icontains=q)
        )
    qs = qs.order_by('-created_at', '-id')
    total = qs.count()
    if page and page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]
    return list(qs), total


def family_members(organization_id: int, family_code: str) -> list:
    return list(
        Patient.objects.filter(organization_id=organization_id)
        .filter(Q(family_head_code=family_code) | Q(patient_code=family_code))
        .order_by('family_position', 'id')
    )


def serialize_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'patientCode': p.patient_code,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'gender': p.gender,
        'email': p.email or None,
        'phone': p.phone or None,
        'address': p.address or {},
        'bsn': p.bsn,
        'country': p.country,
        'healthInsurance': p.health_insurance or None,
        'medicalHistory': p.medical_history or {},
        'dentalHistory': p.dental_history or {},
        'statusPraesens': p.status_praesens or {},
        'allowEarlySpotContact': p.allow_early_spot_contact,
        'isLongTermCareAct': p.is_long_term_care_act,
        'familyHeadCode': p.family_head_code or None,
        'familyPosition': p.family_position,
        'isDisabled': p.is_disabled,
        'disabledReason': p.disabled_reason or None,
        'disabledAt': p.disabled_at.isoformat() if p.disabled_at else None,
        'organizationId': p.organization_id,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
        'updatedAt': p.updated_at.isoformat() if p.updated_at else None,
    }


def serialize_status_record(r: PatientStatusRecord) -> dict:
    by = r.created_by
    return {
        'id': r.id,
        'action': r.action,
        'reason': r.reason or None,
        'createdAt': r.created_at.isoformat(),
        'createdBy': ({'id': by.id, 'name': by.get_full_name() or by.username} if by else None),
    }
