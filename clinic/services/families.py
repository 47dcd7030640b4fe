"""
Family groups of patients.

Members of a family share ``family_head_code`` (the lowest patient code of
the founding members) and are renumbered ``<head>-<position>``.
"""
import logging
from typing import List, Optional

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Patient
from clinic.services.activity import Actions, EntityTypes, log_activity
from clinic.services.patients import next_patient_code

logger = logging.getLogger(__name__)


def _code_key(code: str):
    return (0, int(code), '') if code.isdigit() else (1, 0, code)


def serialize_member(p: Patient) -> dict:
    return {
        'id': p.id,
        'patientCode': p.patient_code,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'email': p.email or None,
        'phone': p.phone or None,
        'familyHeadCode': p.family_head_code or None,
        'familyPosition': p.family_position,
    }


def list_families(organization_id: int) -> dict:
    groups = {}
    individuals = []
    qs = (
        Patient.objects.filter(organization_id=organization_id, is_disabled=False)
        .order_by('family_head_code', 'family_position', 'patient_code')
    )
    for p in qs:
        if p.family_head_code:
            groups.setdefault(p.family_head_code, []).append(serialize_member(p))
        else:
            individuals.append(serialize_member(p))
    return {
        'familyGroups': [{'familyHeadCode': code, 'patients': members} for code, members in groups.items()],
        'individualPatients': individuals,
        'totalFamilies': len(groups),
        'totalIndividuals': len(individuals),
    }


def _renumber(members: List[Patient], head_code: str) -> None:
    # two passes keep the per-organization code constraint satisfied while codes shift
    for p in members:
        p.patient_code = f'{head_code}-tmp-{p.id}'
        p.save(update_fields=['patient_code', 'updated_at'])
    for position, p in enumerate(members, start=1):
        p.patient_code = f'{head_code}-{position}'
        p.family_head_code = head_code
        p.family_position = position
        p.save(update_fields=['patient_code', 'family_head_code', 'family_position', 'updated_at'])


def create_family(user, organization_id: int, patient_codes: List[str], *, request=None) -> dict:
    codes = list(dict.fromkeys(str(c).strip() for c in patient_codes))
    if len(codes) < 2:
        raise ValidationError('At least 2 patient codes are required to create a family')
    patients = list(
        Patient.objects.filter(organization_id=organization_id, patient_code__in=codes, is_disabled=False)
    )
    if len(patients) != len(codes):
        found = {p.patient_code for p in patients}
        raise NotFound(f"Patient code(s) not found: {', '.join(c for c in codes if c not in found)}")
    if any(p.family_head_code for p in patients):
        raise ValidationError('Some patients are already in families')

    patients.sort(key=lambda p: _code_key(p.patient_code))
    head_code = patients[0].patient_code
    with transaction.atomic():
        _renumber(patients, head_code)
    logger.info('family %s created with %d members in organization %s', head_code, len(patients), organization_id)
    log_activity(
        user=user, action=Actions.UPDATE_FAMILY, entity_type=EntityTypes.PATIENT, entity_id=head_code,
        request=request, description=f'Created family {head_code} with {len(patients)} members',
        details={'familyHeadCode': head_code, 'patientIds': [p.id for p in patients]},
    )
    return {'familyHeadCode': head_code, 'membersCount': len(patients),
            'patients': [serialize_member(p) for p in patients]}


def _members(organization_id: int, head_code: str) -> List[Patient]:
    return list(
        Patient.objects.filter(organization_id=organization_id, family_head_code=head_code)
        .order_by('family_position', 'id')
    )


def add_family_member(user, organization_id: int, head_code: str, patient_code: str, *, request=None) -> dict:
    members = _members(organization_id, head_code)
    if not members:
        raise NotFound('Family not found')
    patient = Patient.objects.filter(
        organization_id=organization_id, patient_code=patient_code, is_disabled=False, family_head_code='',
    ).first()
    if not patient:
        raise NotFound('Patient not found or already in a family')
    position = max(m.family_position or 0 for m in members) + 1
    patient.patient_code = f'{head_code}-{position}'
    patient.family_head_code = head_code
    patient.family_position = position
    patient.save(update_fields=['patient_code', 'family_head_code', 'family_position', 'updated_at'])
    log_activity(
        user=user, action=Actions.UPDATE_FAMILY, entity_type=EntityTypes.PATIENT, entity_id=patient.id,
        patient=patient, request=request, description=f'Added patient {patient.id} to family {head_code}',
        details={'familyHeadCode': head_code, 'previousCode': patient_code},
    )
    return serialize_member(patient)


def _detach(p: Patient, head_code: str) -> None:
    p.patient_code = head_code if p.family_position == 1 else next_patient_code(p.organization_id)
    p.family_head_code = ''
    p.family_position = None
    p.save(update_fields=['patient_code', 'family_head_code', 'family_position', 'updated_at'])


def remove_from_family(user, organization_id: int, head_code: str, patient_code: Optional[str] = None, *,
                       request=None) -> dict:
    """
    Take one member out of the family, or dissolve it when no ``patient_code``
    is given. The founding member gets the head code back; other leavers get
    a fresh patient code.
    """
    members = _members(organization_id, head_code)
    if not members:
        raise NotFound('Family not found')
    with transaction.atomic():
        if patient_code:
            leaver = next((m for m in members if m.patient_code == patient_code), None)
            if not leaver:
                raise NotFound('Patient not found in family')
            remaining = [m for m in members if m.id != leaver.id]
            # the head code stays with the remaining members
            if leaver.family_position == 1 and remaining:
                leaver.family_position = None
            _detach(leaver, head_code)
            if remaining:
                _renumber(remaining, head_code)
            reverted = [leaver]
        else:
            for m in members:
                _detach(m, head_code)
            reverted = members
    log_activity(
        user=user, action=Actions.UPDATE_FAMILY, entity_type=EntityTypes.PATIENT, entity_id=head_code,
        request=request, description=f'Removed {len(reverted)} member(s) from family {head_code}',
        details={'familyHeadCode': head_code, 'patientIds': [m.id for m in reverted]},
    )
    return {'familyHeadCode': head_code, 'membersReverted': len(reverted),
            'patients': [serialize_member(m) for m in reverted]}
