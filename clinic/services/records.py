"""
Clinical records kept per patient visit: ASA, PPS, recalls, care plan and
the periodic check-up that feeds them.
"""
import json
from typing import Any, Dict

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.models import (
    AsaRecord,
    CarePlan,
    CleaningRecallRecord,
    DentalCode,
    Patient,
    PpsRecord,
    ScreeningRecallRecord,
)
from clinic.services.activity import Actions, EntityTypes, log_activity
from clinic.services.procedures import create_procedure, serialize_procedure


def _by(user):
    return {'id': user.id, 'name': user.get_full_name() or user.username} if user else None


def _log(user, patient, kind, record_id, request):
    log_activity(
        user=user, action=Actions.ADD_CLINICAL_RECORD, entity_type=EntityTypes.CLINICAL_RECORD,
        entity_id=record_id, patient=patient, request=request,
        description=f'Added {kind} record', details={'kind': kind},
    )


def create_asa(user, patient: Patient, data: Dict[str, Any], *, request=None) -> AsaRecord:
    r = AsaRecord.objects.create(
        patient=patient, score=data['score'], notes=data.get('notes') or '',
        date=data.get('date') or timezone.now(), created_by=user,
    )
    _log(user, patient, 'asa', r.id, request)
    return r


def create_pps(user, patient: Patient, data: Dict[str, Any], *, request=None) -> PpsRecord:
    r = PpsRecord.objects.create(
        patient=patient,
        quadrant1=data['quadrant1'], quadrant2=data['quadrant2'],
        quadrant3=data['quadrant3'], quadrant4=data['quadrant4'],
        treatment=data.get('treatment') or '', notes=data.get('notes') or '',
        date=data.get('date') or timezone.now(), created_by=user,
    )
    _log(user, patient, 'pps', r.id, request)
    return r


def recall_notes(notes: str, use_custom_text: bool, custom_text: str) -> str:
    """Custom recall letters keep the text alongside the original notes."""
    if use_custom_text and custom_text:
        return json.dumps({'useCustomText': True, 'customText': custom_text, 'originalNotes': notes or ''})
    return notes or ''


def create_recall(user, patient: Patient, data: Dict[str, Any], *, request=None) -> ScreeningRecallRecord:
    r = ScreeningRecallRecord.objects.create(
        patient=patient,
        screening_months=data['screeningMonths'],
        notes=recall_notes(data.get('notes') or '', data.get('useCustomText', False), data.get('customText') or ''),
        date=data.get('date') or timezone.now(),
        created_by=user,
    )
    _log(user, patient, 'recall', r.id, request)
    return r


def create_cleaning_recall(user, patient: Patient, data: Dict[str, Any], *, request=None) -> CleaningRecallRecord:
    r = CleaningRecallRecord.objects.create(
        patient=patient,
        procedures=list(data.get('procedures') or []),
        interval_months=data['intervalMonths'],
        notes=data.get('notes') or '',
        date=data.get('date') or timezone.now(),
        created_by=user,
    )
    _log(user, patient, 'cleaning-recall', r.id, request)
    return r


def upsert_care_plan(user, patient: Patient, data: Dict[str, Any]) -> CarePlan:
    fields = {
        'care_request': data.get('careRequest'),
        'care_goal': data.get('careGoal'),
        'policy': data.get('policy'),
        'risk_profile': data.get('riskProfile'),
    }
    defaults = {k: v for k, v in fields.items() if v is not None}
    defaults['updated_by'] = user
    plan, _ = CarePlan.objects.update_or_create(patient=patient, defaults=defaults)
    return plan


def serialize_asa(r: AsaRecord) -> dict:
    return {'id': r.id, 'score': r.score, 'notes': r.notes, 'date': r.date.isoformat(), 'createdBy': _by(r.created_by)}


def serialize_pps(r: PpsRecord) -> dict:
    return {
        'id': r.id,
        'quadrant1': r.quadrant1, 'quadrant2': r.quadrant2,
        'quadrant3': r.quadrant3, 'quadrant4': r.quadrant4,
        'treatment': r.treatment, 'notes': r.notes,
        'date': r.date.isoformat(), 'createdBy': _by(r.created_by),
    }


def serialize_recall(r: ScreeningRecallRecord) -> dict:
    return {
        'id': r.id, 'screeningMonths': r.screening_months, 'notes': r.notes,
        'date': r.date.isoformat(), 'createdBy': _by(r.created_by),
    }


def serialize_cleaning_recall(r: CleaningRecallRecord) -> dict:
    return {
        'id': r.id, 'procedures': r.procedures, 'intervalMonths': r.interval_months,
        'notes': r.notes, 'date': r.date.isoformat(), 'createdBy': _by(r.created_by),
    }


def serialize_care_plan(plan) -> dict:
    if plan is None:
        return None
    return {
        'careRequest': plan.care_request,
        'careGoal': plan.care_goal,
        'policy': plan.policy,
        'riskProfile': plan.risk_profile,
        'updatedAt': plan.updated_at.isoformat() if plan.updated_at else None,
    }


def patient_histories(patient: Patient) -> dict:
    """All record histories of a patient, newest first."""
    order = ('-date', '-id')
    plan = CarePlan.objects.filter(patient=patient).first()
    return {
        'asaRecords': [serialize_asa(r) for r in patient.asa_records.select_related('created_by').order_by(*order)],
        'ppsRecords': [serialize_pps(r) for r in patient.pps_records.select_related('created_by').order_by(*order)],
        'screeningRecalls': [serialize_recall(r) for r in patient.screening_recalls.select_related('created_by').order_by(*order)],
        'cleaningRecalls': [serialize_cleaning_recall(r) for r in patient.cleaning_recalls.select_related('created_by').order_by(*order)],
        'carePlan': serialize_care_plan(plan),
    }


CHECKUP_CODE = 'C002'
CHECKUP_RISK_PROFILE = {
    'mucousMembranes': {'status': 'NO_ABNORMALITIES', 'notes': ''},
    'periodontitis': {'status': 'LOW_RISK', 'notes': ''},
    'caries': {'status': 'LOW_RISK', 'notes': ''},
    'wear': {'status': 'LOW_RISK', 'notes': ''},
    'functionProblem': {'status': 'NO', 'notes': ''},
}


def checkup_notes(data: Dict[str, Any]) -> str:
    """Only the findings worth reading back later, joined with ``; ``."""
    g = data.get
    parts = [
        f"Complaints: {g('complaints')}" if g('hasComplaints') and g('complaints') else None,
        f"Health changes: {g('healthChangesDetails')}" if g('healthChanges') and g('healthChangesDetails') else None,
        f"Caries findings: {g('cariesFindings')}" if g('cariesFindings') else None,
        f"Hygiene level: {g('hygieneLevel')}" if g('hygieneLevel') and g('hygieneLevel') != 'GOOD' else None,
        f"Parafunctioning: {g('parafunctioningDetails')}"
        if g('parafunctioning') and g('parafunctioningDetails') else None,
        f"Mucosal abnormalities: {g('mucosalAbnormalitiesDetails')}"
        if g('mucosalAbnormalities') and g('mucosalAbnormalitiesDetails') else None,
        f"Teeth wear: {g('teethWearDetails')}" if g('teethWear') and g('teethWearDetails') else None,
        f"Other findings: {g('otherFindings')}" if g('otherFindings') else None,
        f"Care plan notes: {g('carePlanNotes')}" if g('carePlanNotes') else None,
        f"Other notes: {g('otherNotes')}" if g('otherNotes') else None,
    ]
    return '; '.join(p for p in parts if p)


def record_checkup(user, patient: Patient, data: Dict[str, Any], *, request=None) -> dict:
    """
    Save a periodic check-up in one go: the ASA reassessment, the next
    screening recall, the care plan policy and the C002 procedure itself.
    """
    if data.get('codeId'):
        code = DentalCode.objects.filter(id=data['codeId']).first()
    else:
        code = DentalCode.objects.filter(code=CHECKUP_CODE).first()
    if not code:
        raise NotFound('Dental code not found')

    asa = recall = plan = None
    with transaction.atomic():
        if data.get('asaScore') and data.get('asaNotes'):
            asa = create_asa(user, patient, {'score': data['asaScore'], 'notes': data['asaNotes']}, request=request)
        if data.get('recallTerm'):
            recall = create_recall(user, patient, {
                'screeningMonths': data['recallTerm'],
                'notes': json.dumps({
                    'c002Checkup': True,
                    'additionalAppointments': data.get('additionalAppointments') or '',
                    'carePlanNotes': data.get('carePlanNotes') or '',
                    'otherNotes': data.get('otherNotes') or '',
                }),
            }, request=request)
        if data.get('carePlanNotes'):
            plan = CarePlan.objects.filter(patient=patient).first()
            if plan:
                plan.policy = data['carePlanNotes']
                plan.updated_by = user
                plan.save(update_fields=['policy', 'updated_by', 'updated_at'])
            else:
                plan = CarePlan.objects.create(
                    patient=patient, care_request='C002 Checkup', care_goal='Maintain oral health',
                    policy=data['carePlanNotes'], risk_profile=json.dumps(CHECKUP_RISK_PROFILE), updated_by=user,
                )
        procedure = create_procedure(user, patient, {
            'codeId': code.id,
            'date': timezone.now(),
            'notes': checkup_notes(data),
            'status': 'IN_PROGRESS',
            'quantity': data.get('sessions') or 1,
            'cost': data.get('cost'),
            'practitionerId': user.id,
            'source': 'checkup',
        }, request=request)
    return {
        'dentalProcedure': serialize_procedure(procedure),
        'asaRecord': serialize_asa(asa) if asa else None,
        'recallRecord': serialize_recall(recall) if recall else None,
        'carePlan': serialize_care_plan(plan),
    }
