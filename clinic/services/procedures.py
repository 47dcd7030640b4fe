"""
Dental chart documents and the procedures performed on a patient.

Edits and deletions of a procedure leave a :class:`ProcedureBackup`
behind; together with the activity log this is what makes undo/redo
possible (see :mod:`clinic.services.undo`).
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import NotFound

from clinic.exceptions import ToothAlreadyDisabled
from clinic.models import DentalCode, DentalProcedure, Patient, ProcedureBackup, User
from clinic.services.activity import Actions, EntityTypes, log_activity
from clinic.services.periodontal import analyze_periodontal_data_for_scaling, empty_chart

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
WLZ_BILLABLE_CODE = 'U35'
DISABLED_CODE = 'DISABLED'
SEALING_FIRST_CODE = 'V30'
SEALING_NEXT_CODE = 'V35'

# camelCase snapshot key -> model field
SNAPSHOT_FIELDS = (
    ('date', 'date'),
    ('notes', 'notes'),
    ('status', 'status'),
    ('quantity', 'quantity'),
    ('cost', 'cost'),
    ('toothNumber', 'tooth_number'),
    ('practitionerId', 'practitioner_id'),
    ('subSurfaces', 'sub_surfaces'),
    ('fillingMaterial', 'filling_material'),
    ('invoiceEmail', 'invoice_email'),
    ('invoicePrinted', 'invoice_printed'),
    ('isPaid', 'is_paid'),
    ('paidAt', 'paid_at'),
    ('paymentAmount', 'payment_amount'),
    ('paymentMethod', 'payment_method'),
)


def to_decimal(value) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def calculate_procedure_cost(code: DentalCode, patient: Patient, quantity: int = 1, explicit_cost=None) -> Decimal:
    """
    WLZ patients are only billed for U35; otherwise an explicit cost wins,
    then the code rate, then its points at the configured point value.
    """
    if patient.is_long_term_care_act and code.code.upper() != WLZ_BILLABLE_CODE:
        return Decimal('0.00')
    explicit = to_decimal(explicit_cost)
    if explicit is not None:
        return explicit.quantize(CENT, rounding=ROUND_HALF_UP)
    if code.rate is not None:
        unit = Decimal(code.rate)
    elif code.points is not None:
        unit = Decimal(code.points) * Decimal(str(settings.POINT_VALUE_EUR))
    else:
        unit = Decimal('0')
    return (unit * (quantity or 1)).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------
def _iso(dt):
    return dt.isoformat() if dt else None


def _float(d):
    return float(d) if d is not None else None


def procedure_snapshot(p: DentalProcedure) -> dict:
    """JSON-safe copy of a procedure, stored in backups and log details."""
    return {
        'id': p.id,
        'patientId': p.patient_id,
        'codeId': p.code_id,
        'code': p.code.code if p.code_id else None,
        'date': _iso(p.date),
        'notes': p.notes,
        'status': p.status,
        'quantity': p.quantity,
        'cost': _float(p.cost),
        'toothNumber': p.tooth_number,
        'practitionerId': p.practitioner_id,
        'subSurfaces': list(p.sub_surfaces or []),
        'fillingMaterial': p.filling_material,
        'invoiceEmail': p.invoice_email,
        'invoicePrinted': p.invoice_printed,
        'isPaid': p.is_paid,
        'paidAt': _iso(p.paid_at),
        'paymentAmount': _float(p.payment_amount),
        'paymentMethod': p.payment_method or None,
    }


def _field_value(key: str, value):
    if key in ('date', 'paidAt'):
        return parse_datetime(value) if isinstance(value, str) else value
    if key in ('cost', 'paymentAmount'):
        return to_decimal(value)
    if key == 'paymentMethod':
        return value or ''
    if key == 'notes':
        return value or ''
    if key == 'subSurfaces':
        return list(value or [])
    return value


def apply_snapshot(procedure: DentalProcedure, snapshot: Dict[str, Any]) -> DentalProcedure:
    """Copy the restorable fields of a snapshot onto a procedure (not saved)."""
    for key, field in SNAPSHOT_FIELDS:
        if key not in snapshot:
            continue
        value = _field_value(key, snapshot[key])
        if key == 'cost' and value is None:
            value = Decimal('0')
        if key == 'date' and value is None:
            continue
        setattr(procedure, field, value)
    return procedure


def recreate_from_snapshot(snapshot: Dict[str, Any], *, date=None) -> DentalProcedure:
    """Insert a procedure from a snapshot, keeping its id when it is free."""
    proc = DentalProcedure(patient_id=snapshot['patientId'], code_id=snapshot['codeId'])
    apply_snapshot(proc, snapshot)
    if date is not None:
        proc.date = date
    if proc.date is None:
        proc.date = timezone.now()
    if snapshot.get('practitionerId') and not User.objects.filter(id=snapshot['practitionerId']).exists():
        proc.practitioner_id = None
    pid = snapshot.get('id')
    if pid and not DentalProcedure.objects.filter(id=pid).exists():
        proc.id = pid
    proc.save(force_insert=True)
    return proc


def save_backup(organization_id: int, procedure: DentalProcedure, backup_type: str) -> ProcedureBackup:
    """Replace the organization's backup with a snapshot of ``procedure``."""
    ProcedureBackup.objects.filter(organization_id=organization_id).delete()
    return ProcedureBackup.objects.create(
        organization_id=organization_id,
        procedure_id=str(procedure.id),
        backup_type=backup_type,
        data=procedure_snapshot(procedure),
    )


def serialize_backup(b: Optional[ProcedureBackup]) -> Optional[dict]:
    if b is None:
        return None
    return {
        'id': b.id,
        'procedureId': b.procedure_id,
        'backupType': b.backup_type,
        'data': b.data,
        'createdAt': _iso(b.created_at),
    }


def serialize_procedure(p: DentalProcedure) -> dict:
    data = procedure_snapshot(p)
    c = p.code
    data['code'] = {
        'id': c.id, 'code': c.code, 'description': c.description,
        'category': c.category, 'rate': _float(c.rate), 'points': _float(c.points),
    }
    pr = p.practitioner
    data['practitioner'] = (
        {'id': pr.id, 'firstName': pr.first_name, 'lastName': pr.last_name} if pr else None
    )
    data['createdAt'] = _iso(p.created_at)
    data['updatedAt'] = _iso(p.updated_at)
    return data


def list_procedures(patient: Patient) -> List[dict]:
    qs = (
        DentalProcedure.objects.filter(patient=patient)
        .select_related('code', 'practitioner')
        .order_by('date', 'id')
    )
    return [serialize_procedure(p) for p in qs]


def get_procedure_or_404(patient: Patient, procedure_id) -> DentalProcedure:
    proc = DentalProcedure.objects.select_related('code', 'practitioner').filter(
        id=procedure_id, patient=patient
    ).first()
    if not proc:
        raise NotFound('Procedure not found')
    return proc


# ---------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------
def current_periodontal_chart(patient: Patient) -> dict:
    charts = patient.periodontal_charts or []
    return charts[-1] if charts else empty_chart(patient.id)


def get_dental_data(patient: Patient) -> dict:
    return {
        'dentalChart': patient.dental_chart or {'teeth': {}},
        'periodontalChart': current_periodontal_chart(patient),
        'procedures': list_procedures(patient),
    }


def strip_disabled_teeth(chart: Dict[str, Any]) -> Dict[str, Any]:
    chart = dict(chart or {})
    teeth = chart.get('teeth') or {}
    chart['teeth'] = {k: v for k, v in teeth.items() if not (v or {}).get('isDisabled')}
    return chart


def save_dental_data(user, patient: Patient, *, dental_chart=None, periodontal_chart=None, request=None) -> dict:
    """
    Store the dental chart and/or the periodontal chart.

    An explicitly saved periodontal chart becomes a new entry in the chart
    history and yields scaling suggestions; autosaves overwrite the latest
    entry.
    """
    result: Dict[str, Any] = {}
    update_fields = ['updated_at']
    if dental_chart is not None:
        patient.dental_chart = strip_disabled_teeth(dental_chart)
        update_fields.append('dental_chart')
    explicit = False
    if periodontal_chart is not None:
        chart = dict(periodontal_chart)
        explicit = bool(chart.pop('isExplicitlySaved', False))
        chart.setdefault('date', timezone.now().isoformat())
        chart['patientId'] = patient.id
        charts = list(patient.periodontal_charts or [])
        if explicit or not charts:
            charts.append(chart)
        else:
            charts[-1] = chart
        patient.periodontal_charts = charts
        update_fields.append('periodontal_charts')
        if explicit:
            result['scalingSuggestions'] = analyze_periodontal_data_for_scaling(chart.get('teeth') or {})
    patient.save(update_fields=update_fields)

    if dental_chart is not None:
        log_activity(
            user=user, action=Actions.UPDATE_DENTAL_CHART, entity_type=EntityTypes.DENTAL_CHART,
            entity_id=patient.id, patient=patient, request=request, description='Updated dental chart',
        )
    if periodontal_chart is not None and explicit:
        log_activity(
            user=user, action=Actions.UPDATE_PERIODONTAL_CHART, entity_type=EntityTypes.PERIODONTAL_CHART,
            entity_id=patient.id, patient=patient, request=request,
            description='Saved periodontal chart', details={'chartIndex': len(patient.periodontal_charts) - 1},
        )
    result.update({
        'dentalChart': patient.dental_chart or {'teeth': {}},
        'periodontalChart': current_periodontal_chart(patient),
    })
    return result


def paint_filling_zones(patient: Patient, tooth_number, sub_surfaces, material) -> None:
    """Mark restored filling surfaces on the dental chart."""
    if not tooth_number or not sub_surfaces or not material:
        return
    chart = dict(patient.dental_chart or {})
    teeth = dict(chart.get('teeth') or {})
    tooth = dict(teeth.get(str(tooth_number)) or {'zones': {}, 'procedures': []})
    zones = dict(tooth.get('zones') or {})
    for surface in sub_surfaces:
        zones[surface] = f'filling-current-{material}'
    tooth['zones'] = zones
    teeth[str(tooth_number)] = tooth
    chart['teeth'] = teeth
    patient.dental_chart = chart
    patient.save(update_fields=['dental_chart', 'updated_at'])


# ---------------------------------------------------------------------
# Procedure CRUD
# ---------------------------------------------------------------------
def _practitioner(user, practitioner_id) -> Optional[User]:
    if practitioner_id:
        found = User.objects.filter(id=practitioner_id, organization_id=user.organization_id).first()
        if found:
            return found
    return user


def create_procedure(user, patient: Patient, data: Dict[str, Any], *, request=None) -> DentalProcedure:
    code = DentalCode.objects.filter(id=data['codeId']).first()
    if not code:
        raise NotFound('Dental code not found')
    tooth = data.get('toothNumber')
    if code.code == DISABLED_CODE and tooth and DentalProcedure.objects.filter(
        patient=patient, tooth_number=tooth, code=code
    ).exists():
        raise ToothAlreadyDisabled()

    quantity = data.get('quantity') or 1
    proc = DentalProcedure.objects.create(
        patient=patient,
        code=code,
        date=data['date'],
        notes=data.get('notes') or '',
        status=data.get('status') or 'PENDING',
        tooth_number=tooth,
        quantity=quantity,
        cost=calculate_procedure_cost(code, patient, quantity, data.get('cost')),
        practitioner=_practitioner(user, data.get('practitionerId')),
        sub_surfaces=list(data.get('subSurfaces') or []),
        filling_material=data.get('fillingMaterial') or 'composite',
    )
    log_activity(
        user=user, action=Actions.CREATE_DENTAL_PROCEDURE, entity_type=EntityTypes.DENTAL_PROCEDURE,
        entity_id=proc.id, patient=patient, request=request,
        description=f'Created dental procedure {code.code} for patient {patient.id}',
        details={'after': procedure_snapshot(proc), 'source': data.get('source') or 'unknown'},
    )
    return proc


UPDATABLE = (
    ('date', 'date'),
    ('notes', 'notes'),
    ('status', 'status'),
    ('quantity', 'quantity'),
    ('cost', 'cost'),
    ('subSurfaces', 'sub_surfaces'),
    ('fillingMaterial', 'filling_material'),
)


def update_procedure(user, procedure: DentalProcedure, data: Dict[str, Any], *, request=None) -> DentalProcedure:
    before = procedure_snapshot(procedure)
    with transaction.atomic():
        save_backup(user.organization_id, procedure, 'edit')
        for key, field in UPDATABLE:
            if key in data and data[key] is not None:
                setattr(procedure, field, data[key])
        procedure.save()
    after = procedure_snapshot(procedure)
    log_activity(
        user=user, action=Actions.UPDATE_DENTAL_PROCEDURE, entity_type=EntityTypes.DENTAL_PROCEDURE,
        entity_id=procedure.id, patient=procedure.patient, request=request,
        description=f'Updated dental procedure {procedure.id}',
        details={'before': before, 'after': after},
    )
    return procedure


def delete_procedure(user, procedure: DentalProcedure, *, request=None) -> None:
    before = procedure_snapshot(procedure)
    patient = procedure.patient
    with transaction.atomic():
        save_backup(user.organization_id, procedure, 'delete')
        procedure.delete()
    log_activity(
        user=user, action=Actions.DELETE_DENTAL_PROCEDURE, entity_type=EntityTypes.DENTAL_PROCEDURE,
        entity_id=before['id'], patient=patient, request=request,
        description=f"Deleted dental procedure {before['id']}",
        details={'before': before},
    )


def create_scaling_procedures(user, patient: Patient, treatments: List[Dict[str, Any]], *,
                              anesthesia_count: int = 0, status: str = 'PENDING', request=None) -> List[DentalProcedure]:
    """One T021/T022 per selected tooth, plus local anesthesia (A10) injections."""
    wanted = {str(t['code']).upper() for t in treatments}
    if anesthesia_count:
        wanted.add('A10')
    codes = {c.code.upper(): c for c in DentalCode.objects.filter(code__in=list(wanted))}
    missing = wanted - set(codes)
    if missing:
        raise NotFound(f"Dental code(s) not found: {', '.join(sorted(missing))}")

    now = timezone.now()
    created = []
    with transaction.atomic():
        for t in treatments:
            code = codes[str(t['code']).upper()]
            created.append(create_procedure(user, patient, {
                'codeId': code.id,
                'date': now,
                'toothNumber': t['toothNumber'],
                'notes': f'{code.code} scaling',
                'status': status,
                'source': 'scaling-tool',
            }, request=request))
        for _ in range(anesthesia_count or 0):
            created.append(create_procedure(user, patient, {
                'codeId': codes['A10'].id,
                'date': now,
                'notes': 'Local anesthesia',
                'status': status,
                'source': 'scaling-tool',
            }, request=request))
    logger.info('created %d scaling procedures for patient %s', len(created), patient.id)
    return created


def tooth_type(tooth_number: int) -> str:
    position = tooth_number % 10
    if position >= 6:
        return 'molar'
    if position >= 4:
        return 'premolar'
    return 'anterior'


def sealing_surfaces(tooth_number: int) -> List[str]:
    if tooth_type(tooth_number) == 'molar':
        return ['occlusal-1', 'occlusal-2', 'occlusal-3', 'occlusal-4']
    return ['occlusal']


def create_sealing_procedures(user, patient: Patient, tooth_numbers: List[int], *, status: str = 'PENDING',
                              request=None) -> List[DentalProcedure]:
    """
    Fissure sealings for a set of teeth, all stamped with one timestamp so
    they group as one session. The first tooth is billed as V30 unless a V30
    already exists for the patient today; every other tooth is a V35.
    """
    codes = {c.code: c for c in DentalCode.objects.filter(code__in=[SEALING_FIRST_CODE, SEALING_NEXT_CODE])}
    missing = {SEALING_FIRST_CODE, SEALING_NEXT_CODE} - set(codes)
    if missing:
        raise NotFound(f"Dental code(s) not found: {', '.join(sorted(missing))}")

    now = timezone.now()
    has_first = DentalProcedure.objects.filter(
        patient=patient, code__code=SEALING_FIRST_CODE, date__date=timezone.localdate(now),
    ).exists()
    created = []
    with transaction.atomic():
        for tooth in sorted(set(tooth_numbers)):
            first = not has_first
            code = codes[SEALING_FIRST_CODE if first else SEALING_NEXT_CODE]
            created.append(create_procedure(user, patient, {
                'codeId': code.id,
                'date': now,
                'toothNumber': tooth,
                'notes': f"Fissure sealing {'first' if first else 'next'} element",
                'status': status,
                'subSurfaces': sealing_surfaces(tooth),
                'source': 'sealing-tool',
            }, request=request))
            has_first = True
    logger.info('created %d sealing procedures for patient %s', len(created), patient.id)
    return created
