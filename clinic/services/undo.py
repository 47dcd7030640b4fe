"""
Undo/redo of dental procedure changes.

Undo consumes the caller's latest procedure log entry and reverts it,
leaving an ``UNDO_*`` entry that remembers the original entry. Redo
consumes the newest unprocessed ``UNDO_*`` entry and re-applies the
original change.
"""
import logging
import re
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import NotFound

from clinic.exceptions import AlreadyProcessed, ClinicError, NoActionToUndo, NoBackupFound, UnsupportedUndoAction
from clinic.models import ActivityLog, DentalCode, DentalProcedure, Patient, ProcedureBackup
from clinic.services.activity import Actions, EntityTypes, log_activity, serialize_log
from clinic.services.procedures import (
    SEALING_FIRST_CODE,
    SEALING_NEXT_CODE,
    apply_snapshot,
    paint_filling_zones,
    procedure_snapshot,
    recreate_from_snapshot,
    save_backup,
    serialize_backup,
    serialize_procedure,
)

logger = logging.getLogger(__name__)

REDO_MARKER = '[REDO_PROCESSED]'
UNDO_ACTIONS = (
    Actions.UNDO_CREATE_DENTAL_PROCEDURE,
    Actions.UNDO_CREATE_BRIDGE_PROCEDURES,
    Actions.UNDO_UPDATE_DENTAL_PROCEDURE,
    Actions.UNDO_DELETE_DENTAL_PROCEDURE,
)

BRIDGE_ID_PATTERNS = (
    re.compile(r'bridge[- ]([^\s]+)', re.IGNORECASE),
    re.compile(r'BRIDGE-bridge-([^\s]+)', re.IGNORECASE),
    re.compile(r'BRIDGE-bridge-bridge-([^\s]+)', re.IGNORECASE),
)


class NoUndoToRedo(ClinicError):
    default_detail = 'No actions to redo.'
    default_code = 'NO_UNDO_LOG'


class NoOriginalData(ClinicError):
    default_detail = 'No original data found for redo.'
    default_code = 'NO_ORIGINAL_DATA'


def extract_bridge_id(notes: Optional[str]) -> Optional[str]:
    """Bridge procedures carry their bridge id in the notes."""
    if not notes or 'bridge' not in notes.lower():
        return None
    for pattern in BRIDGE_ID_PATTERNS:
        m = pattern.search(notes)
        if m:
            bridge_id = m.group(1)
            # "BRIDGE-bridge-<id>" matches the first pattern with a "bridge-" prefix left over
            while bridge_id.lower().startswith('bridge-'):
                bridge_id = bridge_id[len('bridge-'):]
            return bridge_id
    return None


def bridge_procedures(patient_id, bridge_id: str):
    q = Q()
    for variant in (f'bridge-{bridge_id}', f'bridge {bridge_id}', f'BRIDGE-{bridge_id}',
                    f'BRIDGE-bridge-{bridge_id}', f'BRIDGE-bridge-bridge-{bridge_id}'):
        q |= Q(notes__contains=variant)
    return DentalProcedure.objects.filter(patient_id=patient_id).filter(q).select_related('code')


def _latest_procedure_log(user, entity_id: Optional[str]) -> Optional[ActivityLog]:
    base = ActivityLog.objects.filter(
        user=user, organization_id=user.organization_id, entity_type=EntityTypes.DENTAL_PROCEDURE,
    ).order_by('-created_at', '-id')
    log = None
    if entity_id:
        log = base.filter(entity_id=str(entity_id)).first()
    return log or base.first()


def _org_backup(user, log: ActivityLog, backup_type: str, error_code: str) -> ProcedureBackup:
    backup = ProcedureBackup.objects.filter(
        organization_id=user.organization_id, procedure_id=log.entity_id, backup_type=backup_type,
    ).first()
    if not backup:
        raise NoBackupFound(f'No backup found for {backup_type}ed procedure', code=error_code)
    return backup


def undo_last_action(user, entity_id: Optional[str] = None, *, request=None) -> dict:
    last = _latest_procedure_log(user, entity_id)
    if not last:
        raise NoActionToUndo()

    backup = None
    deleted = []
    result = None
    with transaction.atomic():
        if last.action == Actions.CREATE_DENTAL_PROCEDURE:
            proc = DentalProcedure.objects.select_related('code').filter(id=last.entity_id).first()
            if not proc:
                raise NotFound('Procedure not found for undo (add)')
            undo_action = Actions.UNDO_CREATE_DENTAL_PROCEDURE
            group = [proc]
            bridge_id = extract_bridge_id(proc.notes)
            if bridge_id:
                members = list(bridge_procedures(proc.patient_id, bridge_id))
                if len(members) > 1:
                    group = members
                    undo_action = Actions.UNDO_CREATE_BRIDGE_PROCEDURES
            deleted = [procedure_snapshot(p) for p in group]
            DentalProcedure.objects.filter(id__in=[p.id for p in group]).delete()
            result = {'deleted': [d['id'] for d in deleted]}

        elif last.action == Actions.DELETE_DENTAL_PROCEDURE:
            backup_obj = _org_backup(user, last, 'delete', 'NO_BACKUP_DELETE')
            backup = serialize_backup(backup_obj)
            restored = recreate_from_snapshot(backup_obj.data)
            if restored.sub_surfaces and restored.filling_material:
                paint_filling_zones(restored.patient, restored.tooth_number, restored.sub_surfaces, restored.filling_material)
            ProcedureBackup.objects.filter(organization_id=user.organization_id).delete()
            undo_action = Actions.UNDO_DELETE_DENTAL_PROCEDURE
            result = serialize_procedure(restored)

        elif last.action == Actions.UPDATE_DENTAL_PROCEDURE:
            backup_obj = _org_backup(user, last, 'edit', 'NO_BACKUP_EDIT')
            backup = serialize_backup(backup_obj)
            proc = DentalProcedure.objects.select_related('code', 'practitioner').filter(id=last.entity_id).first()
            if not proc:
                raise NotFound('Procedure not found for undo (edit)')
            apply_snapshot(proc, backup_obj.data)
            proc.save()
            if proc.sub_surfaces and proc.filling_material:
                paint_filling_zones(proc.patient, proc.tooth_number, proc.sub_surfaces, proc.filling_material)
            ProcedureBackup.objects.filter(organization_id=user.organization_id).delete()
            undo_action = Actions.UNDO_UPDATE_DENTAL_PROCEDURE
            result = serialize_procedure(proc)

        else:
            raise UnsupportedUndoAction(f'Unsupported action for undo: {last.action}')

        original = serialize_log(last)
        patient = Patient.objects.filter(id=last.patient_id).first() if last.patient_id else None
        last.delete()

    log_activity(
        user=user, action=undo_action, entity_type=EntityTypes.DENTAL_PROCEDURE, entity_id=original['entityId'],
        patient=patient, request=request, description=f"Undo action: {original['action']}",
        details={'originalLog': original, 'backup': backup, 'deleted': deleted},
    )
    logger.info('undo %s by user %s', original['action'], user.id)
    return {'success': True, 'action': undo_action, 'result': result}


def _sealing_date(snapshot: dict):
    """A redone V35 sealing reuses the date of a same-day V30 so both group together."""
    code = DentalCode.objects.filter(id=snapshot.get('codeId')).first()
    if not code or code.code != SEALING_NEXT_CODE:
        return None
    when = parse_datetime(snapshot.get('date') or '')
    if not when:
        return None
    v30 = DentalProcedure.objects.filter(
        patient_id=snapshot['patientId'], code__code=SEALING_FIRST_CODE, date__date=timezone.localdate(when),
    ).order_by('date').first()
    return v30.date if v30 else None


def redo_last_undo(user, *, request=None) -> dict:
    with transaction.atomic():
        undo_log = (
            ActivityLog.objects.select_for_update()
            .filter(user=user, organization_id=user.organization_id, action__in=UNDO_ACTIONS)
            .exclude(description__contains=REDO_MARKER)
            .order_by('-created_at', '-id')
            .first()
        )
        if not undo_log:
            raise NoUndoToRedo()
        marked = (
            ActivityLog.objects.filter(id=undo_log.id)
            .exclude(description__contains=REDO_MARKER)
            .update(description=f'{undo_log.description} {REDO_MARKER}')
        )
        if marked == 0:
            raise AlreadyProcessed()

        details = undo_log.details or {}
        original = details.get('originalLog') or {}
        original_details = original.get('details') or {}

        if undo_log.action in (Actions.UNDO_CREATE_DENTAL_PROCEDURE, Actions.UNDO_CREATE_BRIDGE_PROCEDURES):
            snapshots = details.get('deleted') or []
            if not snapshots and original_details.get('after'):
                snapshots = [original_details['after']]
            if not snapshots:
                raise NoOriginalData()
            created = [recreate_from_snapshot(s, date=_sealing_date(s)) for s in snapshots]
            redo_action = Actions.CREATE_DENTAL_PROCEDURE
            primary = next((p for p in created if str(p.id) == str(undo_log.entity_id)), created[0])
            entity_id = primary.id
            log_details = {'after': procedure_snapshot(primary), 'redoOf': undo_log.action}
            result = [serialize_procedure(p) for p in created]

        elif undo_log.action == Actions.UNDO_DELETE_DENTAL_PROCEDURE:
            proc = DentalProcedure.objects.select_related('code').filter(id=undo_log.entity_id).first()
            if not proc:
                raise NotFound('Procedure not found for redo')
            before = procedure_snapshot(proc)
            save_backup(user.organization_id, proc, 'delete')
            proc.delete()
            redo_action = Actions.DELETE_DENTAL_PROCEDURE
            entity_id = before['id']
            log_details = {'before': before, 'redoOf': undo_log.action}
            result = before

        elif undo_log.action == Actions.UNDO_UPDATE_DENTAL_PROCEDURE:
            after = original_details.get('after')
            if not after:
                raise NoOriginalData()
            proc = DentalProcedure.objects.select_related('code', 'practitioner').filter(id=undo_log.entity_id).first()
            if not proc:
                raise NotFound('Procedure not found for redo')
            before = procedure_snapshot(proc)
            save_backup(user.organization_id, proc, 'edit')
            apply_snapshot(proc, after)
            proc.save()
            redo_action = Actions.UPDATE_DENTAL_PROCEDURE
            entity_id = proc.id
            log_details = {'before': before, 'after': procedure_snapshot(proc), 'redoOf': undo_log.action}
            result = serialize_procedure(proc)

        else:
            raise UnsupportedUndoAction()

        patient = Patient.objects.filter(id=undo_log.patient_id).first() if undo_log.patient_id else None
        undo_action = undo_log.action
        undo_log.delete()

    log_activity(
        user=user, action=redo_action, entity_type=EntityTypes.DENTAL_PROCEDURE, entity_id=entity_id,
        patient=patient, request=request, description=f'Redo action: {undo_action}', details=log_details,
    )
    return {'success': True, 'action': redo_action, 'result': result}
