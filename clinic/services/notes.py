from typing import Any, Dict

from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.models import Note, NoteFolder, Patient
from clinic.services.activity import Actions, EntityTypes, log_activity


def ordered_notes(patient: Patient):
    """Pinned notes first (by pin order), then newest first."""
    return (
        Note.objects.filter(patient=patient)
        .select_related('created_by', 'folder')
        .order_by('-is_pinned', F('pin_order').asc(nulls_last=True), '-created_at', '-id')
    )


def _folder_or_404(patient: Patient, folder_id):
    if folder_id is None:
        return None
    folder = NoteFolder.objects.filter(id=folder_id, patient=patient).first()
    if not folder:
        raise NotFound('Folder not found')
    return folder


def create_note(user, patient: Patient, data: Dict[str, Any], *, request=None) -> Note:
    now = timezone.now()
    note = Note.objects.create(
        patient=patient,
        folder=_folder_or_404(patient, data.get('folderId')),
        content=data['content'],
        is_pinned=data.get('isPinned', False),
        pin_order=data.get('pinOrder'),
        created_by=user,
        updated_at=now,
    )
    log_activity(
        user=user, action=Actions.ADD_PATIENT_NOTE, entity_type=EntityTypes.NOTE, entity_id=note.id,
        patient=patient, request=request, description='Added note',
    )
    return note


def update_note(user, patient: Patient, data: Dict[str, Any], *, request=None) -> Note:
    note = Note.objects.filter(id=data['noteId'], patient=patient).first()
    if not note:
        raise NotFound('Note not found')
    if 'content' in data and data['content'] != note.content:
        note.content = data['content']
        note.updated_at = timezone.now()
    if 'folderId' in data:
        note.folder = _folder_or_404(patient, data['folderId'])
    if 'isPinned' in data:
        note.is_pinned = data['isPinned']
    if 'pinOrder' in data:
        note.pin_order = data['pinOrder']
    note.save()
    log_activity(
        user=user, action=Actions.UPDATE_PATIENT_NOTE, entity_type=EntityTypes.NOTE, entity_id=note.id,
        patient=patient, request=request, description='Updated note',
    )
    return note


def delete_note(user, patient: Patient, note_id, *, request=None) -> None:
    deleted, _ = Note.objects.filter(id=note_id, patient=patient).delete()
    if not deleted:
        raise NotFound('Note not found')
    log_activity(
        user=user, action=Actions.DELETE_PATIENT_NOTE, entity_type=EntityTypes.NOTE, entity_id=note_id,
        patient=patient, request=request, description='Deleted note',
    )


def delete_folder(patient: Patient, folder_id) -> None:
    folder = _folder_or_404(patient, folder_id)
    # notes survive with no folder
    Note.objects.filter(folder=folder).update(folder=None)
    folder.delete()


def serialize_note(n: Note) -> dict:
    by = n.created_by
    return {
        'id': n.id,
        'content': n.content,
        'folderId': n.folder_id,
        'isPinned': n.is_pinned,
        'pinOrder': n.pin_order,
        'createdAt': n.created_at.isoformat(),
        'updatedAt': n.updated_at.isoformat(),
        'createdBy': ({'id': by.id, 'name': by.get_full_name() or by.username} if by else None),
    }


def serialize_folder(f: NoteFolder) -> dict:
    return {'id': f.id, 'name': f.name, 'color': f.color, 'createdAt': f.created_at.isoformat()}
