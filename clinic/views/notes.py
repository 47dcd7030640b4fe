from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from clinic.models import NoteFolder
from clinic.permissions import IsOrganizationMember
from clinic.serializers.notes import NoteCreateSerializer, NoteFolderSerializer, NoteUpdateSerializer
from clinic.services.notes import (
    create_note,
    delete_folder,
    delete_note,
    ordered_notes,
    serialize_folder,
    serialize_note,
    update_note,
)
from clinic.services.patients import get_patient_or_404


def _int_param(request, name):
    raw = request.query_params.get(name)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: f'{name} is required'})


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([IsOrganizationMember])
def notes(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'POST':
        s = NoteCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        note = create_note(request.user, patient, s.validated_data, request=request)
        return Response({'ok': True, 'data': serialize_note(note)}, status=201)
    if request.method == 'PUT':
        s = NoteUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        note = update_note(request.user, patient, s.validated_data, request=request)
        return Response({'ok': True, 'data': serialize_note(note)})
    if request.method == 'DELETE':
        delete_note(request.user, patient, _int_param(request, 'noteId'), request=request)
        return Response(status=204)
    return Response({'ok': True, 'data': [serialize_note(n) for n in ordered_notes(patient)]})


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsOrganizationMember])
def note_folders(request, pk: int):
    patient = get_patient_or_404(request.user, pk)
    if request.method == 'POST':
        s = NoteFolderSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        folder = NoteFolder.objects.create(patient=patient, **s.validated_data)
        return Response({'ok': True, 'data': serialize_folder(folder)}, status=201)
    if request.method == 'DELETE':
        delete_folder(patient, _int_param(request, 'folderId'))
        return Response(status=204)
    folders = NoteFolder.objects.filter(patient=patient).order_by('name', 'id')
    return Response({'ok': True, 'data': [serialize_folder(f) for f in folders]})
