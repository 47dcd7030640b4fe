import bleach
from rest_framework import serializers

NOTE_TAGS = ['b', 'strong', 'i', 'em', 'u', 'p', 'br', 'ul', 'ol', 'li', 'span']


def clean_note_content(v: str) -> str:
    return bleach.clean((v or '').strip(), tags=NOTE_TAGS, attributes={}, strip=True)


class NoteCreateSerializer(serializers.Serializer):
    content = serializers.CharField()
    folderId = serializers.IntegerField(required=False, allow_null=True)
    isPinned = serializers.BooleanField(required=False, default=False)
    pinOrder = serializers.IntegerField(required=False, allow_null=True)

    def validate_content(self, v):
        v = clean_note_content(v)
        if not v:
            raise serializers.ValidationError('Note content is required')
        return v


class NoteUpdateSerializer(serializers.Serializer):
    noteId = serializers.IntegerField()
    content = serializers.CharField(required=False)
    folderId = serializers.IntegerField(required=False, allow_null=True)
    isPinned = serializers.BooleanField(required=False)
    pinOrder = serializers.IntegerField(required=False, allow_null=True)

    def validate_content(self, v):
        v = clean_note_content(v)
        if not v:
            raise serializers.ValidationError('Note content cannot be empty')
        return v


class NoteFolderSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    color = serializers.RegexField(r'^#[0-9a-fA-F]{3,8}$', required=False)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)
