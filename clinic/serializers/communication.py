import html

import bleach
from rest_framework import serializers


def plain_text(value: str) -> str:
    """Strip markup from text that is mailed as plain text, keeping ``&`` and ``<`` literal."""
    return html.unescape(bleach.clean(value or '', tags=set(), strip=True))


class EmailTemplateSerializer(serializers.Serializer):
    category = serializers.CharField(max_length=100)
    key = serializers.SlugField(max_length=100)
    subject = serializers.CharField(max_length=255)
    content = serializers.CharField()

    def validate_subject(self, v):
        return plain_text(v).strip()

    def validate_content(self, v):
        return plain_text(v)


class PatientEmailSerializer(serializers.Serializer):
    templateCategory = serializers.CharField(required=False, allow_blank=True)
    templateKey = serializers.CharField(required=False, allow_blank=True)
    subject = serializers.CharField(required=False, allow_blank=True, max_length=255)
    content = serializers.CharField(required=False, allow_blank=True)

    def validate_subject(self, v):
        return plain_text(v)

    def validate_content(self, v):
        return plain_text(v)

    def validate(self, attrs):
        has_template = attrs.get('templateCategory') and attrs.get('templateKey')
        has_body = attrs.get('subject') and attrs.get('content')
        if not (has_template or has_body):
            raise serializers.ValidationError(
                'Either templateCategory and templateKey or subject and content are required'
            )
        return attrs
