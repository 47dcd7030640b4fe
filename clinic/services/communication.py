"""
Patient email: template lookup, placeholder substitution and delivery.
"""
import logging
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import EmailDeliveryFailed
from clinic.models import EmailTemplate, Organization, Patient
from clinic.services.activity import Actions, EntityTypes, log_activity
from clinic.services.template_library import BUILTIN_TEMPLATES

logger = logging.getLogger(__name__)

DEFAULT_PRACTICE_NAME = 'Our dental practice'


def substitute_placeholders(text: str, patient: Optional[Patient], organization: Optional[Organization]) -> str:
    values = {
        '[Patient First Name]': patient.first_name if patient else '',
        '[Practice Name]': (organization.name if organization else '') or DEFAULT_PRACTICE_NAME,
        '[Practice Phone]': organization.phone if organization else '',
        '[Practice Email]': organization.email if organization else '',
        '[Website]': organization.website if organization else '',
    }
    for placeholder, value in values.items():
        text = text.replace(placeholder, value or '')
    return text


def wrap_body(content: str, patient: Patient, organization: Optional[Organization]) -> str:
    """Add the salutation and practice signature around ``content``.

    Templates that already open with their own salutation are left alone.
    """
    if content.lstrip().startswith('Dear '):
        return content
    name = (organization.name if organization else '') or DEFAULT_PRACTICE_NAME
    address = organization.address if organization else ''
    phone = organization.phone if organization else ''
    return (
        f'Dear {patient.first_name} {patient.last_name},\n\n{content}\n\n'
        f'Best regards,\n{name}\n{address}\n{phone}'
    )


def find_template(organization_id: int, category: str, key: str) -> dict:
    row = EmailTemplate.objects.filter(organization_id=organization_id, category=category, key=key).first()
    if row:
        return {'subject': row.subject, 'content': row.content}
    builtin = BUILTIN_TEMPLATES.get(category, {}).get(key)
    if not builtin:
        raise NotFound(f'Email template {category}/{key} not found')
    return dict(builtin)


def render_email(patient: Patient, *, category: Optional[str] = None, key: Optional[str] = None,
                 subject: Optional[str] = None, content: Optional[str] = None) -> tuple[str, str]:
    organization = patient.organization
    if category and key:
        template = find_template(patient.organization_id, category, key)
        subject = subject or template['subject']
        content = content or template['content']
    if not subject or not content:
        raise ValidationError('Either templateCategory and templateKey or subject and content are required')
    body = wrap_body(substitute_placeholders(content, patient, organization), patient, organization)
    return substitute_placeholders(subject, patient, organization), body


def _matches(search: str, *fields) -> bool:
    return any(search in (f or '').lower() for f in fields)


def list_templates(organization_id: int, search: Optional[str] = None) -> dict:
    """Built-in templates merged with the organization's own, by category then key."""
    search = (search or '').strip().lower()
    merged = {}
    for category, templates in BUILTIN_TEMPLATES.items():
        for key, tpl in templates.items():
            merged.setdefault(category, {})[key] = {**tpl, 'builtIn': True}
    for row in EmailTemplate.objects.filter(organization_id=organization_id).order_by('category', 'key'):
        merged.setdefault(row.category, {})[row.key] = {
            'id': row.id, 'subject': row.subject, 'content': row.content, 'builtIn': False,
        }
    if not search:
        return merged
    filtered = {}
    for category, templates in merged.items():
        hits = {
            key: tpl for key, tpl in templates.items()
            if _matches(search, key, category, tpl['subject'], tpl['content'])
        }
        if hits:
            filtered[category] = hits
    return filtered


def create_template(organization_id: int, data: dict) -> EmailTemplate:
    try:
        with transaction.atomic():
            return EmailTemplate.objects.create(
                organization_id=organization_id,
                category=data['category'].strip(),
                key=data['key'].strip(),
                subject=data['subject'].strip(),
                content=data['content'],
            )
    except IntegrityError:
        raise ValidationError('A template with this category and key already exists')


def serialize_template(tpl: EmailTemplate) -> dict:
    return {
        'id': tpl.id,
        'category': tpl.category,
        'key': tpl.key,
        'subject': tpl.subject,
        'content': tpl.content,
        'createdAt': tpl.created_at.isoformat() if tpl.created_at else None,
    }


def deliver(to_email: str, subject: str, body: str) -> None:
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to_email])
    except Exception as e:
        logger.exception('failed to send email to %s', to_email)
        raise EmailDeliveryFailed(str(e))


def send_patient_email(user, patient: Patient, data: dict, *, request=None) -> dict:
    to_email = patient.email
    if not to_email:
        raise NotFound('Patient not found or missing email address')
    subject, body = render_email(
        patient,
        category=data.get('templateCategory'),
        key=data.get('templateKey'),
        subject=data.get('subject'),
        content=data.get('content'),
    )
    deliver(to_email, subject, body)
    log_activity(
        user=user, action=Actions.SEND_EMAIL, entity_type=EntityTypes.EMAIL, entity_id=patient.id,
        patient=patient, request=request, description=f'Email "{subject}" sent to {to_email}',
        details={
            'to': to_email,
            'subject': subject,
            'templateCategory': data.get('templateCategory'),
            'templateKey': data.get('templateKey'),
        },
    )
    return {'to': to_email, 'subject': subject, 'body': body}
