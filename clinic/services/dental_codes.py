"""
Lookup and maintenance of the dental billing code table.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Q

from clinic.models import DentalCode

logger = logging.getLogger(__name__)

ALL_CODES_CACHE_KEY = 'dental-codes:all'
SINGLE_CHAR_LIMIT = 500
SEARCH_LIMIT = 100


def serialize_code(c: DentalCode) -> dict:
    return {
        'id': c.id,
        'code': c.code,
        'description': c.description,
        'category': c.category,
        'section': c.section,
        'subSection': c.sub_section,
        'patientType': c.patient_type,
        'points': float(c.points) if c.points is not None else None,
        'rate': float(c.rate) if c.rate is not None else None,
        'requirements': c.requirements or {},
    }


def all_codes() -> list:
    data = cache.get(ALL_CODES_CACHE_KEY)
    if data is None:
        data = [serialize_code(c) for c in DentalCode.objects.order_by('code')]
        cache.set(ALL_CODES_CACHE_KEY, data, settings.CACHE_TTL_CODES)
    return data


def search_codes(search: Optional[str]) -> list:
    """
    Empty search returns the whole table. A single character matches code
    prefixes only; longer terms also match the description.
    """
    term = (search or '').strip()
    if not term:
        return all_codes()
    if len(term) == 1:
        qs = DentalCode.objects.filter(code__istartswith=term).order_by('code')[:SINGLE_CHAR_LIMIT]
    else:
        qs = DentalCode.objects.filter(
            Q(code__istartswith=term) | Q(description__icontains=term)
        ).order_by('code')[:SEARCH_LIMIT]
    return [serialize_code(c) for c in qs]


def invalidate_code_cache() -> None:
    cache.delete(ALL_CODES_CACHE_KEY)


def _decimal_or_none(value) -> Optional[Decimal]:
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _code_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'description': item.get('description', ''),
        'category': item.get('category', ''),
        'section': item.get('section', ''),
        'sub_section': item.get('subSection', item.get('sub_section', '')),
        'patient_type': item.get('patientType', item.get('patient_type', '')),
        'points': _decimal_or_none(item.get('points')),
        'rate': _decimal_or_none(item.get('rate')),
        'requirements': item.get('requirements') or {},
    }


def create_code(data: Dict[str, Any]) -> DentalCode:
    code = DentalCode.objects.create(code=data['code'], **_code_fields(data))
    invalidate_code_cache()
    return code


def upsert_codes(items: Iterable[Dict[str, Any]]) -> tuple[int, int]:
    """Insert or update codes by their ``code``; returns (created, updated)."""
    created = updated = 0
    with transaction.atomic():
        for item in items:
            code = (item.get('code') or '').strip()
            if not code:
                logger.warning('skipping dental code without code: %r', item)
                continue
            _, was_created = DentalCode.objects.update_or_create(code=code, defaults=_code_fields(item))
            if was_created:
                created += 1
            else:
                updated += 1
    invalidate_code_cache()
    return created, updated
