"""
Calendar read model: practitioner columns, events and personal settings.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.models import Appointment, CalendarSettings, _all_weekdays
from clinic.services.appointments import serialize_appointment, status_display, status_tooltip

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_COLOR = '#cfdbff'
WEEKDAYS = _all_weekdays()


def _practitioner_cache_key(organization_id: int, include_colors: bool, include_disabled: bool) -> str:
    return f'practitioners:o={organization_id}:c={int(include_colors)}:d={int(include_disabled)}'


def list_practitioners(organization_id: int, *, include_colors: bool = False, include_disabled: bool = False) -> list:
    """Organization staff, active first, then by first and last name."""
    key = _practitioner_cache_key(organization_id, include_colors, include_disabled)
    data = cache.get(key)
    if data is not None:
        return data
    qs = User.objects.filter(organization_id=organization_id)
    if not include_disabled:
        qs = qs.filter(is_disabled=False)
    if include_colors:
        qs = qs.select_related('calendar_settings')
    data = []
    for u in qs.order_by('is_disabled', 'first_name', 'last_name', 'id'):
        item = {
            'id': u.id,
            'firstName': u.first_name,
            'lastName': u.last_name,
            'name': u.get_full_name() or u.username,
            'role': u.role,
            'isDisabled': u.is_disabled,
        }
        if include_colors:
            cs = getattr(u, 'calendar_settings', None)
            item['color'] = cs.color if cs else DEFAULT_COLOR
        data.append(item)
    cache.set(key, data, settings.CACHE_TTL_PRACTITIONERS)
    return data


def invalidate_practitioner_cache(organization_id: int) -> None:
    cache.delete_many([
        _practitioner_cache_key(organization_id, c, d) for c in (False, True) for d in (False, True)
    ])


def calendar_range(day: date, view: str) -> tuple[datetime, datetime]:
    if view == 'week':
        first = day - timedelta(days=day.weekday())
        last = first + timedelta(days=7)
    elif view == 'month':
        first = day.replace(day=1)
        last = (first + timedelta(days=32)).replace(day=1)
    else:
        first, last = day, day + timedelta(days=1)
    tz = timezone.get_current_timezone()
    return (
        timezone.make_aware(datetime.combine(first, time.min), tz),
        timezone.make_aware(datetime.combine(last, time.min), tz),
    )


def _event(a: Appointment, color: str) -> dict:
    if a.patient:
        title = a.patient.full_name
    else:
        title = a.notes or 'Reservation'
    return {
        'id': a.id,
        'title': title,
        'start': a.start_time.isoformat(),
        'end': a.end_time.isoformat(),
        'resourceId': a.practitioner_id,
        'allDay': False,
        'isReservation': a.is_reservation or a.patient_id is None,
        'color': a.reservation_color or color,
        'statusDisplay': status_display(a.appointment_status),
        'statusTooltip': status_tooltip(a.appointment_status),
        'appointment': serialize_appointment(a),
    }


def calendar_view(organization_id: int, *, day: Optional[date] = None, view: str = 'day',
                  practitioner_ids: Optional[Iterable[int]] = None, include_reservations: bool = True,
                  include_cancelled: bool = False, visible_days: Optional[List[str]] = None) -> dict:
    day = day or timezone.localdate()
    start, end = calendar_range(day, view)
    resources = list_practitioners(organization_id, include_colors=True)
    wanted = set(practitioner_ids or [])
    if wanted:
        resources = [r for r in resources if r['id'] in wanted]
    colors = {r['id']: r['color'] for r in resources}

    qs = (
        Appointment.objects.filter(
            organization_id=organization_id, start_time__gte=start, start_time__lt=end,
            practitioner_id__in=list(colors),
        )
        .select_related('patient', 'practitioner')
        .order_by('start_time', 'id')
    )
    if not include_reservations:
        qs = qs.exclude(is_reservation=True)
    if not include_cancelled:
        qs = qs.exclude(status='CANCELLED')

    days = set(visible_days or WEEKDAYS)
    events = [
        _event(a, colors.get(a.practitioner_id, DEFAULT_COLOR))
        for a in qs
        if WEEKDAYS[timezone.localtime(a.start_time).weekday()] in days
    ]
    return {
        'range': {'start': start.isoformat(), 'end': end.isoformat(), 'view': view},
        'resources': [
            {'resourceId': r['id'], 'resourceTitle': r['name'], 'color': r['color'], 'role': r['role']}
            for r in resources
        ],
        'events': events,
    }


def settings_user_or_404(user, user_id: Optional[str], *, write: bool = False):
    """Resolve whose calendar settings are addressed.

    Any member may read a colleague's settings; changing them is reserved to
    the user themselves and to manager roles.
    """
    if not user_id:
        return user
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError('userId must be an integer')
    if user_id == user.id:
        return user
    if write and not user.is_manager:
        raise PermissionDenied("Only managers can change another user's calendar settings")
    target = User.objects.filter(id=user_id, organization_id=user.organization_id).first()
    if not target:
        raise NotFound('User not found')
    return target


def get_calendar_settings(target) -> dict:
    cs = CalendarSettings.objects.filter(user=target).first()
    return {
        'userId': target.id,
        'color': cs.color if cs else DEFAULT_COLOR,
        'visibleDays': (cs.visible_days if cs and cs.visible_days else WEEKDAYS),
    }


def upsert_calendar_settings(user, data: dict) -> dict:
    defaults = {}
    if 'color' in data:
        defaults['color'] = data['color']
    if 'visibleDays' in data:
        defaults['visible_days'] = [d for d in WEEKDAYS if d in data['visibleDays']]
    CalendarSettings.objects.update_or_create(user=user, defaults=defaults)
    if user.organization_id:
        invalidate_practitioner_cache(user.organization_id)
    logger.info('calendar settings updated for user %s', user.id)
    return get_calendar_settings(user)
