import logging
from typing import Iterable

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)


def calendar_group(organization_id) -> str:
    return f"calendar.{organization_id}"


def broadcast_calendar_change(organization_id, action: str, appointment_ids: Iterable = ()) -> None:
    """Tell connected calendars of the organization to refetch."""
    channel_layer = get_channel_layer()
    if channel_layer is None or not organization_id:
        return
    event = {
        "type": "calendar.changed",
        "action": action,
        "appointmentIds": [int(i) for i in appointment_ids],
        "ts": timezone.now().isoformat(),
    }
    try:
        async_to_sync(channel_layer.group_send)(calendar_group(organization_id), event)
    except Exception:
        # a broken channel layer must not fail the write that triggered it
        logger.warning("calendar broadcast failed for organization %s", organization_id, exc_info=True)
