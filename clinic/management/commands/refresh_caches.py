from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import Organization
from clinic.realtime.events import broadcast_calendar_change
from clinic.services.calendar import invalidate_practitioner_cache, list_practitioners
from clinic.services.dental_codes import all_codes, invalidate_code_cache


class Command(BaseCommand):
    help = "Warm the dental code and practitioner caches; broadcast a calendar refresh."

    def handle(self, *args, **options):
        now = timezone.now()
        refreshed = 0

        invalidate_code_cache()
        all_codes()
        refreshed += 1

        org_ids = list(Organization.objects.values_list('id', flat=True))
        for org_id in org_ids:
            invalidate_practitioner_cache(org_id)
            for include_colors in (False, True):
                list_practitioners(org_id, include_colors=include_colors)
                refreshed += 1
            broadcast_calendar_change(org_id, 'refresh')

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed {refreshed} cache entries for {len(org_ids)} organization(s) at {now}"
        ))
