import json

from django.core.management.base import BaseCommand, CommandError

from clinic.services.dental_codes import upsert_codes


class Command(BaseCommand):
    help = "Insert or update dental codes from a JSON file (a list of code objects)."

    def add_arguments(self, parser):
        parser.add_argument('path', help='JSON file with [{"code", "description", "category", ...}]')

    def handle(self, *args, **options):
        try:
            with open(options['path'], encoding='utf-8') as fh:
                items = json.load(fh)
        except (OSError, ValueError) as e:
            raise CommandError(f"Cannot read {options['path']}: {e}")
        if isinstance(items, dict):
            items = items.get('codes') or []
        if not isinstance(items, list):
            raise CommandError('Expected a list of dental codes')
        created, updated = upsert_codes(items)
        self.stdout.write(self.style.SUCCESS(f"Dental codes imported: {created} created, {updated} updated"))
