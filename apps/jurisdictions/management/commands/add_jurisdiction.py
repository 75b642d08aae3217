"""
Management command to create or rename a jurisdiction.
Usage: python manage.py add_jurisdiction --code 042108001 --name "Poblacion" --city "Bacoor"
"""

from django.core.management.base import BaseCommand, CommandError

from apps.jurisdictions.models import Jurisdiction


class Command(BaseCommand):
    help = 'Create or update a barangay that profiles can be assigned to'

    def add_arguments(self, parser):
        parser.add_argument('--code', required=True, help='PSGC barangay code')
        parser.add_argument('--name', required=True, help='Barangay name')
        parser.add_argument('--city', default='', help='City or municipality name')
        parser.add_argument('--inactive', action='store_true', help='Hide the barangay from signup')

    def handle(self, *args, **options):
        code = options['code'].strip()
        name = options['name'].strip()

        if not code or len(code) > Jurisdiction._meta.get_field('code').max_length:
            raise CommandError(f"Invalid barangay code: {options['code']!r}")
        if not name:
            raise CommandError('Barangay name must not be blank')

        jurisdiction, created = Jurisdiction.objects.update_or_create(
            code=code,
            defaults={
                'name': name,
                'city_municipality_name': options['city'].strip(),
                'is_active': not options['inactive'],
            },
        )

        verb = 'created' if created else 'updated'
        self.stdout.write(self.style.SUCCESS(f"  ✓ Barangay {verb}: {jurisdiction}"))
        if not jurisdiction.is_active:
            self.stdout.write(self.style.WARNING("  ⚠ Barangay is inactive and cannot be chosen at signup"))
