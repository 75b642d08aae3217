"""
List Supabase identities created by signup whose profile was never written.
Usage: python manage.py list_orphaned_identities [--older-than-hours 24]
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.accounts.store import ProfileStore


class Command(BaseCommand):
    help = 'List identities whose registration never completed (report only)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--older-than-hours', type=int,
            default=settings.REGISTRATION['ORPHAN_AGE_HOURS'],
            help='Only report registrations older than this many hours',
        )

    def handle(self, *args, **options):
        hours = options['older_than_hours']
        if hours < 0:
            raise CommandError('--older-than-hours must not be negative')

        stale = ProfileStore().stale_registrations(hours)
        count = stale.count()

        if count == 0:
            self.stdout.write(self.style.SUCCESS(
                f"No uncompleted registrations older than {hours}h found."
            ))
            return

        self.stdout.write(f"Found {count} uncompleted registrations older than {hours}h:")

        now = timezone.now()
        for registration in stale:
            age_hours = (now - registration.created_at).total_seconds() / 3600
            self.stdout.write(
                f"  - {registration.email} (identity: {registration.identity_id}, age: {age_hours:.1f}h)"
            )

        self.stdout.write(
            "\nThese identities exist in Supabase Auth without a profile. "
            "A signup retried with the same email and password resumes them; "
            "otherwise remove them from the Supabase dashboard."
        )
