"""Management command to expire lapsed background checks."""

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count
from django.utils import timezone
from django.utils.dateparse import parse_date

from django_volunteers.models import BackgroundCheckStatus, Volunteer
from django_volunteers.services import expire_background_checks


class Command(BaseCommand):
    help = 'Mark cleared background checks past their expiry date as EXPIRED'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many checks would expire without changing anything'
        )
        parser.add_argument(
            '--date',
            default=None,
            help='Treat this ISO date as today (default: today)'
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        today = timezone.localdate()
        if options['date']:
            today = parse_date(options['date'])
            if today is None:
                raise CommandError(f"Invalid date '{options['date']}', expected YYYY-MM-DD")

        count = expire_background_checks(today=today, dry_run=dry_run)

        if dry_run:
            self.stdout.write(
                f'Would expire {count} background checks (expiry before {today})'
            )
            # Show breakdown by organization
            breakdown = (
                Volunteer.objects
                .filter(
                    background_check_status=BackgroundCheckStatus.CLEARED,
                    background_check_expiry__lt=today,
                )
                .values('organization__slug')
                .annotate(total=Count('id'))
                .order_by('organization__slug')
            )
            for row in breakdown:
                self.stdout.write(f"  - {row['organization__slug']}: {row['total']}")
        else:
            self.stdout.write(
                self.style.SUCCESS(f'Expired {count} background checks')
            )
