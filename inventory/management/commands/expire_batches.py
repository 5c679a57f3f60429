"""
Expiry sweep for ingredient batches

Usage:
    django-admin expire_batches                      # Sweep as of today
    django-admin expire_batches --date 2026-03-01    # Sweep as of a given date
    django-admin expire_batches --force              # Sweep even if auto-expire is off
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Mark active ingredient batches past their expiry date as expired'

    def add_arguments(self, parser):
        parser.add_argument('--date', metavar='YYYY-MM-DD', help='Sweep as of this date (default: today)')
        parser.add_argument('--force', action='store_true', help='Run even if auto_expire_batches is disabled')

    def handle(self, *args, **options):
        from inventory.services import StockMovementService, InventorySettingsService, ServiceError

        as_of = None
        if options['date']:
            try:
                as_of = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid date '{options['date']}', expected YYYY-MM-DD")

        if not options['force'] and not InventorySettingsService.is_auto_expire_enabled():
            self.stdout.write(self.style.WARNING('auto_expire_batches is disabled, nothing to do (use --force)'))
            return

        try:
            expired = StockMovementService.expire_batches(as_of=as_of, force=options['force'])
        except ServiceError as e:
            raise CommandError(e.message)

        if expired:
            self.stdout.write(self.style.SUCCESS(f'Expired {len(expired)} batch(es): {expired}'))
        else:
            self.stdout.write('No batches to expire')
