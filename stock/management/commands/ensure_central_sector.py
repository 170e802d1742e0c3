"""
Create the central sector for one or more tenants.

Usage:
    python manage.py ensure_central_sector                 # default tenant
    python manage.py ensure_central_sector salon bistro    # listed tenants
"""

from django.conf import settings
from django.core.management.base import BaseCommand

from stock.services import SectorService


class Command(BaseCommand):
    help = 'Create the central sector for the given tenants if missing'

    def add_arguments(self, parser):
        parser.add_argument('tenants', nargs='*', help='Tenant ids (default: STOCK_DEFAULT_TENANT)')

    def handle(self, *args, **options):
        tenants = options['tenants'] or [settings.STOCK_DEFAULT_TENANT]

        for tenant_id in tenants:
            sector = SectorService.ensure_central(tenant_id)
            self.stdout.write(self.style.SUCCESS(
                f'{tenant_id}: central sector "{sector.name}" (id {sector.id})'
            ))
