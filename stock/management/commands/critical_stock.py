"""
List balances below the ingredient's minimum stock.

Usage:
    python manage.py critical_stock
    python manage.py critical_stock --tenant salon
    python manage.py critical_stock --fail       # exit code 1 when anything is critical
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from stock.services import StockDeductionService, format_quantity


class Command(BaseCommand):
    help = 'Show ingredients whose balance in a sector is below min_stock'

    def add_arguments(self, parser):
        parser.add_argument('--tenant', default=None, help='Tenant id (default: STOCK_DEFAULT_TENANT)')
        parser.add_argument('--fail', action='store_true', help='Exit with an error if anything is critical')

    def handle(self, *args, **options):
        tenant_id = options['tenant'] or settings.STOCK_DEFAULT_TENANT
        critical = StockDeductionService.get_critical_stock(tenant_id)

        if not critical:
            self.stdout.write(self.style.SUCCESS(f'{tenant_id}: no critical stock'))
            return

        for row in critical:
            ingredient = row['ingredient']
            line = (
                f"{ingredient['name']:<30} {row['sector']['name']:<20} "
                f"{format_quantity(row['current_stock']):>12} / {format_quantity(ingredient['min_stock'])} "
                f"{ingredient['unit']}  (deficit {format_quantity(row['deficit'])})"
            )
            style = self.style.ERROR if row['current_stock'] < 0 else self.style.WARNING
            self.stdout.write(style(line))

        if options['fail']:
            raise CommandError(f'{len(critical)} critical balance(s) for tenant {tenant_id}')
