from unittest import mock
from django.db import connection
from django.test import TestCase

from stock.models import Sector, StockBalance, StockDeduction
from stock.services import StockLedgerService
from stock.tests.factories import TENANT, make_sector, make_ingredient, set_balance


class BalanceLockTests(TestCase):

    def setUp(self):
        self.kitchen = make_sector("Kitchen")
        self.flour = make_ingredient("Flour")
        set_balance(self.flour, self.kitchen, 5)

    def locked_sql(self):
        queryset = StockLedgerService.balances_queryset(TENANT, self.flour.id, for_update=True)
        with mock.patch.object(connection.features, "has_select_for_update", True), \
                mock.patch.object(connection.features, "has_select_for_update_of", True):
            return queryset.query.get_compiler(using="default").as_sql()[0]

    def test_only_balance_rows_are_locked(self):
        sql = self.locked_sql()

        self.assertIn(Sector._meta.db_table, sql)
        self.assertIn("FOR UPDATE OF", sql)
        locked = sql.split("FOR UPDATE OF", 1)[1]
        self.assertIn(StockBalance._meta.db_table, locked)
        self.assertNotIn(Sector._meta.db_table, locked)

    def test_locked_balances_come_with_their_sector(self):
        balances = StockLedgerService.balances_for(TENANT, self.flour.id, for_update=True)

        self.assertEqual(len(balances), 1)
        with self.assertNumQueries(0):
            self.assertEqual(balances[0].sector.name, "Kitchen")


class DeductionMarkerTests(TestCase):

    def test_has_deduction_is_scoped_by_tenant_and_reference(self):
        StockDeduction.objects.create(
            tenant_id=TENANT,
            reference_type=StockDeduction.ReferenceType.ORDER,
            reference_id=7,
            reference_label="Order #7",
        )

        self.assertTrue(StockLedgerService.has_deduction(TENANT, StockDeduction.ReferenceType.ORDER, 7))
        self.assertFalse(StockLedgerService.has_deduction("bistro", StockDeduction.ReferenceType.ORDER, 7))
        self.assertFalse(StockLedgerService.has_deduction(TENANT, StockDeduction.ReferenceType.APPOINTMENT, 7))
        self.assertFalse(StockLedgerService.has_deduction(TENANT, StockDeduction.ReferenceType.ORDER, 8))
