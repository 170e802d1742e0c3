from decimal import Decimal
from django.test import TestCase

from stock.models import StockMovement, ImmutableRecordError
from stock.services import StockMovementService
from stock.tests.factories import TENANT, make_sector, make_ingredient, set_balance, balance_of


class TransferTests(TestCase):

    def setUp(self):
        self.warehouse = make_sector("Warehouse", is_central=True)
        self.kitchen = make_sector("Kitchen")
        self.flour = make_ingredient("Flour", unit="kg")
        set_balance(self.flour, self.warehouse, 20)

    def test_transfer_moves_quantity_and_records_one_movement(self):
        result = StockMovementService.transfer(
            TENANT, self.flour.id, self.warehouse.id, self.kitchen.id, "7.5"
        )

        self.assertTrue(result["success"], result)
        self.assertEqual(balance_of(self.flour, self.warehouse), Decimal("12.5"))
        self.assertEqual(balance_of(self.flour, self.kitchen), Decimal("7.5"))

        movement = StockMovement.objects.get(movement_type=StockMovement.MovementType.TRANSFER)
        self.assertEqual(movement.from_sector_id, self.warehouse.id)
        self.assertEqual(movement.to_sector_id, self.kitchen.id)
        self.assertEqual(movement.quantity, Decimal("7.5"))
        self.assertEqual(movement.reason, "Transfer: Warehouse -> Kitchen")
        self.assertEqual(result["movement"]["id"], movement.id)

    def test_transfer_keeps_custom_reason(self):
        StockMovementService.transfer(
            TENANT, self.flour.id, self.warehouse.id, self.kitchen.id, 1, reason="Friday prep"
        )
        self.assertEqual(StockMovement.objects.get().reason, "Friday prep")

    def test_transfer_rejects_same_sector(self):
        result = StockMovementService.transfer(
            TENANT, self.flour.id, self.kitchen.id, self.kitchen.id, 1
        )
        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "INVALID_ARGUMENT")

    def test_transfer_rejects_non_positive_quantity(self):
        for quantity in (0, -3, "abc"):
            result = StockMovementService.transfer(
                TENANT, self.flour.id, self.warehouse.id, self.kitchen.id, quantity
            )
            self.assertFalse(result["success"])
            self.assertEqual(result["error_code"], "INVALID_ARGUMENT")
        self.assertFalse(StockMovement.objects.exists())

    def test_transfer_insufficient_source_changes_nothing(self):
        result = StockMovementService.transfer(
            TENANT, self.flour.id, self.warehouse.id, self.kitchen.id, 25
        )

        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "INSUFFICIENT_STOCK")
        self.assertIn("Flour", result["message"])
        self.assertEqual(balance_of(self.flour, self.warehouse), Decimal("20"))
        self.assertIsNone(balance_of(self.flour, self.kitchen))
        self.assertFalse(StockMovement.objects.exists())

    def test_transfer_from_sector_without_balance(self):
        result = StockMovementService.transfer(
            TENANT, self.flour.id, self.kitchen.id, self.warehouse.id, 1
        )
        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "INSUFFICIENT_STOCK")

    def test_transfer_unknown_sector_or_other_tenant(self):
        foreign = make_sector("Bar", tenant_id="salon")

        result = StockMovementService.transfer(
            TENANT, self.flour.id, self.warehouse.id, foreign.id, 1
        )
        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "NOT_FOUND")

        result = StockMovementService.transfer(
            "salon", self.flour.id, self.warehouse.id, self.kitchen.id, 1
        )
        self.assertEqual(result["error_code"], "NOT_FOUND")
        self.assertEqual(balance_of(self.flour, self.warehouse), Decimal("20"))


class EntryTests(TestCase):

    def setUp(self):
        self.bar = make_sector("Bar")
        self.wine = make_ingredient("Wine", unit="L")

    def test_entry_creates_balance_then_increments(self):
        first = StockMovementService.register_entry(TENANT, self.wine.id, self.bar.id, 6)
        second = StockMovementService.register_entry(TENANT, self.wine.id, self.bar.id, "1.25", "Supplier A")

        self.assertTrue(first["success"])
        self.assertTrue(second["success"])
        self.assertEqual(balance_of(self.wine, self.bar), Decimal("7.25"))

        movements = StockMovement.objects.filter(movement_type=StockMovement.MovementType.ENTRY).order_by("id")
        self.assertEqual([m.reason for m in movements], ["Purchase entry", "Supplier A"])
        self.assertTrue(all(m.to_sector_id == self.bar.id and m.from_sector_id is None for m in movements))

    def test_entry_requires_positive_quantity(self):
        result = StockMovementService.register_entry(TENANT, self.wine.id, self.bar.id, 0)
        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "INVALID_ARGUMENT")

    def test_entry_unknown_ingredient(self):
        result = StockMovementService.register_entry(TENANT, 999999, self.bar.id, 1)
        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "NOT_FOUND")


class AdjustmentTests(TestCase):

    def setUp(self):
        self.kitchen = make_sector("Kitchen")
        self.flour = make_ingredient("Flour", unit="kg")
        set_balance(self.flour, self.kitchen, 10)

    def test_adjustment_to_same_quantity_is_a_no_op(self):
        result = StockMovementService.register_adjustment(
            TENANT, self.flour.id, self.kitchen.id, "10", "Count"
        )

        self.assertTrue(result["success"])
        self.assertEqual(result["message"], "Nothing to adjust")
        self.assertFalse(StockMovement.objects.exists())

    def test_adjustment_down_records_outgoing_difference(self):
        result = StockMovementService.register_adjustment(
            TENANT, self.flour.id, self.kitchen.id, "7.5", "Spoiled bag"
        )

        self.assertTrue(result["success"])
        self.assertEqual(result["message"], "Stock adjusted: 10.000 -> 7.500 (-2.500)")
        self.assertEqual(balance_of(self.flour, self.kitchen), Decimal("7.5"))

        movement = StockMovement.objects.get()
        self.assertEqual(movement.movement_type, StockMovement.MovementType.ADJUSTMENT)
        self.assertEqual(movement.from_sector_id, self.kitchen.id)
        self.assertIsNone(movement.to_sector_id)
        self.assertEqual(movement.quantity, Decimal("2.5"))

    def test_adjustment_up_records_incoming_difference(self):
        result = StockMovementService.register_adjustment(
            TENANT, self.flour.id, self.kitchen.id, 12, "Found a bag"
        )

        self.assertEqual(result["message"], "Stock adjusted: 10.000 -> 12.000 (+2.000)")
        movement = StockMovement.objects.get()
        self.assertEqual(movement.to_sector_id, self.kitchen.id)
        self.assertIsNone(movement.from_sector_id)

    def test_adjustment_creates_missing_balance(self):
        bar = make_sector("Bar")
        result = StockMovementService.register_adjustment(TENANT, self.flour.id, bar.id, 3, "Initial count")
        self.assertTrue(result["success"])
        self.assertEqual(balance_of(self.flour, bar), Decimal("3"))

    def test_adjustment_rejects_negative_count(self):
        result = StockMovementService.register_adjustment(TENANT, self.flour.id, self.kitchen.id, -1, "")
        self.assertFalse(result["success"])
        self.assertEqual(result["error_code"], "INVALID_ARGUMENT")
        self.assertEqual(balance_of(self.flour, self.kitchen), Decimal("10"))


class MovementLedgerTests(TestCase):

    def test_movements_are_append_only(self):
        sector = make_sector("Kitchen")
        flour = make_ingredient("Flour")
        StockMovementService.register_entry(TENANT, flour.id, sector.id, 5)
        movement = StockMovement.objects.get()

        movement.reason = "edited"
        with self.assertRaises(ImmutableRecordError):
            movement.save()
        with self.assertRaises(ImmutableRecordError):
            movement.delete()
        self.assertEqual(StockMovement.objects.get().reason, "Purchase entry")
