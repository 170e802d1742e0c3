from decimal import Decimal
from django.test import SimpleTestCase

from stock.services import UnitService


class UnitConversionTests(SimpleTestCase):

    def test_round_trip_within_dimension(self):
        for a, b in [("kg", "g"), ("g", "kg"), ("L", "ml"), ("ml", "L"), ("un", "un")]:
            for q in [Decimal("0"), Decimal("0.125"), Decimal("1"), Decimal("37.5")]:
                back = UnitService.convert(UnitService.convert(q, a, b), b, a)
                self.assertEqual(back, q, f"{q} {a} -> {b} -> {a}")

    def test_scales_by_factor(self):
        self.assertEqual(UnitService.convert(Decimal("1.5"), "kg", "g"), Decimal("1500"))
        self.assertEqual(UnitService.convert(Decimal("250"), "ml", "L"), Decimal("0.25"))
        self.assertEqual(UnitService.convert(3, "un", "un"), Decimal("3"))

    def test_cross_dimension_returns_quantity_unchanged(self):
        self.assertEqual(UnitService.convert(Decimal("2"), "kg", "un"), Decimal("2"))
        self.assertEqual(UnitService.convert(Decimal("2"), "L", "g"), Decimal("2"))

    def test_unknown_unit_returns_quantity_unchanged(self):
        self.assertEqual(UnitService.convert(Decimal("4"), "oz", "g"), Decimal("4"))

    def test_empty_source_unit_means_target_unit(self):
        self.assertEqual(UnitService.convert(Decimal("0.5"), "", "kg"), Decimal("0.5"))
        self.assertEqual(UnitService.convert(Decimal("0.5"), None, "kg"), Decimal("0.5"))

    def test_compatible_units(self):
        self.assertEqual(UnitService.compatible_units("kg"), ["kg", "g"])
        self.assertEqual(UnitService.compatible_units("ml"), ["L", "ml"])
        self.assertEqual(UnitService.compatible_units("un"), ["un"])
        self.assertEqual(UnitService.compatible_units("oz"), ["oz"])

    def test_list_units(self):
        result = UnitService.list_units()
        self.assertTrue(result["success"])
        self.assertEqual(result["count"], 5)
        kg = next(u for u in result["units"] if u["code"] == "kg")
        self.assertEqual(kg["dimension"], "mass")
        self.assertEqual(kg["factor"], "1000")
