from typing import Dict, Any, List
from decimal import Decimal

from stock.models import Unit
from stock.services.base_service import success_response, to_decimal


class UnitService:
    """
    Conversion between the fixed units ingredients are stocked and
    consumed in. Each unit has a factor to the base unit of its dimension
    (gram for mass, milliliter for volume, one for count).
    """

    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"

    UNITS = {
        Unit.KILOGRAM.value: {"dimension": MASS, "factor": Decimal("1000")},
        Unit.GRAM.value: {"dimension": MASS, "factor": Decimal("1")},
        Unit.LITER.value: {"dimension": VOLUME, "factor": Decimal("1000")},
        Unit.MILLILITER.value: {"dimension": VOLUME, "factor": Decimal("1")},
        Unit.UNIT.value: {"dimension": COUNT, "factor": Decimal("1")},
    }

    @classmethod
    def get(cls, unit: str):
        if not unit:
            return None
        return cls.UNITS.get(unit)

    @classmethod
    def dimension(cls, unit: str):
        data = cls.get(unit)
        return data["dimension"] if data else None

    @classmethod
    def are_compatible(cls, unit_a: str, unit_b: str) -> bool:
        dim_a = cls.dimension(unit_a)
        return dim_a is not None and dim_a == cls.dimension(unit_b)

    @classmethod
    def convert(cls, quantity, from_unit: str, to_unit: str) -> Decimal:
        """
        Convert quantity from from_unit to to_unit.

        Units of different dimensions (or unknown units) are not converted:
        the quantity comes back unchanged so malformed recipe data never
        breaks a sale. An empty from_unit means "already in to_unit".
        """
        quantity = to_decimal(quantity)
        from_data = cls.get(from_unit or to_unit)
        to_data = cls.get(to_unit)

        if not from_data or not to_data or from_data["dimension"] != to_data["dimension"]:
            return quantity

        return quantity * from_data["factor"] / to_data["factor"]

    @classmethod
    def compatible_units(cls, unit: str) -> List[str]:
        data = cls.get(unit)
        if not data:
            return [unit]
        return [
            str(code) for code, other in cls.UNITS.items()
            if other["dimension"] == data["dimension"]
        ]

    @classmethod
    def serialize(cls, unit: str) -> Dict[str, Any]:
        data = cls.UNITS[unit]
        return {
            "code": str(unit),
            "label": Unit(unit).label,
            "dimension": data["dimension"],
            "factor": str(data["factor"]),
            "compatible": cls.compatible_units(unit),
        }

    @classmethod
    def list_units(cls) -> Dict[str, Any]:
        units = [cls.serialize(code) for code in cls.UNITS]
        return success_response({
            "units": units,
            "count": len(units),
        })
