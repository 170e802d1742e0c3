"""
Stock Deduction Service - Automatic stock deduction from recipes and service requirements

Entry point between the sales side (orders, appointments) and the stock
ledger. Requirements are converted to the ingredient's stock unit, checked
against the total across sectors, then deducted sector by sector.
"""
import logging
from typing import Dict, Any, List, Optional
from decimal import Decimal
from django.conf import settings
from django.db import transaction, DatabaseError, IntegrityError
from django.db.models import F
from django.utils import timezone

from stock.models import StockBalance, StockMovement, StockDeduction, Sector
from stock.services.base_service import (
    success_response, error_response, ServiceError, BusinessRuleError, AlreadyProcessedError,
    TransactionFailureError, insufficient_stock_message, to_decimal, round_decimal
)
from stock.services.ledger_service import StockLedgerService
from stock.services.unit_service import UnitService

logger = logging.getLogger(__name__)


class StockDeductionService:
    """
    Handle stock operations triggered by orders and appointments.

    Deduction order for each requirement: the sellable's own sector, then the
    central sector, then every other sector by quantity (largest first).
    """

    ALREADY_DEDUCTED = {
        StockDeduction.ReferenceType.ORDER: "Stock deduction already performed for this order",
        StockDeduction.ReferenceType.APPOINTMENT: "Stock deduction already performed for this appointment",
    }

    # ==================== REQUIREMENT LINES ====================

    @classmethod
    def _components(cls, sellable):
        from main.models import Product

        if isinstance(sellable, Product):
            return sellable.recipes.select_related("ingredient")
        return sellable.requirements.select_related("ingredient")

    @classmethod
    def _lines_for(cls, sellable, quantity) -> List[Dict[str, Any]]:
        """One line per recipe/requirement component, already in the ingredient unit."""
        sold = to_decimal(quantity)
        lines = []
        for component in cls._components(sellable):
            ingredient = component.ingredient
            per_unit = UnitService.convert(
                component.quantity, component.unit or ingredient.unit, ingredient.unit
            )
            lines.append({
                "ingredient": ingredient,
                "quantity": round_decimal(per_unit * sold),
                "sellable": sellable.name,
                "sector": sellable.sector,
            })
        return lines

    @classmethod
    def _lines_for_order(cls, order) -> List[Dict[str, Any]]:
        lines = []
        for item in order.items.select_related("product", "product__sector"):
            lines.extend(cls._lines_for(item.product, item.quantity))
        return lines

    @classmethod
    def _lines_for_appointment(cls, appointment) -> List[Dict[str, Any]]:
        return cls._lines_for(appointment.service, 1)

    @classmethod
    def _shortages(cls, tenant_id: str, lines: List[Dict[str, Any]],
                   for_update: bool = False) -> List[str]:
        required = {}
        for line in lines:
            ingredient = line["ingredient"]
            entry = required.setdefault(ingredient.id, {"name": ingredient.name, "required": Decimal("0")})
            entry["required"] += line["quantity"]

        # Ascending ingredient id: concurrent deductions take row locks in the same order
        errors = []
        for ingredient_id in sorted(required):
            entry = required[ingredient_id]
            if for_update:
                balances = StockLedgerService.balances_for(tenant_id, ingredient_id, for_update=True)
                available = sum((b.quantity for b in balances), Decimal("0"))
            else:
                available = StockLedgerService.total_available(tenant_id, ingredient_id)

            if entry["required"] > available:
                errors.append(insufficient_stock_message(entry["name"], entry["required"], available))

        return errors

    # ==================== VALIDATION ====================

    @classmethod
    def validate_availability(cls, tenant_id: str, items: List[Dict[str, Any]]) -> List[str]:
        """
        Check that every ingredient needed by items is available in total
        across all sectors of the tenant.

        Args:
            items: List of dicts with {sellable: Product | SalonService, quantity}

        Returns:
            List of error messages, empty when everything is available
        """
        try:
            lines = []
            for item in items:
                sellable = item.get("sellable")
                if sellable is None:
                    continue
                lines.extend(cls._lines_for(sellable, item.get("quantity", 1)))
            return cls._shortages(tenant_id, lines)
        except DatabaseError as e:
            logger.error(f"Stock validation failed for tenant {tenant_id}: {e}", exc_info=True)
            return ["Stock validation failed"]

    # ==================== DEDUCTION ====================

    @classmethod
    def deduct_by_order(cls, tenant_id: str, order_id: int) -> Dict[str, Any]:
        from main.models import Order

        result = {"success": False, "order_id": order_id, "deductions": [], "errors": []}

        order = Order.objects.for_tenant(tenant_id).filter(id=order_id).first()
        if not order:
            result["errors"].append("Order not found")
            result["error_code"] = "NOT_FOUND"
            return result

        return cls._deduct(
            tenant_id,
            StockDeduction.ReferenceType.ORDER,
            order.id,
            f"Order #{order.order_number}",
            cls._lines_for_order(order),
            result,
        )

    @classmethod
    def deduct_by_appointment(cls, tenant_id: str, appointment_id: int) -> Dict[str, Any]:
        from main.models import Appointment

        result = {"success": False, "appointment_id": appointment_id, "deductions": [], "errors": []}

        appointment = Appointment.objects.for_tenant(tenant_id).select_related(
            "service", "service__sector"
        ).filter(id=appointment_id).first()
        if not appointment:
            result["errors"].append("Appointment not found")
            result["error_code"] = "NOT_FOUND"
            return result

        return cls._deduct(
            tenant_id,
            StockDeduction.ReferenceType.APPOINTMENT,
            appointment.id,
            f"Appointment #{appointment.id}",
            cls._lines_for_appointment(appointment),
            result,
        )

    @classmethod
    def _fail(cls, result: Dict[str, Any], error: ServiceError) -> Dict[str, Any]:
        result["errors"].extend(error.details.get("errors") or [error.message])
        result["error_code"] = error.code
        return result

    @classmethod
    def _deduct(cls, tenant_id: str, reference_type: str, reference_id: int, label: str,
                lines: List[Dict[str, Any]], result: Dict[str, Any]) -> Dict[str, Any]:
        already = AlreadyProcessedError(cls.ALREADY_DEDUCTED[reference_type], label)

        if StockLedgerService.has_deduction(tenant_id, reference_type, reference_id):
            return cls._fail(result, already)

        errors = cls._shortages(tenant_id, lines)
        if errors:
            return cls._fail(result, ServiceError("; ".join(errors), "INSUFFICIENT_STOCK", {"errors": errors}))

        try:
            with transaction.atomic():
                StockDeduction.objects.create(
                    tenant_id=tenant_id,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    reference_label=label,
                )

                if settings.STOCK_REVALIDATE_IN_TRANSACTION:
                    errors = cls._shortages(tenant_id, lines, for_update=True)
                    if errors:
                        raise ServiceError("; ".join(errors), "INSUFFICIENT_STOCK", {"errors": errors})

                central = StockLedgerService.get_central_sector(tenant_id)
                deductions = []
                for line in sorted(lines, key=lambda l: l["ingredient"].id):
                    deductions.extend(cls._deduct_line(
                        tenant_id, line, central, label, reference_type, reference_id
                    ))
        except IntegrityError:
            # Another request inserted the marker first
            return cls._fail(result, already)
        except ServiceError as e:
            return cls._fail(result, e)
        except DatabaseError as e:
            logger.error(f"Stock deduction for {label} failed (tenant {tenant_id}): {e}", exc_info=True)
            return cls._fail(result, TransactionFailureError())

        logger.info(f"{label}: {len(deductions)} stock deduction(s) for tenant {tenant_id}")

        result["success"] = True
        result["deductions"] = deductions
        return result

    @classmethod
    def _prioritize(cls, balances: List[StockBalance], sector_id: Optional[int],
                    central_id: Optional[int]) -> List[StockBalance]:
        # Stable sort: balances already come ordered by quantity desc
        return sorted(
            balances,
            key=lambda b: (b.sector_id != sector_id, b.sector_id != central_id),
        )

    @classmethod
    def _deduct_line(cls, tenant_id: str, line: Dict[str, Any], central: Optional[Sector],
                     label: str, reference_type: str, reference_id: int) -> List[Dict[str, Any]]:
        ingredient = line["ingredient"]
        sellable_sector = line["sector"]
        epsilon = settings.STOCK_DEDUCTION_EPSILON
        remaining = line["quantity"]
        deductions = []

        balances = cls._prioritize(
            StockLedgerService.balances_for(tenant_id, ingredient.id, positive_only=True, for_update=True),
            sellable_sector.id if sellable_sector else None,
            central.id if central else None,
        )

        for balance in balances:
            if remaining <= epsilon:
                break

            amount = min(balance.quantity, remaining)
            StockBalance.objects.filter(id=balance.id).update(quantity=F("quantity") - amount)
            StockLedgerService.record_movement(
                tenant_id,
                ingredient.id,
                StockMovement.MovementType.EXIT,
                amount,
                reason=f"{label} - {line['sellable']} ({balance.sector.name})",
                from_sector_id=balance.sector_id,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            deductions.append(cls._deduction(ingredient, amount, balance.sector))
            remaining -= amount

        if remaining > epsilon:
            target = central or sellable_sector
            if target is None:
                raise BusinessRuleError(
                    f"No sector available to deduct {ingredient.name}", "deduction_target"
                )

            StockLedgerService.increment(tenant_id, ingredient.id, target.id, -remaining)
            StockLedgerService.record_movement(
                tenant_id,
                ingredient.id,
                StockMovement.MovementType.EXIT,
                remaining,
                reason=f"{label} - {line['sellable']} ({target.name} - negative balance)",
                from_sector_id=target.id,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            logger.warning(
                f"{label}: {ingredient.name} overdrawn by {remaining} {ingredient.unit} "
                f"in {target.name} (tenant {tenant_id})"
            )
            deductions.append(cls._deduction(ingredient, remaining, target, negative=True))

        return deductions

    @classmethod
    def _deduction(cls, ingredient, quantity: Decimal, sector: Sector,
                   negative: bool = False) -> Dict[str, Any]:
        return {
            "ingredient_id": ingredient.id,
            "ingredient": ingredient.name,
            "quantity": quantity,
            "sector_id": sector.id,
            "sector": sector.name,
            "negative_balance": negative,
        }

    # ==================== RESTORATION ====================

    @classmethod
    def restore_stock_by_order(cls, tenant_id: str, order_id: int) -> Dict[str, Any]:
        return cls._restore(tenant_id, StockDeduction.ReferenceType.ORDER, order_id)

    @classmethod
    def restore_stock_by_appointment(cls, tenant_id: str, appointment_id: int) -> Dict[str, Any]:
        return cls._restore(tenant_id, StockDeduction.ReferenceType.APPOINTMENT, appointment_id)

    @classmethod
    def _restore(cls, tenant_id: str, reference_type: str, reference_id: int) -> Dict[str, Any]:
        """
        Put back exactly what the deduction took: one ENTRY per recorded EXIT,
        into the same sector. Stock that left a since-deleted sector goes to
        the central sector.
        """
        try:
            with transaction.atomic():
                marker = StockDeduction.objects.select_for_update().filter(
                    tenant_id=tenant_id,
                    reference_type=reference_type,
                    reference_id=reference_id,
                ).first()

                if not marker:
                    return success_response({"restored": []}, "Nothing to restore")

                if marker.reversed_at:
                    return success_response({"restored": []}, "Stock already restored")

                exits = StockMovement.objects.for_tenant(tenant_id).filter(
                    movement_type=StockMovement.MovementType.EXIT,
                    reference_type=reference_type,
                    reference_id=reference_id,
                ).select_related("ingredient", "from_sector").order_by("id")

                central = None
                reason = f"Reversal of {marker.reference_label.lower()}"
                restored = []

                for movement in exits:
                    sector = movement.from_sector
                    if sector is None:
                        central = central or StockLedgerService.get_central_sector(tenant_id)
                        sector = central
                    if sector is None:
                        logger.warning(
                            f"{marker.reference_label}: no sector to restore "
                            f"{movement.quantity} of {movement.ingredient.name}"
                        )
                        continue

                    StockLedgerService.increment(tenant_id, movement.ingredient_id, sector.id, movement.quantity)
                    StockLedgerService.record_movement(
                        tenant_id,
                        movement.ingredient_id,
                        StockMovement.MovementType.ENTRY,
                        movement.quantity,
                        reason=reason,
                        to_sector_id=sector.id,
                        reference_type=reference_type,
                        reference_id=reference_id,
                    )
                    restored.append(cls._deduction(movement.ingredient, movement.quantity, sector))

                marker.reversed_at = timezone.now()
                marker.save(update_fields=["reversed_at"])
        except DatabaseError as e:
            logger.error(f"Stock restoration for {reference_type} #{reference_id} failed: {e}", exc_info=True)
            error = TransactionFailureError()
            return error_response(error.message, error.code)

        logger.info(f"{marker.reference_label}: {len(restored)} movement(s) reversed for tenant {tenant_id}")

        return success_response({"restored": restored}, f"Restored {len(restored)} movement(s)")

    # ==================== REPORTS ====================

    @classmethod
    def get_critical_stock(cls, tenant_id: str) -> List[Dict[str, Any]]:
        """Balances of active ingredients sitting below the ingredient's min_stock."""
        balances = StockBalance.objects.for_tenant(tenant_id).filter(
            ingredient__is_active=True,
            quantity__lt=F("ingredient__min_stock"),
        ).select_related("ingredient", "sector").order_by("ingredient__name", "sector__name")

        return [
            {
                "ingredient": {
                    "id": b.ingredient.id,
                    "name": b.ingredient.name,
                    "unit": b.ingredient.unit,
                    "min_stock": b.ingredient.min_stock,
                },
                "sector": {
                    "id": b.sector.id,
                    "name": b.sector.name,
                },
                "current_stock": b.quantity,
                "deficit": b.ingredient.min_stock - b.quantity,
            }
            for b in balances
        ]
