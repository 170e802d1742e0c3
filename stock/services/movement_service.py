"""
Stock Movement Service - Manual stock operations between sectors

Transfer, purchase entry and inventory adjustment. Each operation runs in a
single transaction and always returns a result dict: business failures and
storage errors come back as {"success": False, ...}, never as exceptions.
"""
import logging
from typing import Dict, Any
from decimal import Decimal
from django.db import transaction, DatabaseError
from django.db.models import F

from stock.models import StockMovement, StockBalance
from stock.services.base_service import (
    success_response, error_response, error_from_exception,
    ServiceError, InvalidArgumentError, InsufficientStockError, TransactionFailureError,
    parse_quantity, round_decimal, format_quantity
)
from stock.services.ledger_service import StockLedgerService

logger = logging.getLogger(__name__)


class StockMovementService:

    @classmethod
    def _run(cls, operation: str, func, *args, **kwargs) -> Dict[str, Any]:
        try:
            return func(*args, **kwargs)
        except ServiceError as e:
            logger.warning(f"{operation} rejected: {e.message}")
            return error_from_exception(e)
        except DatabaseError as e:
            logger.error(f"{operation} failed: {e}", exc_info=True)
            error = TransactionFailureError()
            return error_response(error.message, error.code)

    # ==================== TRANSFER ====================

    @classmethod
    def transfer(cls,
                 tenant_id: str,
                 ingredient_id: int,
                 from_sector_id: int,
                 to_sector_id: int,
                 quantity,
                 reason: str = None) -> Dict[str, Any]:
        """Move quantity of an ingredient from one sector to another."""
        return cls._run(
            "Transfer", cls._transfer,
            tenant_id, ingredient_id, from_sector_id, to_sector_id, quantity, reason
        )

    @classmethod
    @transaction.atomic
    def _transfer(cls, tenant_id, ingredient_id, from_sector_id, to_sector_id,
                  quantity, reason) -> Dict[str, Any]:
        quantity = round_decimal(parse_quantity(quantity))
        if quantity <= 0:
            raise InvalidArgumentError("Quantity must be greater than zero", "quantity")

        if str(from_sector_id) == str(to_sector_id):
            raise InvalidArgumentError("Source and destination sectors must be different", "to_sector_id")

        ingredient = StockLedgerService.get_ingredient(tenant_id, ingredient_id)
        from_sector = StockLedgerService.get_sector(tenant_id, from_sector_id)
        to_sector = StockLedgerService.get_sector(tenant_id, to_sector_id)

        source = StockLedgerService.get_balance(
            tenant_id, ingredient.id, from_sector.id, for_update=True
        )
        available = source.quantity if source else Decimal("0")
        if available < quantity:
            raise InsufficientStockError(ingredient.name, quantity, available)

        StockBalance.objects.filter(id=source.id).update(quantity=F("quantity") - quantity)
        StockLedgerService.increment(tenant_id, ingredient.id, to_sector.id, quantity)

        movement = StockLedgerService.record_movement(
            tenant_id,
            ingredient.id,
            StockMovement.MovementType.TRANSFER,
            quantity,
            reason=reason or f"Transfer: {from_sector.name} -> {to_sector.name}",
            from_sector_id=from_sector.id,
            to_sector_id=to_sector.id,
        )

        logger.info(
            f"Transfer {quantity} {ingredient.unit} of {ingredient.name} "
            f"{from_sector.name} -> {to_sector.name} (tenant {tenant_id})"
        )

        return success_response({
            "movement": {
                "id": movement.id,
                "ingredient_id": ingredient.id,
                "from_sector_id": from_sector.id,
                "to_sector_id": to_sector.id,
                "quantity": str(quantity),
            }
        }, f"Transferred {format_quantity(quantity)} {ingredient.unit} of {ingredient.name} "
           f"from {from_sector.name} to {to_sector.name}")

    # ==================== ENTRY ====================

    @classmethod
    def register_entry(cls,
                       tenant_id: str,
                       ingredient_id: int,
                       sector_id: int,
                       quantity,
                       reason: str = None) -> Dict[str, Any]:
        """Add purchased (or initial) stock to a sector."""
        return cls._run(
            "Entry", cls._register_entry,
            tenant_id, ingredient_id, sector_id, quantity, reason
        )

    @classmethod
    @transaction.atomic
    def _register_entry(cls, tenant_id, ingredient_id, sector_id, quantity, reason) -> Dict[str, Any]:
        quantity = round_decimal(parse_quantity(quantity))
        if quantity <= 0:
            raise InvalidArgumentError("Quantity must be greater than zero", "quantity")

        ingredient = StockLedgerService.get_ingredient(tenant_id, ingredient_id)
        sector = StockLedgerService.get_sector(tenant_id, sector_id)

        balance = StockLedgerService.increment(tenant_id, ingredient.id, sector.id, quantity)
        movement = StockLedgerService.record_movement(
            tenant_id,
            ingredient.id,
            StockMovement.MovementType.ENTRY,
            quantity,
            reason=reason or "Purchase entry",
            to_sector_id=sector.id,
        )

        logger.info(
            f"Entry {quantity} {ingredient.unit} of {ingredient.name} into {sector.name} (tenant {tenant_id})"
        )

        return success_response({
            "movement_id": movement.id,
            "balance": str(balance.quantity),
        }, f"Entry of {format_quantity(quantity)} {ingredient.unit} of {ingredient.name} registered")

    # ==================== ADJUSTMENT ====================

    @classmethod
    def register_adjustment(cls,
                            tenant_id: str,
                            ingredient_id: int,
                            sector_id: int,
                            new_quantity,
                            reason: str = "") -> Dict[str, Any]:
        """Set a balance to a counted quantity, recording the difference."""
        return cls._run(
            "Adjustment", cls._register_adjustment,
            tenant_id, ingredient_id, sector_id, new_quantity, reason
        )

    @classmethod
    @transaction.atomic
    def _register_adjustment(cls, tenant_id, ingredient_id, sector_id,
                             new_quantity, reason) -> Dict[str, Any]:
        new_quantity = round_decimal(parse_quantity(new_quantity, "new_quantity"))
        if new_quantity < 0:
            raise InvalidArgumentError("new_quantity cannot be negative", "new_quantity")

        ingredient = StockLedgerService.get_ingredient(tenant_id, ingredient_id)
        sector = StockLedgerService.get_sector(tenant_id, sector_id)

        balance = StockLedgerService.get_balance(
            tenant_id, ingredient.id, sector.id, for_update=True
        )
        current = balance.quantity if balance else Decimal("0")
        diff = new_quantity - current

        if diff == 0:
            return success_response(message="Nothing to adjust")

        StockLedgerService.set_quantity(tenant_id, ingredient.id, sector.id, new_quantity)
        movement = StockLedgerService.record_movement(
            tenant_id,
            ingredient.id,
            StockMovement.MovementType.ADJUSTMENT,
            abs(diff),
            reason=reason or "Inventory adjustment",
            from_sector_id=sector.id if diff < 0 else None,
            to_sector_id=sector.id if diff > 0 else None,
        )

        sign = "+" if diff > 0 else ""
        logger.info(
            f"Adjustment of {ingredient.name} in {sector.name}: {current} -> {new_quantity} (tenant {tenant_id})"
        )

        return success_response(
            {"movement_id": movement.id},
            f"Stock adjusted: {format_quantity(current)} -> {format_quantity(new_quantity)} "
            f"({sign}{format_quantity(diff)})"
        )
