"""
Stock Services - Inventory consistency engine business logic

Usage:
    from stock.services import StockMovementService, StockDeductionService

    # Purchase entry
    StockMovementService.register_entry(tenant_id, ingredient_id=1, sector_id=1, quantity=10)

    # Deduct ingredients for an order
    result = StockDeductionService.deduct_by_order(tenant_id, order_id=42)
"""

# Base utilities
from stock.services.base_service import (
    ServiceError,
    InvalidArgumentError,
    NotFoundError,
    BusinessRuleError,
    InsufficientStockError,
    AlreadyProcessedError,
    TransactionFailureError,
    success_response,
    error_response,
    error_from_exception,
    to_decimal,
    parse_quantity,
    round_decimal,
    format_quantity,
    BaseService,
)

# Units
from stock.services.unit_service import UnitService

# Ledger
from stock.services.ledger_service import StockLedgerService
from stock.services.sector_service import SectorService
from stock.services.ingredient_service import IngredientService

# Movements
from stock.services.movement_service import StockMovementService

# Deduction
from stock.services.deduction_service import StockDeductionService


__all__ = [
    "ServiceError",
    "InvalidArgumentError",
    "NotFoundError",
    "BusinessRuleError",
    "InsufficientStockError",
    "AlreadyProcessedError",
    "TransactionFailureError",
    "success_response",
    "error_response",
    "error_from_exception",
    "to_decimal",
    "parse_quantity",
    "round_decimal",
    "format_quantity",
    "BaseService",

    "UnitService",

    "StockLedgerService",
    "SectorService",
    "IngredientService",

    "StockMovementService",

    "StockDeductionService",
]
