from typing import Dict, Any, Optional, List
from decimal import Decimal
from datetime import date
from django.db.models import Sum, F

from stock.models import (
    StockBalance, StockMovement, Ingredient, Sector, StockDeduction
)
from stock.services.base_service import (
    BaseService, success_response, NotFoundError, InvalidArgumentError
)


class StockLedgerService(BaseService):
    """
    Read and upsert access to balances and movements.
    Every query is filtered by tenant_id.
    """

    model = StockBalance

    @classmethod
    def serialize_balance(cls, balance: StockBalance) -> Dict[str, Any]:
        return {
            "id": balance.id,
            "ingredient_id": balance.ingredient_id,
            "ingredient": balance.ingredient.name,
            "unit": balance.ingredient.unit,
            "sector_id": balance.sector_id,
            "sector": balance.sector.name,
            "quantity": str(balance.quantity),
            "updated_at": balance.updated_at.isoformat(),
        }

    @classmethod
    def serialize_movement(cls, movement: StockMovement) -> Dict[str, Any]:
        return {
            "id": movement.id,
            "uuid": str(movement.uuid),
            "ingredient_id": movement.ingredient_id,
            "ingredient": movement.ingredient.name,
            "from_sector_id": movement.from_sector_id,
            "from_sector": movement.from_sector.name if movement.from_sector else None,
            "to_sector_id": movement.to_sector_id,
            "to_sector": movement.to_sector.name if movement.to_sector else None,
            "movement_type": movement.movement_type,
            "quantity": str(movement.quantity),
            "reason": movement.reason,
            "reference_type": movement.reference_type,
            "reference_id": movement.reference_id,
            "created_at": movement.created_at.isoformat(),
        }

    # ==================== LOOKUPS ====================

    @classmethod
    def get_ingredient(cls, tenant_id: str, ingredient_id: int,
                       active_only: bool = False) -> Ingredient:
        queryset = Ingredient.objects.for_tenant(tenant_id)
        if active_only:
            queryset = queryset.filter(is_active=True)
        try:
            return queryset.get(id=ingredient_id)
        except (Ingredient.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Ingredient", ingredient_id)

    @classmethod
    def get_sector(cls, tenant_id: str, sector_id: int) -> Sector:
        try:
            return Sector.objects.for_tenant(tenant_id).get(id=sector_id)
        except (Sector.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Sector", sector_id)

    @classmethod
    def get_central_sector(cls, tenant_id: str) -> Optional[Sector]:
        return Sector.objects.for_tenant(tenant_id).filter(is_central=True).first()

    # ==================== BALANCES ====================

    @classmethod
    def get_balance(cls, tenant_id: str, ingredient_id: int, sector_id: int,
                    for_update: bool = False) -> Optional[StockBalance]:
        queryset = cls.scoped(tenant_id)
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(ingredient_id=ingredient_id, sector_id=sector_id).first()

    @classmethod
    def total_available(cls, tenant_id: str, ingredient_id: int) -> Decimal:
        total = cls.scoped(tenant_id).filter(
            ingredient_id=ingredient_id
        ).aggregate(total=Sum("quantity"))["total"]
        return total if total is not None else Decimal("0")

    @classmethod
    def balances_queryset(cls, tenant_id: str, ingredient_id: int,
                          positive_only: bool = False, for_update: bool = False):
        queryset = cls.scoped(tenant_id).filter(ingredient_id=ingredient_id)
        if for_update:
            # Lock the balance rows only, not the joined sectors
            queryset = queryset.select_for_update(of=("self",))
        if positive_only:
            queryset = queryset.filter(quantity__gt=0)
        return queryset.select_related("sector").order_by("-quantity", "id")

    @classmethod
    def balances_for(cls, tenant_id: str, ingredient_id: int,
                     positive_only: bool = False, for_update: bool = False) -> List[StockBalance]:
        return list(cls.balances_queryset(tenant_id, ingredient_id, positive_only, for_update))

    @classmethod
    def increment(cls, tenant_id: str, ingredient_id: int, sector_id: int,
                  quantity: Decimal) -> StockBalance:
        """Add quantity (negative to subtract), creating the balance on first use."""
        balance, created = cls.model.objects.get_or_create(
            ingredient_id=ingredient_id,
            sector_id=sector_id,
            defaults={"tenant_id": tenant_id, "quantity": quantity},
        )
        if not created:
            cls.model.objects.filter(id=balance.id).update(quantity=F("quantity") + quantity)
            balance.refresh_from_db(fields=["quantity", "updated_at"])
        return balance

    @classmethod
    def set_quantity(cls, tenant_id: str, ingredient_id: int, sector_id: int,
                     quantity: Decimal) -> StockBalance:
        balance, _ = cls.model.objects.update_or_create(
            ingredient_id=ingredient_id,
            sector_id=sector_id,
            defaults={"tenant_id": tenant_id, "quantity": quantity},
        )
        return balance

    @classmethod
    def record_movement(cls, tenant_id: str, ingredient_id: int, movement_type: str,
                        quantity: Decimal, reason: str = "",
                        from_sector_id: int = None, to_sector_id: int = None,
                        reference_type: str = "", reference_id: int = None) -> StockMovement:
        return StockMovement.objects.create(
            tenant_id=tenant_id,
            ingredient_id=ingredient_id,
            from_sector_id=from_sector_id,
            to_sector_id=to_sector_id,
            movement_type=movement_type,
            quantity=abs(quantity),
            reason=reason[:255],
            reference_type=reference_type,
            reference_id=reference_id,
        )

    # ==================== DEDUCTION MARKERS ====================

    @classmethod
    def get_deduction(cls, tenant_id: str, reference_type: str,
                      reference_id: int) -> Optional[StockDeduction]:
        return StockDeduction.objects.for_tenant(tenant_id).filter(
            reference_type=reference_type,
            reference_id=reference_id,
        ).first()

    @classmethod
    def has_deduction(cls, tenant_id: str, reference_type: str, reference_id: int) -> bool:
        return cls.get_deduction(tenant_id, reference_type, reference_id) is not None

    # ==================== QUERIES ====================

    @classmethod
    def get_for_ingredient(cls, tenant_id: str, ingredient_id: int) -> Dict[str, Any]:
        ingredient = cls.get_ingredient(tenant_id, ingredient_id)
        balances = cls.scoped(tenant_id).filter(
            ingredient=ingredient
        ).select_related("ingredient", "sector").order_by("sector__name")

        return success_response({
            "ingredient_id": ingredient.id,
            "balances": [cls.serialize_balance(b) for b in balances],
            "total_quantity": str(cls.total_available(tenant_id, ingredient.id)),
        })

    @classmethod
    def list_movements(cls,
                       tenant_id: str,
                       ingredient_id: int = None,
                       movement_type: str = None,
                       date_from: date = None,
                       date_to: date = None,
                       limit: int = 50) -> Dict[str, Any]:
        queryset = StockMovement.objects.for_tenant(tenant_id).select_related(
            "ingredient", "from_sector", "to_sector"
        )

        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)

        if movement_type:
            valid_types = [c[0] for c in StockMovement.MovementType.choices]
            if movement_type not in valid_types:
                raise InvalidArgumentError(f"Invalid movement type. Valid: {valid_types}", "type")
            queryset = queryset.filter(movement_type=movement_type)

        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)

        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        limit = min(max(1, int(limit)), 500)
        movements = list(queryset.order_by("-created_at", "-id")[:limit])

        return success_response({
            "movements": [cls.serialize_movement(m) for m in movements],
            "count": len(movements),
            "movement_types": [
                {"value": c[0], "label": c[1]}
                for c in StockMovement.MovementType.choices
            ]
        })
