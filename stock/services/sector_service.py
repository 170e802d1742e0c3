import logging
from typing import Dict, Any
from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q

from stock.models import Sector, StockBalance, StockMovement
from stock.services.base_service import (
    BaseService, success_response, InvalidArgumentError, NotFoundError, BusinessRuleError
)
from stock.services.ledger_service import StockLedgerService

logger = logging.getLogger(__name__)


class SectorService(BaseService):
    model = Sector

    @classmethod
    def serialize(cls, sector: Sector, include_balances: bool = False) -> Dict[str, Any]:
        data = {
            "id": sector.id,
            "uuid": str(sector.uuid),
            "name": sector.name,
            "description": sector.description,
            "is_central": sector.is_central,
            "created_at": sector.created_at.isoformat(),
        }

        if include_balances:
            balances = sector.balances.filter(
                ingredient__is_active=True
            ).select_related("ingredient", "sector").order_by("ingredient__name")
            data["balances"] = [
                StockLedgerService.serialize_balance(b) for b in balances
            ]

        return data

    @classmethod
    def list(cls, tenant_id: str, include_balances: bool = True) -> Dict[str, Any]:
        queryset = cls.scoped(tenant_id).annotate(
            product_count=Count("products", filter=Q(products__is_active=True), distinct=True)
        ).order_by("-is_central", "name")

        sectors = []
        for sector in queryset:
            data = cls.serialize(sector, include_balances=include_balances)
            data["product_count"] = sector.product_count
            sectors.append(data)

        return success_response({
            "sectors": sectors,
            "count": len(sectors),
        })

    @classmethod
    def get(cls, tenant_id: str, sector_id: int) -> Dict[str, Any]:
        sector = StockLedgerService.get_sector(tenant_id, sector_id)
        return success_response({
            "sector": cls.serialize(sector, include_balances=True)
        })

    @classmethod
    @transaction.atomic
    def ensure_central(cls, tenant_id: str) -> Sector:
        central = StockLedgerService.get_central_sector(tenant_id)
        if central:
            return central

        name = settings.STOCK_CENTRAL_SECTOR_NAME
        existing = cls.scoped(tenant_id).filter(name__iexact=name).first()
        if existing:
            existing.is_central = True
            existing.save(update_fields=["is_central", "updated_at"])
            logger.info(f"Sector '{existing.name}' promoted to central for tenant {tenant_id}")
            return existing

        central = cls.model.objects.create(
            tenant_id=tenant_id,
            name=name,
            description="Main storage and fallback for stock deductions",
            is_central=True,
        )
        logger.info(f"Central sector created for tenant {tenant_id}")
        return central

    @classmethod
    @transaction.atomic
    def create(cls, tenant_id: str, name: str, description: str = "",
               is_central: bool = False) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Name is required", "name")

        if cls.scoped(tenant_id).filter(name__iexact=name).exists():
            raise InvalidArgumentError(f"Sector with name '{name}' already exists", "name")

        if is_central and StockLedgerService.get_central_sector(tenant_id):
            raise BusinessRuleError("Tenant already has a central sector", "single_central_sector")

        sector = cls.model.objects.create(
            tenant_id=tenant_id,
            name=name,
            description=description or "",
            is_central=is_central,
        )

        return success_response({
            "id": sector.id,
            "sector": cls.serialize(sector)
        }, f"Sector '{name}' created")

    @classmethod
    @transaction.atomic
    def update(cls, tenant_id: str, sector_id: int, **kwargs) -> Dict[str, Any]:
        sector = StockLedgerService.get_sector(tenant_id, sector_id)

        update_fields = ["updated_at"]

        if "name" in kwargs:
            name = (kwargs["name"] or "").strip()
            if not name:
                raise InvalidArgumentError("Name is required", "name")
            if cls.scoped(tenant_id).filter(name__iexact=name).exclude(id=sector.id).exists():
                raise InvalidArgumentError(f"Sector with name '{name}' already exists", "name")
            sector.name = name
            update_fields.append("name")

        if "description" in kwargs:
            sector.description = kwargs["description"] or ""
            update_fields.append("description")

        sector.save(update_fields=update_fields)

        return success_response({
            "sector": cls.serialize(sector)
        }, "Sector updated")

    @classmethod
    @transaction.atomic
    def delete(cls, tenant_id: str, sector_id: int) -> Dict[str, Any]:
        """
        Delete a sector after moving everything it holds to the central sector.
        Balances are merged into the central balance of the same ingredient;
        movement history keeps its rows with the sector reference cleared.
        """
        from main.models import Product, SalonService

        sector = StockLedgerService.get_sector(tenant_id, sector_id)

        if sector.is_central:
            raise BusinessRuleError("The central sector cannot be deleted", "central_sector_protected")

        central = StockLedgerService.get_central_sector(tenant_id)
        if not central:
            raise NotFoundError("Central sector", tenant_id)

        products_moved = Product.objects.filter(
            tenant_id=tenant_id, sector=sector
        ).update(sector=central)
        services_moved = SalonService.objects.filter(
            tenant_id=tenant_id, sector=sector
        ).update(sector=central)

        merged = 0
        moved = 0
        balances = StockBalance.objects.select_for_update().filter(
            tenant_id=tenant_id, sector=sector
        )
        for balance in balances:
            target = StockLedgerService.get_balance(
                tenant_id, balance.ingredient_id, central.id, for_update=True
            )
            if target:
                StockLedgerService.increment(
                    tenant_id, balance.ingredient_id, central.id, balance.quantity
                )
                balance.delete()
                merged += 1
            else:
                balance.sector = central
                balance.save(update_fields=["sector", "updated_at"])
                moved += 1

        StockMovement.objects.filter(from_sector=sector).update(from_sector=None)
        StockMovement.objects.filter(to_sector=sector).update(to_sector=None)

        name = sector.name
        sector.delete()

        logger.info(
            f"Sector '{name}' deleted for tenant {tenant_id}: "
            f"{merged} balance(s) merged, {moved} moved, "
            f"{products_moved} product(s) and {services_moved} service(s) reassigned"
        )

        return success_response({
            "id": sector_id,
            "balances_merged": merged,
            "balances_moved": moved,
            "products_moved": products_moved,
            "services_moved": services_moved,
        }, f"Sector '{name}' deleted")

