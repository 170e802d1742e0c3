import logging
from typing import Dict, Any
from django.db import transaction
from django.db.models import Sum

from stock.models import Ingredient, StockCategory, Unit
from stock.services.base_service import (
    BaseService, success_response, InvalidArgumentError, NotFoundError,
    to_decimal, parse_quantity
)
from stock.services.ledger_service import StockLedgerService

logger = logging.getLogger(__name__)


class IngredientService(BaseService):
    model = Ingredient

    @classmethod
    def serialize(cls, ingredient: Ingredient, include_balances: bool = False) -> Dict[str, Any]:
        data = {
            "id": ingredient.id,
            "uuid": str(ingredient.uuid),
            "name": ingredient.name,
            "unit": ingredient.unit,
            "unit_display": ingredient.get_unit_display(),
            "cost_price": str(ingredient.cost_price),
            "min_stock": str(ingredient.min_stock),
            "category_id": ingredient.category_id,
            "category": ingredient.category.name if ingredient.category else None,
            "is_active": ingredient.is_active,
            "created_at": ingredient.created_at.isoformat(),
            "updated_at": ingredient.updated_at.isoformat(),
        }

        if include_balances:
            balances = ingredient.balances.select_related("ingredient", "sector").order_by("sector__name")
            data["balances"] = [StockLedgerService.serialize_balance(b) for b in balances]

        return data

    @classmethod
    def list(cls,
             tenant_id: str,
             search: str = None,
             category_id: int = None,
             include_inactive: bool = False) -> Dict[str, Any]:
        queryset = cls.scoped(tenant_id).select_related("category")

        if not include_inactive:
            queryset = queryset.filter(is_active=True)

        if search:
            queryset = queryset.filter(name__icontains=search)

        if category_id:
            queryset = queryset.filter(category_id=category_id)

        queryset = queryset.annotate(total_stock=Sum("balances__quantity")).order_by("name")

        ingredients = []
        for ingredient in queryset:
            data = cls.serialize(ingredient, include_balances=True)
            data["total_stock"] = str(to_decimal(ingredient.total_stock))
            ingredients.append(data)

        return success_response({
            "ingredients": ingredients,
            "count": len(ingredients),
            "units": [{"value": c[0], "label": c[1]} for c in Unit.choices],
        })

    @classmethod
    def get(cls, tenant_id: str, ingredient_id: int) -> Dict[str, Any]:
        ingredient = StockLedgerService.get_ingredient(tenant_id, ingredient_id)
        return success_response({
            "ingredient": cls.serialize(ingredient, include_balances=True)
        })

    @classmethod
    def _resolve_category(cls, tenant_id: str, category_id: int = None,
                          category_name: str = None):
        if category_id:
            category = StockCategory.objects.for_tenant(tenant_id).filter(id=category_id).first()
            if not category:
                raise NotFoundError("Stock category", category_id)
            return category

        if category_name:
            category, _ = StockCategory.objects.get_or_create(
                tenant_id=tenant_id, name=category_name.strip()
            )
            return category

        return None

    @classmethod
    @transaction.atomic
    def create(cls,
               tenant_id: str,
               name: str,
               unit: str = Unit.UNIT,
               cost_price=0,
               min_stock=0,
               category_id: int = None,
               category_name: str = None) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Name is required", "name")

        if unit not in Unit.values:
            raise InvalidArgumentError(f"Invalid unit. Valid: {Unit.values}", "unit")

        cost_price = parse_quantity(cost_price, "cost_price")
        min_stock = parse_quantity(min_stock, "min_stock")
        if cost_price < 0:
            raise InvalidArgumentError("cost_price cannot be negative", "cost_price")
        if min_stock < 0:
            raise InvalidArgumentError("min_stock cannot be negative", "min_stock")

        if cls.scoped(tenant_id).filter(name__iexact=name, is_active=True).exists():
            raise InvalidArgumentError(f"Ingredient with name '{name}' already exists", "name")

        ingredient = cls.model.objects.create(
            tenant_id=tenant_id,
            name=name,
            unit=unit,
            cost_price=cost_price,
            min_stock=min_stock,
            category=cls._resolve_category(tenant_id, category_id, category_name),
        )

        logger.info(f"Ingredient '{name}' ({unit}) created for tenant {tenant_id}")

        return success_response({
            "id": ingredient.id,
            "ingredient": cls.serialize(ingredient)
        }, f"Ingredient '{name}' created")

    @classmethod
    @transaction.atomic
    def update(cls, tenant_id: str, ingredient_id: int, **kwargs) -> Dict[str, Any]:
        ingredient = StockLedgerService.get_ingredient(tenant_id, ingredient_id)

        update_fields = ["updated_at"]

        if "name" in kwargs:
            name = (kwargs["name"] or "").strip()
            if not name:
                raise InvalidArgumentError("Name is required", "name")
            ingredient.name = name
            update_fields.append("name")

        for field in ("cost_price", "min_stock"):
            if field in kwargs:
                value = parse_quantity(kwargs[field], field)
                if value < 0:
                    raise InvalidArgumentError(f"{field} cannot be negative", field)
                setattr(ingredient, field, value)
                update_fields.append(field)

        # Unit is fixed once created: existing balances are stored in it
        ingredient.save(update_fields=update_fields)

        return success_response({
            "ingredient": cls.serialize(ingredient)
        }, "Ingredient updated")

    @classmethod
    @transaction.atomic
    def deactivate(cls, tenant_id: str, ingredient_id: int) -> Dict[str, Any]:
        ingredient = StockLedgerService.get_ingredient(tenant_id, ingredient_id)

        if not ingredient.is_active:
            return success_response({"id": ingredient.id}, "Ingredient already inactive")

        ingredient.is_active = False
        ingredient.save(update_fields=["is_active", "updated_at"])

        logger.info(f"Ingredient '{ingredient.name}' deactivated for tenant {tenant_id}")

        return success_response({"id": ingredient.id}, f"Ingredient '{ingredient.name}' deactivated")

